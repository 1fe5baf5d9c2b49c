"""
FastAPI dependencies: key-value backend, calculation service and request owner
"""

from fastapi import Header, HTTPException

from app.config import settings
from app.database_psycopg2 import database_manager
from app.kv_store import KeyValueStore, InMemoryKVStore, PostgresKVStore
from app.services.calculation_service import CalculationService

_kv_store = None


def get_kv_store() -> KeyValueStore:
    global _kv_store
    if _kv_store is None:
        if settings.KV_BACKEND == "memory":
            _kv_store = InMemoryKVStore()
        else:
            _kv_store = PostgresKVStore(database_manager, settings.KV_TABLE)
    return _kv_store


def get_calculation_service() -> CalculationService:
    return CalculationService(get_kv_store())


async def get_owner_key(x_owner_key: str = Header(None)) -> str:
    """Owner of the request; authentication happens upstream and forwards this header"""
    if not x_owner_key or not x_owner_key.strip():
        raise HTTPException(status_code=401, detail="X-Owner-Key header is required")
    return x_owner_key.strip()
