"""
Owner-scoped key-value namespace
Every persisted value (schemes, sales data, calculation chunks, pointers) lives under
a key of the form user:<owner>:<name>. Values are opaque JSON-compatible structures.
"""

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

from psycopg2 import sql
from psycopg2.extras import Json

from app.database_psycopg2 import DatabaseManager

logger = logging.getLogger(__name__)


def make_owner_key(owner_key: str, key: str) -> str:
    return f"user:{owner_key}:{key}"


# Backends are synchronous (psycopg2); calls are pushed off the event loop
kv_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="kv")


async def run_blocking(func: Callable, *args):
    """
    Run a blocking key-value call in the shared thread pool

    If the awaiting task is cancelled, the call already running in its thread is
    waited for before the cancellation propagates, so callers doing compensating
    cleanup see every write that actually landed.
    """
    loop = asyncio.get_event_loop()
    future = loop.run_in_executor(kv_executor, func, *args)
    try:
        return await asyncio.shield(future)
    except asyncio.CancelledError:
        await asyncio.wait([future])
        raise


class KeyValueStore(ABC):
    """get/set/delete over opaque JSON values"""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class InMemoryKVStore(KeyValueStore):
    """Process-local store; values are deep-copied in and out like a real backend would serialize them"""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self._data)


class PostgresKVStore(KeyValueStore):
    """Key-value table in Postgres: key TEXT PRIMARY KEY, value JSONB"""

    def __init__(self, db_manager: DatabaseManager, table_name: str = "kv_store"):
        self.db_manager = db_manager
        self.table = sql.Identifier(table_name)

    def ensure_table(self):
        self.db_manager.execute_command(
            sql.SQL("CREATE TABLE IF NOT EXISTS {} (key TEXT PRIMARY KEY, value JSONB NOT NULL)").format(self.table)
        )

    def get(self, key: str) -> Optional[Any]:
        rows = self.db_manager.execute_query(
            sql.SQL("SELECT value FROM {} WHERE key = %s").format(self.table), [key]
        )
        return rows[0]["value"] if rows else None

    def set(self, key: str, value: Any) -> None:
        self.db_manager.execute_command(
            sql.SQL(
                "INSERT INTO {} (key, value) VALUES (%s, %s) "
                "ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value"
            ).format(self.table),
            [key, Json(value)]
        )

    def delete(self, key: str) -> None:
        self.db_manager.execute_command(
            sql.SQL("DELETE FROM {} WHERE key = %s").format(self.table), [key]
        )

