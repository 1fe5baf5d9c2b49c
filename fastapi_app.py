"""
FastAPI Application for the Distributor Commission API
Calculates scheme commissions over uploaded sales data and serves stored results
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database_psycopg2 import database_manager
from app.dependencies import get_kv_store
from app.kv_store import PostgresKVStore
from app.logging_config import configure_logging
from app.routers import calculations, health

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the key-value backend on startup, release it on shutdown"""
    logger.info(f"Starting Commission API with {settings.KV_BACKEND} storage...")

    kv = get_kv_store()
    if isinstance(kv, PostgresKVStore):
        try:
            await database_manager.connect()
            kv.ensure_table()
            logger.info("Database connected successfully")
        except Exception as e:
            logger.error(f"Database connection failed: {e}")
            logger.warning("API starting without database connection")

    yield

    logger.info("Shutting down Commission API...")
    if isinstance(kv, PostgresKVStore):
        await database_manager.disconnect()


# Create FastAPI app
app = FastAPI(
    title="Distributor Commission API",
    description="Scheme-based distributor commission calculation with chunked result storage",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(calculations.router)


@app.get("/")
async def root():
    return {
        "message": "Distributor Commission API",
        "version": "1.0.0",
        "timestamp": datetime.now().isoformat(),
        "endpoints": {
            "calculate": "POST /calculate",
            "latest": "GET /calculations/latest",
            "history": "GET /calculations",
            "calculation": "GET /calculations/{calculation_id}",
            "migrate": "POST /maintenance/migrate-legacy",
            "health": "GET /health"
        }
    }
