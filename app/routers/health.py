"""
Health check endpoints
"""

from fastapi import APIRouter, HTTPException
from app.config import settings
from app.database_psycopg2 import database_manager

router = APIRouter()

@router.get("/")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "commission-api"}

@router.get("/database")
async def database_health():
    """Database health check"""
    if settings.KV_BACKEND == "memory":
        return {"status": "healthy", "database": "in-memory"}
    try:
        is_healthy = await database_manager.health_check()
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"Database health check failed: {str(e)}")
    if not is_healthy:
        raise HTTPException(status_code=503, detail="Database connection failed")
    return {"status": "healthy", "database": "connected"}
