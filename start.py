#!/usr/bin/env python3
"""
Startup script for the Distributor Commission API
"""

import uvicorn
from dotenv import load_dotenv

if __name__ == "__main__":
    # .env must be loaded before app.config reads the environment
    load_dotenv()

    from app.config import settings

    print("🚀 Starting Distributor Commission API")
    print(f"🌐 Server: http://{settings.API_HOST}:{settings.API_PORT}")
    print(f"📖 API Docs: http://{settings.API_HOST}:{settings.API_PORT}/docs")
    print(f"💾 Storage backend: {settings.KV_BACKEND}")
    print()

    uvicorn.run(
        "fastapi_app:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True
    )
