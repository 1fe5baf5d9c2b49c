"""
Configuration settings for the Commission API
"""

import os
from typing import List

class Settings:
    # Database
    DATABASE_NAME: str = os.getenv("DATABASE_NAME", "postgres")
    DATABASE_USER: str = os.getenv("DATABASE_USER", "postgres")
    DATABASE_PASSWORD: str = os.getenv("DATABASE_PASSWORD", "")
    DATABASE_HOST: str = os.getenv("DATABASE_HOST", "localhost")
    DATABASE_PORT: int = int(os.getenv("DATABASE_PORT", "5432"))

    # Key-value namespace
    KV_BACKEND: str = os.getenv("KV_BACKEND", "postgres").lower()
    KV_TABLE: str = os.getenv("KV_TABLE", "kv_store")

    # API Configuration
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))
    DEBUG: bool = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # CORS - Handle comma-separated string
    ALLOWED_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
        if origin.strip()
    ]

    # Hard deadline for one /calculate request
    REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "120"))

    # Calculation limits
    MAX_RECORDS: int = int(os.getenv("MAX_RECORDS", "10000"))
    BATCH_SIZE: int = int(os.getenv("BATCH_SIZE", "1000"))
    PROCESSING_TIMEOUT_SECONDS: float = float(os.getenv("PROCESSING_TIMEOUT_SECONDS", "40"))
    YIELD_EVERY_BATCHES: int = int(os.getenv("YIELD_EVERY_BATCHES", "10"))

    # Chunked result storage
    CHUNK_SIZE: int = int(os.getenv("CHUNK_SIZE", "500"))
    CHUNK_WRITE_DELAY_SECONDS: float = float(os.getenv("CHUNK_WRITE_DELAY_SECONDS", "0.1"))
    CALCULATION_HISTORY_LIMIT: int = int(os.getenv("CALCULATION_HISTORY_LIMIT", "100"))

settings = Settings()
