"""
Database connection using psycopg2 (synchronous)
Backs the owner-scoped key-value table used for schemes, sales and calculation results
"""

import psycopg2
import psycopg2.pool
import logging
from typing import Optional, Dict, Any, List
from app.config import settings

logger = logging.getLogger(__name__)

class DatabaseManager:
    def __init__(self):
        self.pool: Optional[psycopg2.pool.ThreadedConnectionPool] = None

    async def connect(self):
        """Create database connection pool using psycopg2"""
        try:
            db_params = {
                "dbname": settings.DATABASE_NAME,
                "user": settings.DATABASE_USER,
                "password": settings.DATABASE_PASSWORD,
                "host": settings.DATABASE_HOST,
                "port": settings.DATABASE_PORT
            }

            logger.info(f"Connecting to database at {db_params['host']}:{db_params['port']}")

            self.pool = psycopg2.pool.ThreadedConnectionPool(
                minconn=2,
                maxconn=10,
                **db_params
            )

            # Test the connection
            conn = self.pool.getconn()
            try:
                cur = conn.cursor()
                cur.execute("SELECT 1")
                result = cur.fetchone()
                if result[0] != 1:
                    raise RuntimeError("Database connection test failed")
                cur.close()
            finally:
                self.pool.putconn(conn)

            logger.info("Database pool created successfully")

        except Exception as e:
            logger.error(f"Failed to create database pool: {e}")
            raise

    async def disconnect(self):
        """Close database connection pool"""
        if self.pool:
            self.pool.closeall()
            self.pool = None
            logger.info("Database pool closed")

    def execute_query(self, query: str, params: Optional[List] = None) -> List[Dict[str, Any]]:
        """Execute a query that returns rows"""
        if not self.pool:
            raise RuntimeError("Database pool not initialized")

        conn = None
        try:
            conn = self.pool.getconn()
            cur = conn.cursor()
            cur.execute(query, params or [])
            rows = cur.fetchall()
            columns = [desc[0] for desc in cur.description]
            result = [dict(zip(columns, row)) for row in rows]
            conn.commit()
            cur.close()
            return result

        except Exception as e:
            if conn:
                conn.rollback()
            logger.error(f"Error executing query: {e}")
            raise
        finally:
            if conn:
                self.pool.putconn(conn)

    def execute_command(self, query: str, params: Optional[List] = None) -> int:
        """Execute a write statement and commit; returns the affected row count"""
        if not self.pool:
            raise RuntimeError("Database pool not initialized")

        conn = None
        try:
            conn = self.pool.getconn()
            cur = conn.cursor()
            cur.execute(query, params or [])
            affected = cur.rowcount
            conn.commit()
            cur.close()
            return affected

        except Exception as e:
            if conn:
                conn.rollback()
            logger.error(f"Error executing command: {e}")
            raise
        finally:
            if conn:
                self.pool.putconn(conn)

    async def health_check(self) -> bool:
        """Check database connection health"""
        try:
            if not self.pool:
                return False

            conn = self.pool.getconn()
            try:
                cur = conn.cursor()
                cur.execute("SELECT 1")
                result = cur.fetchone()
                cur.close()
                return result[0] == 1
            finally:
                self.pool.putconn(conn)

        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

# Global database manager instance
database_manager = DatabaseManager()
