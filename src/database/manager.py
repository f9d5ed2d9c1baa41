"""
Database manager for PostgreSQL operations
"""

import asyncpg
import logging
from typing import Dict, Optional
from datetime import datetime, timezone

from .models import RouterRecord, _convert_ip_address

logger = logging.getLogger(__name__)

class DatabaseManager:
    """Manages PostgreSQL storage of router records, one per user"""
    
    def __init__(self, config: Dict):
        self.config = config
        self.pool = None
        self.db_host = config['database']['host']
        self.db_port = config['database']['port'] 
        self.db_name = config['database']['database']
        self.db_user = config['database']['username']
        self.db_password = config['database']['password']
        self.min_pool_size = config['database'].get('min_pool_size', 2)
        self.max_pool_size = config['database'].get('max_pool_size', 10)
        
    async def initialize(self):
        """Initialize database connection pool and schema"""
        try:
            self.pool = await asyncpg.create_pool(
                host=self.db_host,
                port=self.db_port,
                database=self.db_name,
                user=self.db_user,
                password=self.db_password,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=10
            )
            
            logger.info("Database connection pool created")
            
            await self.create_schema()
            logger.info("Database schema initialized")
            
        except Exception as e:
            logger.error(f"Database initialization failed: {e}")
            raise
            
    async def create_schema(self):
        """Create database tables if they don't exist"""
        schema_sql = """
        CREATE TABLE IF NOT EXISTS routers (
            user_id TEXT PRIMARY KEY,
            ip_address INET NOT NULL,
            username TEXT,
            password TEXT,
            brand TEXT,
            model TEXT,
            created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
        );
        """
        
        async with self.pool.acquire() as conn:
            await conn.execute(schema_sql)
    
    async def get_router_by_user(self, user_id: str) -> Optional[RouterRecord]:
        """Get the router on file for a user"""
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow("""
                    SELECT user_id, ip_address, username, password, brand, model,
                           created_at, updated_at
                    FROM routers
                    WHERE user_id = $1
                """, user_id)
                
                if row:
                    return RouterRecord(
                        user_id=row['user_id'],
                        ip_address=_convert_ip_address(row['ip_address']),
                        username=row['username'],
                        password=row['password'],
                        brand=row['brand'],
                        model=row['model'],
                        created_at=row['created_at'],
                        updated_at=row['updated_at']
                    )
                return None
                
        except Exception as e:
            logger.error(f"Failed to get router for user {user_id}: {e}")
            return None

    async def upsert_router(self, record: RouterRecord) -> bool:
        """
        Insert or update the user's router record.
        Brand and model are kept when the new record does not know them.
        """
        try:
            now = datetime.now(timezone.utc)
            async with self.pool.acquire() as conn:
                await conn.execute("""
                    INSERT INTO routers (
                        user_id, ip_address, username, password, brand, model,
                        created_at, updated_at
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $7)
                    ON CONFLICT (user_id) DO UPDATE SET
                        ip_address = $2,
                        username = $3,
                        password = $4,
                        brand = COALESCE($5, routers.brand),
                        model = COALESCE($6, routers.model),
                        updated_at = $7
                """,
                record.user_id, record.ip_address, record.username, record.password,
                record.brand, record.model, now
                )
            logger.info(f"Saved router {record.ip_address} for user {record.user_id}")
            return True
        except Exception as e:
            logger.error(f"Failed to upsert router for user {record.user_id}: {e}")
            return False

    async def delete_router(self, user_id: str) -> bool:
        """Delete the user's router record; False when there was none"""
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute("""
                    DELETE FROM routers WHERE user_id = $1
                """, user_id)
                
                rows_affected = int(result.split()[-1]) if result and result.split() else 0
                if rows_affected:
                    logger.info(f"Deleted router record for user {user_id}")
                return rows_affected > 0
                
        except Exception as e:
            logger.error(f"Failed to delete router for user {user_id}: {e}")
            return False

    async def is_healthy(self) -> bool:
        """Check the pool can run a trivial query"""
        if not self.pool:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            return False

    async def close(self):
        """Close database connection pool"""
        if self.pool:
            await self.pool.close()
            logger.info("Database connection pool closed")
