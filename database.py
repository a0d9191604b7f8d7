"""
PostgreSQL access for the gateway (asyncpg pool)

Only the operations the gateway needs are exposed: information_schema
lookups for reconciliation, a transaction for DDL, and typed execution of
compiled query/insert statements.
"""

import asyncpg
import logging
from typing import Optional, List, Dict, Any
from contextlib import asynccontextmanager

from config import DatabaseConfig
from schema.types import coerce_argument

logger = logging.getLogger(__name__)

# DB_SSL_MODE -> asyncpg `ssl` argument; anything else means 'prefer'
SSL_MODES = {
    'require': True,
    'disable': False,
}


class DatabaseConnection:
    """
    Connection pool for the managed table's database.

    Usage:
        db = DatabaseConnection(DatabaseConfig.from_environment())
        await db.connect()
        rows = await db.fetch_coerced("SELECT * FROM data WHERE temp > $1", ["20"])
        await db.disconnect()
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self):
        if self.pool is not None:
            logger.warning("Connection pool already initialized")
            return

        try:
            self.pool = await asyncpg.create_pool(
                dsn=self.config.asyncpg_dsn,
                min_size=self.config.min_pool_size,
                max_size=self.config.max_pool_size,
                command_timeout=self.config.command_timeout,
                ssl=SSL_MODES.get(self.config.ssl_mode, 'prefer'),
            )
        except Exception as e:
            logger.error(f"❌ Could not open pool to {self.config.host}:{self.config.port}/{self.config.database}: {e}")
            raise
        logger.info(f"✅ Connected to PostgreSQL at {self.config.host}:{self.config.port}/{self.config.database}")

    async def disconnect(self):
        if self.pool is None:
            return
        await self.pool.close()
        self.pool = None
        logger.info("Database connection pool closed")

    @asynccontextmanager
    async def _connection(self):
        if self.pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        async with self.pool.acquire() as conn:
            yield conn

    async def fetch(self, query: str, *args) -> List[asyncpg.Record]:
        async with self._connection() as conn:
            return await conn.fetch(query, *args)

    async def fetchval(self, query: str, *args) -> Any:
        async with self._connection() as conn:
            return await conn.fetchval(query, *args)

    async def fetch_coerced(self, query: str, args: List[Any]) -> List[asyncpg.Record]:
        """
        Prepare `query`, convert text arguments to the parameter types
        PostgreSQL inferred for it, then fetch all rows.

        Request parameters arrive as strings, while asyncpg only encodes
        native Python values (e.g. float for a double precision parameter).

        Raises:
            ValueError: an argument cannot be converted to its parameter type
        """
        async with self._connection() as conn:
            statement = await conn.prepare(query)
            coerced = []
            for position, (value, parameter) in enumerate(zip(args, statement.get_parameters()), start=1):
                try:
                    coerced.append(coerce_argument(value, parameter.name))
                except ValueError as e:
                    raise ValueError(f"invalid input for query argument ${position}: {e}") from e
            return await statement.fetch(*coerced)

    @asynccontextmanager
    async def transaction(self):
        """
        Yield a connection inside a transaction; used for schema changes.

        Usage:
            async with db.transaction() as conn:
                await conn.execute("ALTER TABLE data ADD COLUMN pressure INTEGER")
        """
        async with self._connection() as conn:
            async with conn.transaction():
                yield conn

    async def check_connection(self) -> bool:
        if self.pool is None:
            return False
        try:
            return await self.fetchval("SELECT 1") == 1
        except Exception as e:
            logger.error(f"Connection check failed: {e}")
            return False

    async def get_pool_stats(self) -> Dict[str, Any]:
        """Pool size figures reported by /healthz"""
        if self.pool is None:
            return {'status': 'disconnected'}
        return {
            'status': 'connected',
            'size': self.pool.get_size(),
            'idle': self.pool.get_idle_size(),
            'min_size': self.config.min_pool_size,
            'max_size': self.config.max_pool_size,
        }
