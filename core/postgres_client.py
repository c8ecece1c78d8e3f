"""
PostgreSQL Client Wrapper

Thin asyncpg pool wrapper providing a consistent database access pattern for
repositories: rows come back as plain dicts and parameters are passed as a list.

Usage:
    from core.postgres_client import PostgresClientWrapper

    db = PostgresClientWrapper("customer_core_service", config=config_manager)
    await db.connect()
    row = await db.query_row("SELECT * FROM customers WHERE id = $1", [customer_id])
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import asyncpg

if TYPE_CHECKING:
    from core.config_manager import ConfigManager

logger = logging.getLogger(__name__)


class PostgresClientWrapper:
    """
    PostgreSQL client backed by an asyncpg connection pool.

    The pool is created lazily on first use (or by connect()) and shared by
    all concurrent callers; asyncpg pools are safe for concurrent use.
    """

    def __init__(
        self,
        service_name: str,
        config: Optional["ConfigManager"] = None,
        dsn: Optional[str] = None,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
    ):
        """
        Initialize PostgreSQL client wrapper.

        Args:
            service_name: Name of the service using this client
            config: ConfigManager used to build the DSN when none is given
            dsn: Explicit connection string (overrides config)
            min_size: Minimum pool size
            max_size: Maximum pool size
        """
        from core.config_manager import ConfigManager

        self.service_name = service_name
        if config is None:
            config = ConfigManager(service_name)

        infra = config.get_infra_config()
        self.dsn = dsn or config.get_postgres_dsn()
        self.min_size = min_size or infra.postgres_min_pool
        self.max_size = max_size or infra.postgres_max_pool
        self._pool: Optional[asyncpg.Pool] = None

        logger.info(
            f"PostgreSQL client initialized for {service_name}: "
            f"{infra.postgres_host}:{infra.postgres_port}/{infra.postgres_db}"
        )

    async def connect(self) -> asyncpg.Pool:
        """Create the connection pool if it does not exist yet"""
        if self._pool is None:
            self._pool = await asyncpg.create_pool(
                dsn=self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
            )
            logger.info(f"PostgreSQL pool ready for {self.service_name}")
        return self._pool

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def health_check(self) -> Optional[Dict]:
        """Check database health"""
        try:
            pool = await self.connect()
            value = await pool.fetchval("SELECT 1")
            return {"healthy": value == 1}
        except Exception as e:
            logger.error(f"PostgreSQL health check failed: {e}")
            return {"healthy": False, "error": str(e)}

    async def query(self, sql: str, params: Optional[List[Any]] = None) -> List[Dict[str, Any]]:
        """Execute query and return results"""
        pool = await self.connect()
        rows = await pool.fetch(sql, *(params or []))
        return [dict(row) for row in rows]

    async def query_row(self, sql: str, params: Optional[List[Any]] = None) -> Optional[Dict[str, Any]]:
        """Execute query and return single row"""
        pool = await self.connect()
        row = await pool.fetchrow(sql, *(params or []))
        return dict(row) if row is not None else None

    async def execute(self, sql: str, params: Optional[List[Any]] = None) -> str:
        """Execute SQL statement and return the command status (e.g. 'DELETE 3')"""
        pool = await self.connect()
        return await pool.execute(sql, *(params or []))

    async def execute_many(self, sql: str, params_list: List[List[Any]]) -> None:
        """Execute SQL statement with multiple parameter sets in one transaction"""
        pool = await self.connect()
        async with pool.acquire() as conn:
            async with conn.transaction():
                await conn.executemany(sql, params_list)

    async def close(self):
        """Close the pool"""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info(f"PostgreSQL pool closed for {self.service_name}")
