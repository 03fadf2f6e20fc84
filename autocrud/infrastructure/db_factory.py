"""
Database connection factory utilities for autocrud.

Provides the async PostgreSQL pool that serves HTTP traffic, and a plain
sync connection for one-off tooling (seeding, ad-hoc inspection). Every
pooled connection runs in autocommit mode with the configured search_path
and statement timeout applied.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import psycopg
from psycopg import AsyncConnection, Connection, sql
from psycopg_pool import AsyncConnectionPool, PoolTimeout
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from autocrud.config import Settings, get_settings
from autocrud.utils.logging import get_logger

log = get_logger(__name__)


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


async def apply_session_settings(
    conn: AsyncConnection, schema: str, statement_timeout_ms: int
) -> None:
    """Point the session at ``schema`` and cap statement run time (0 disables)."""
    await conn.execute(sql.SQL("SET search_path TO {}").format(sql.Identifier(schema)))
    if statement_timeout_ms > 0:
        await conn.execute(
            sql.SQL("SET statement_timeout = {}").format(sql.Literal(int(statement_timeout_ms)))
        )


class PoolManager:
    """
    Owns the async connection pool for the lifetime of the application.

    Example
    -------
        manager = PoolManager(settings)
        await manager.open()
        async with manager.connection() as conn:
            await conn.execute("SELECT 1")
        await manager.close()
    """

    def __init__(self, settings: Optional[Settings] = None, dsn_override: Optional[str] = None):
        self.settings = settings or get_settings()
        self._dsn_override = dsn_override
        self._pool: Optional[AsyncConnectionPool] = None

    async def _configure(self, conn: AsyncConnection) -> None:
        await apply_session_settings(
            conn, self.settings.db_schema, self.settings.db_statement_timeout_ms
        )

    @property
    def pool(self) -> AsyncConnectionPool:
        if self._pool is None:
            raise RuntimeError("Connection pool is not open")
        return self._pool

    async def open(self) -> AsyncConnectionPool:
        """
        Create and open the pool, waiting for the minimum number of connections.

        Returns
        -------
        AsyncConnectionPool
            The managed pool instance.
        """
        if self._pool is None:
            self._pool = AsyncConnectionPool(
                conninfo=self._dsn_override or build_dsn(self.settings),
                min_size=self.settings.db_pool_min_size,
                max_size=self.settings.db_pool_max_size,
                kwargs={"autocommit": True},
                configure=self._configure,
                open=False,
            )
            try:
                await _open_pool(self._pool)
            except Exception:
                self._pool = None
                raise
            log.info(
                "Connection pool open",
                extra={
                    "db_host": self.settings.db_host,
                    "db_name": self.settings.db_name,
                    "pool_max_size": self.settings.db_pool_max_size,
                },
            )
        return self._pool

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        async with self.pool.connection() as conn:
            yield conn

    async def close(self) -> None:
        """Close the pool and release resources. Safe to call twice."""
        if self._pool is not None:
            pool, self._pool = self._pool, None
            await pool.close()
            log.info("Connection pool closed")


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((PoolTimeout, psycopg.OperationalError)),
    reraise=True,
)
async def _open_pool(pool: AsyncConnectionPool, timeout: float = 10.0) -> None:
    await pool.open(wait=True, timeout=timeout)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn_override: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.
    Use this for one-off tooling; request handling goes through PoolManager.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(dsn_override or build_dsn())


__all__ = [
    "PoolManager",
    "apply_session_settings",
    "build_dsn",
    "get_sync_connection",
]
