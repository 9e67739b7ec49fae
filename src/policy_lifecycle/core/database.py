# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Database connection management with asyncpg and connection pooling."""

import contextlib
import json
import time
from collections.abc import AsyncIterator
from typing import Any

import asyncpg
from attrs import field, frozen
from beartype import beartype

from .config import get_settings
from .logging_utils import get_logger

logger = get_logger(__name__)

# Failures that a later re-delivery of the same request can succeed on.
TRANSIENT_DB_ERRORS: tuple[type[BaseException], ...] = (
    TimeoutError,
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
    asyncpg.QueryCanceledError,
    asyncpg.DeadlockDetectedError,
    asyncpg.SerializationError,
)


@frozen
class PoolConfig:
    """Immutable pool configuration."""

    min_connections: int = field()
    max_connections: int = field()
    connection_timeout: float = field(default=10.0)
    command_timeout: float = field(default=30.0)
    server_settings: dict[str, str] = field(factory=dict)


@frozen
class PoolMetrics:
    """Immutable pool metrics snapshot."""

    size: int = field()
    free_size: int = field()
    min_size: int = field()
    max_size: int = field()
    queries_slow: int = field()


class Database:
    """asyncpg pool wrapper used by every lifecycle service."""

    SLOW_QUERY_MS = 1000.0

    def __init__(self) -> None:
        """Initialize database manager."""
        self._pool: asyncpg.Pool | None = None
        self._settings = get_settings()
        self._queries_slow = 0

    @beartype
    def _get_pool_config(self) -> PoolConfig:
        return PoolConfig(
            min_connections=self._settings.database_pool_min,
            max_connections=self._settings.database_pool_max,
            connection_timeout=self._settings.database_pool_timeout,
            command_timeout=self._settings.database_command_timeout,
            server_settings={
                "application_name": "policy_lifecycle",
                "timezone": "UTC",
            },
        )

    async def _init_connection(self, conn: asyncpg.Connection) -> None:
        """Register the JSONB codec and per-session timeouts."""
        await conn.set_type_codec(
            "jsonb",
            encoder=lambda v: json.dumps(v, default=str),
            decoder=json.loads,
            schema="pg_catalog",
        )
        await conn.execute(
            """
            SET lock_timeout = '10s';
            SET idle_in_transaction_session_timeout = '60s';
        """
        )

    @beartype
    async def connect(self) -> None:
        """Create the connection pool."""
        if self._pool is not None:
            return

        config = self._get_pool_config()
        self._pool = await asyncpg.create_pool(
            self._settings.database_url,
            min_size=config.min_connections,
            max_size=config.max_connections,
            command_timeout=config.command_timeout,
            server_settings=config.server_settings,
            init=self._init_connection,
        )
        logger.info(
            "Database pool ready (min=%s, max=%s)",
            config.min_connections,
            config.max_connections,
        )

    @beartype
    async def disconnect(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            await self._pool.close()
        self._pool = None

    @contextlib.asynccontextmanager
    async def acquire(
        self, *, timeout: float | None = None
    ) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a connection, tracking slow holders."""
        if self._pool is None:
            raise RuntimeError("Database not connected")

        timeout = timeout or self._settings.database_pool_timeout
        start_time = time.perf_counter()
        async with self._pool.acquire(timeout=timeout) as conn:
            yield conn

        duration_ms = (time.perf_counter() - start_time) * 1000
        if duration_ms > self.SLOW_QUERY_MS:
            self._queries_slow += 1
            logger.warning("Connection held for %.0fms", duration_ms)

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Create a database transaction context.

        Statements that must commit or roll back together have to be issued
        on the yielded connection, not through the pool helpers below.
        """
        async with self.acquire() as conn:
            async with conn.transaction():
                yield conn

    @beartype
    async def execute(self, query: str, *args: Any) -> str:
        """Execute a query without returning results."""
        async with self.acquire() as conn:
            return await conn.execute(query, *args)

    @beartype
    async def fetch(self, query: str, *args: Any) -> list[Any]:
        """Execute a query and fetch all results."""
        async with self.acquire() as conn:
            return await conn.fetch(query, *args)

    @beartype
    async def fetchrow(self, query: str, *args: Any) -> Any:
        """Execute a query and fetch a single row."""
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    @beartype
    async def fetchval(self, query: str, *args: Any) -> Any:
        """Execute a query and fetch a single value."""
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args)

    @beartype
    async def get_pool_stats(self) -> PoolMetrics:
        """Get pool statistics."""
        if self._pool is None:
            return PoolMetrics(
                size=0, free_size=0, min_size=0, max_size=0, queries_slow=0
            )
        return PoolMetrics(
            size=self._pool.get_size(),
            free_size=self._pool.get_free_size(),
            min_size=self._pool.get_min_size(),
            max_size=self._pool.get_max_size(),
            queries_slow=self._queries_slow,
        )

    @property
    def is_connected(self) -> bool:
        """Check if database is connected."""
        return self._pool is not None


_database: Database | None = None


@beartype
def get_database() -> Database:
    """Get global database instance."""
    global _database
    if _database is None:
        _database = Database()
    return _database


@beartype
async def init_db_pool() -> None:
    """Initialize the database connection pool."""
    await get_database().connect()


@beartype
async def close_db_pool() -> None:
    """Close the database connection pool."""
    await get_database().disconnect()
