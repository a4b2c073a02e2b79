"""
Async PostgreSQL connection pooling for FastAPI.

The pool is created once in the application lifespan and each request borrows
one connection through the :func:`get_pg` dependency.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator

import asyncpg

from ..config import settings


def _normalize_dsn(dsn: str) -> str:
    """Strip SQLAlchemy-style driver suffixes and normalise the scheme."""

    if dsn.startswith(("postgresql+", "postgres+")):
        dsn = "postgresql://" + dsn.split("://", 1)[1]
    if dsn.startswith("postgres://"):
        dsn = "postgresql://" + dsn.split("://", 1)[1]
    return dsn


DSN = _normalize_dsn(settings.DATABASE_URL)

_pool: asyncpg.Pool | None = None


async def _init_conn(conn: asyncpg.Connection) -> None:
    """Per-connection setup: session settings and jsonb <-> Python codec."""

    await conn.execute(
        """
        SET application_name = 'onionpost-api';
        SET statement_timeout = '5s';
        SET idle_in_transaction_session_timeout = '5s';
        """
    )
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


async def init_pool(
    min_size: int = settings.DB_POOL_MIN_SIZE,
    max_size: int = settings.DB_POOL_MAX_SIZE,
) -> asyncpg.Pool:
    """Create the global pool on first call and return it afterwards."""

    global _pool

    if _pool is None:
        _pool = await asyncpg.create_pool(
            dsn=DSN,
            min_size=min_size,
            max_size=max_size,
            max_inactive_connection_lifetime=60,
            init=_init_conn,
        )

    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


async def get_pg() -> AsyncIterator[asyncpg.Connection]:
    """
    FastAPI dependency yielding a pooled connection for the current request.

    Raises:
        RuntimeError: If the pool could not be created.
    """
    pool = await init_pool()

    if pool is None:
        raise RuntimeError(
            "PostgreSQL connection pool not initialized. "
            "Call init_pool() in application lifespan."
        )

    async with pool.acquire() as conn:
        yield conn
