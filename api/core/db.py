"""
Async database access helpers (raw SQL) using asyncpg.

This module owns the connection pool. FastAPI initializes it on startup and
closes it on shutdown (see `api/main.py`).

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...

Connection-level failures (server unreachable, pool exhausted past the
acquire timeout, dropped connections) are re-raised as
`StoreUnavailableError`. Query errors propagate unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

from . import settings
from .errors import StoreUnavailableError

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None

_UNAVAILABLE_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncpg.exceptions.TooManyConnectionsError,
    asyncpg.exceptions.ConnectionDoesNotExistError,
)


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url() -> str:
    url = settings.database_url_raw()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return _sanitize_database_url(url)


async def init_pool() -> None:
    global _pool
    if _pool is not None:
        return None
    min_size = settings.db_pool_min_size()
    max_size = settings.db_pool_max_size()
    try:
        _pool = await asyncpg.create_pool(
            dsn=database_url(),
            min_size=min_size,
            max_size=max_size,
            command_timeout=settings.db_command_timeout_s(),
        )
    except _UNAVAILABLE_ERRORS as exc:
        raise StoreUnavailableError(f"Could not open database pool: {exc}") from exc
    logger.info("db_pool_open min_size=%s max_size=%s", min_size, max_size)


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return None
    await _pool.close()
    _pool = None
    logger.info("db_pool_closed")


def pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("DB pool is not initialized. Call init_pool() on startup.")
    return _pool


@asynccontextmanager
async def connection() -> AsyncIterator[asyncpg.Connection]:
    """
    Borrow a pooled connection for several statements.

    Waits at most DB_ACQUIRE_TIMEOUT_S when every connection is busy.
    """
    try:
        async with pool().acquire(timeout=settings.db_acquire_timeout_s()) as conn:
            yield conn
    except _UNAVAILABLE_ERRORS as exc:
        logger.warning("db_unavailable error=%r", exc)
        raise StoreUnavailableError("Database is unavailable, retry later.") from exc


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    async with connection() as conn:
        row = await conn.fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None

