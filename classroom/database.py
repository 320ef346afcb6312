"""
Engine and connection helpers for the live class tables.

Query modules receive an AsyncConnection from get_connection() (reads) or
get_transaction() (writes, committed when the block exits cleanly).
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

ASYNC_SCHEME = "postgresql+asyncpg://"
SYNC_SCHEME = "postgresql://"

_engine: AsyncEngine | None = None


def _with_scheme(url: str, scheme: str) -> str:
    for known in (ASYNC_SCHEME, SYNC_SCHEME):
        if url.startswith(known):
            return scheme + url[len(known):]
    return url


def _get_database_url() -> str:
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise ValueError("DATABASE_URL environment variable must be set.")
    return _with_scheme(database_url, ASYNC_SCHEME)


def get_engine() -> AsyncEngine:
    """Lazily build the shared engine from DATABASE_URL."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            _get_database_url(),
            echo=os.environ.get("SQL_ECHO", "").lower() == "true",
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=1800,
        )
    return _engine


@asynccontextmanager
async def get_connection() -> AsyncGenerator[AsyncConnection, None]:
    async with get_engine().connect() as conn:
        yield conn


@asynccontextmanager
async def get_transaction() -> AsyncGenerator[AsyncConnection, None]:
    """Connection inside BEGIN; an exception in the block rolls back."""
    async with get_engine().begin() as conn:
        yield conn


async def close_engine() -> None:
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def is_configured() -> bool:
    return bool(os.environ.get("DATABASE_URL"))


def get_sync_database_url() -> str:
    """DATABASE_URL in the plain postgresql:// form psycopg2 (and Alembic) expects."""
    database_url = os.environ.get("DATABASE_URL", "")
    sync_url = _with_scheme(database_url, SYNC_SCHEME)
    if not sync_url.startswith(SYNC_SCHEME):
        raise ValueError("DATABASE_URL must be set for migrations")
    return sync_url
