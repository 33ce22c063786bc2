"""
Engine and connection helpers for the notification store.

Every query module works on an AsyncConnection handed in by its caller.
Components that open connections (fan-out, dispatcher, scheduler jobs) are
given an engine when they are built; the lazily created module engine is
what the API process passes them.
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from .tables import metadata  # noqa: F401 - exported for Alembic

_engine: AsyncEngine | None = None


def _get_database_url() -> str:
    """DATABASE_URL with a bare postgresql:// scheme switched to asyncpg."""
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise ValueError("DATABASE_URL environment variable must be set.")

    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    return database_url


def get_engine() -> AsyncEngine:
    """The process-wide engine, created on first call."""
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
async def get_connection(
    engine: AsyncEngine | None = None,
) -> AsyncGenerator[AsyncConnection, None]:
    """Read-only connection, e.g. for inbox listings and recipient lookups."""
    engine = engine or get_engine()
    async with engine.connect() as conn:
        yield conn


@asynccontextmanager
async def get_transaction(
    engine: AsyncEngine | None = None,
) -> AsyncGenerator[AsyncConnection, None]:
    """
    Connection inside BEGIN; commits on exit, rolls back if the block raises.

    A notification batch and the enrollment or request change that triggered
    it must each go through one of these to stay all-or-nothing.
    """
    engine = engine or get_engine()
    async with engine.begin() as conn:
        yield conn


async def close_engine() -> None:
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def is_configured() -> bool:
    return bool(os.environ.get("DATABASE_URL"))


def get_sync_database_url() -> str:
    """psycopg2 form of DATABASE_URL, for Alembic."""
    database_url = os.environ.get("DATABASE_URL", "")

    if "postgresql+asyncpg://" in database_url:
        return database_url.replace("postgresql+asyncpg://", "postgresql://")
    if database_url.startswith("postgresql://"):
        return database_url

    raise ValueError("DATABASE_URL must be set for migrations")
