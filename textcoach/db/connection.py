"""Database connection management for the inference pipeline.

Provides asynchronous database access using SQLAlchemy. Supports SQLite
(aiosqlite) for development and tests, and PostgreSQL (asyncpg) in
production. Every pipeline phase checks a session out of
AsyncSessionLocal and returns it as soon as the phase ends, so no phase
holds more than one pooled connection.

Usage:
    from textcoach.db.connection import async_init_db, get_async_db_context

    await async_init_db()
    async with get_async_db_context() as db:
        result = await db.execute(select(Conversation))
"""

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from textcoach.db.models import Base


# Configuration
def get_database_url() -> str:
    """Get database URL from environment or use default SQLite.

    Precedence:
    1. DATABASE_URL
    2. sqlite:///./textcoach.db
    """
    database_url = os.environ.get("DATABASE_URL", "").strip()
    if database_url:
        return database_url
    return "sqlite:///./textcoach.db"


def to_async_url(url: str) -> str:
    """Convert a sync database URL to its async driver form.

    sqlite:/// becomes sqlite+aiosqlite:/// and postgresql:// becomes
    postgresql+asyncpg://. URLs that already name a driver are unchanged.
    """
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def _set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
    """Configure SQLite pragmas for correctness and concurrency.

    Enables:
    - foreign_keys=ON: Referential integrity (disabled by default in SQLite).
    - journal_mode=WAL: Concurrent readers alongside the single writer, so the
      detached context task can read while a reply commits.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL;")
    cursor.close()


def create_engine_for_url(url: str) -> AsyncEngine:
    """Create an async engine, installing SQLite pragmas when applicable.

    Args:
        url: Sync or async database URL.

    Returns:
        AsyncEngine bound to the async form of the URL.
    """
    async_url = to_async_url(url)
    engine = create_async_engine(
        async_url,
        echo=os.environ.get("SQL_ECHO", "").lower() == "true",
    )
    if async_url.startswith("sqlite"):
        event.listen(engine.sync_engine, "connect", _set_sqlite_pragma)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build a session factory with the pipeline's session settings."""
    return async_sessionmaker(
        autoflush=False,
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# Engine creation
DATABASE_URL = get_database_url()
async_engine = create_engine_for_url(DATABASE_URL)

# Session factory
AsyncSessionLocal = create_session_factory(async_engine)


@asynccontextmanager
async def get_async_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Async context manager for a committed-on-success session.

    Usage:
        async with get_async_db_context() as db:
            db.add(conversation)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Initialization functions


async def async_init_db(engine: AsyncEngine | None = None) -> None:
    """Create all database tables asynchronously.

    Safe to call multiple times - will not recreate existing tables.

    Args:
        engine: Engine to initialize. Defaults to the module engine.
    """
    target = engine or async_engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_async_db() -> None:
    """Close the async engine and dispose of connection pool."""
    await async_engine.dispose()
