from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from marketplace_api.settings import get_settings

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    """Return the async SQLAlchemy URL resolved from application settings."""

    return get_settings().resolved_database_url


def create_engine(url: str | None = None) -> AsyncEngine:
    """Create the async SQLAlchemy engine.

    PostgreSQL gets a warm connection pool; SQLite keeps SQLAlchemy's defaults
    because the aiosqlite driver does not benefit from pooling.
    """

    resolved_url = url or get_database_url()
    if resolved_url.startswith("sqlite"):
        return create_async_engine(resolved_url, future=True, echo=False)

    return create_async_engine(
        resolved_url,
        future=True,
        echo=False,
        pool_size=10,  # Maintain 10 warm connections
        max_overflow=20,  # Allow up to 30 total connections
        pool_pre_ping=True,  # Validate connections before use
        pool_recycle=1800,  # Recycle connections every 30 min
        pool_timeout=30,  # Timeout for getting connection from pool
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


# Global engine/session instances for FastAPI dependency injection
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get or create the global engine instance."""
    global _engine
    if _engine is None:
        _engine = create_engine()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Lazily create a session factory bound to the shared engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(get_engine())
    return _session_factory


async def dispose_engine() -> None:
    """Dispose of the shared engine so connections close on shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("Database engine disposed")
    _engine = None
    _session_factory = None


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    Dependency to provide database session.

    Services that mutate state commit explicitly before returning so a
    response is never sent for work that has not been persisted.  The
    dependency only rolls back on error and closes the session.
    """
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_async_session_context() -> AsyncIterator[AsyncSession]:
    """
    Async context manager for scripts/CLI tasks that need manual session control.
    """
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
