from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from nasa_portal.settings import get_settings

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    """Return the async database URL resolved from settings."""

    return get_settings().resolved_database_url


def get_database_type() -> str:
    """Return ``sqlite`` or ``postgresql`` for the configured database."""

    return get_settings().database_type


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    """Turn on FK enforcement so ``ON DELETE CASCADE`` behaves like PostgreSQL."""

    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(url: str | None = None) -> AsyncEngine:
    """Create the async SQLAlchemy engine for the configured database.

    PostgreSQL engines keep a warm pool; SQLite engines are created without
    pooling arguments and get foreign key enforcement switched on for every
    new DBAPI connection.
    """

    settings = get_settings()
    url = url or settings.resolved_database_url

    if url.startswith("sqlite"):
        engine = create_async_engine(url, future=True, echo=False)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        url,
        future=True,
        echo=False,
        pool_size=10,  # Maintain 10 warm connections
        max_overflow=20,  # Allow up to 30 total connections
        pool_pre_ping=True,  # Validate connections before use
        pool_recycle=1800,  # Recycle connections every 30 min
        pool_timeout=settings.database_pool_timeout,
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
    """Dispose the shared engine and forget the cached session factory."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    Dependency to provide database session.

    Stores commit their own units of work; anything still pending when the
    request fails is rolled back before the session closes.
    """
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise

