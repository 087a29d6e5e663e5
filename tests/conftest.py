"""Shared fixtures: an in-memory database, a cache double and wired stores."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from tests import _ensure_repo_on_path

_ensure_repo_on_path()

from nasa_portal.db.connection import create_engine, create_session_factory  # noqa: E402
from nasa_portal.db.models import Base  # noqa: E402
from nasa_portal.services.collections_store import CollectionsStore  # noqa: E402
from nasa_portal.services.favorites import StatsCache  # noqa: E402
from nasa_portal.services.favorites_store import FavoritesStore  # noqa: E402


class MemoryCache:
    """In-memory cache double that mimics :class:`nasa_portal.cache.CacheClient`."""

    def __init__(self) -> None:
        self.store: dict[str, Any] = {}
        self.deleted: list[str] = []

    async def get_json(self, key: str) -> Any:
        return self.store.get(key)

    async def set_json(self, key: str, value: Any, ttl: int | None = None) -> None:
        self.store[key] = value

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self.store.pop(key, None)
            self.deleted.append(key)


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine with foreign keys enforced and tables created."""

    engine = create_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine) -> AsyncIterator[AsyncSession]:
    async with create_session_factory(engine)() as db_session:
        yield db_session
        if db_session.in_transaction():
            await db_session.rollback()


@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def favorites_store(session: AsyncSession, memory_cache: MemoryCache) -> FavoritesStore:
    return FavoritesStore(session, cache=StatsCache(memory_cache))


@pytest.fixture
def collections_store(
    session: AsyncSession,
    favorites_store: FavoritesStore,
    memory_cache: MemoryCache,
) -> CollectionsStore:
    return CollectionsStore(session, favorites_store, cache=StatsCache(memory_cache))


def apod_payload(title: str = "Pillars of Creation", **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "title": title,
        "url": "https://apod.nasa.gov/apod/image/pillars.jpg",
        "media_type": "image",
    }
    payload.update(extra)
    return payload
