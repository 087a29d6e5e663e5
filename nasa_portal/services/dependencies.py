"""FastAPI dependencies that wire the stores to the request session."""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from nasa_portal.cache import CacheClient, get_cache_client
from nasa_portal.db.connection import get_db
from nasa_portal.services.collections_store import CollectionsStore
from nasa_portal.services.favorites import FavoritesAnalytics, StatsCache
from nasa_portal.services.favorites_store import FavoritesStore


async def get_favorites_store(
    session: AsyncSession = Depends(get_db),
    cache_client: CacheClient = Depends(get_cache_client),
) -> FavoritesStore:
    return FavoritesStore(
        session,
        cache=StatsCache(cache_client),
        analytics=FavoritesAnalytics(),
    )


async def get_collections_store(
    favorites: FavoritesStore = Depends(get_favorites_store),
) -> CollectionsStore:
    """Build a collections store sharing the favorites store's session.

    FastAPI caches ``get_favorites_store`` per request, so both stores run on
    the same :class:`AsyncSession` and membership checks see the same
    transaction.
    """

    return CollectionsStore(
        favorites.session,
        favorites,
        cache=favorites.cache,
        analytics=favorites.analytics,
    )


__all__ = ["get_collections_store", "get_favorites_store"]
