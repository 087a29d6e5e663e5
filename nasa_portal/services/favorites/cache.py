"""Caching helpers for the per-owner stats payloads."""

from __future__ import annotations

from nasa_portal.cache import (
    CacheClient,
    collection_stats_key,
    favorite_stats_key,
    owner_stats_keys,
)
from nasa_portal.schemas.collections import CollectionStats
from nasa_portal.schemas.favorites import FavoriteStats


class StatsCache:
    """Typed wrapper around :class:`CacheClient` for stats documents.

    Only aggregate stats are cached.  Favorites, collections and memberships are
    always read from the database so the uniqueness and ownership rules never
    depend on cache freshness.
    """

    def __init__(self, client: CacheClient) -> None:
        self._client = client

    async def read_favorite_stats(self, *, owner_id: str) -> FavoriteStats | None:
        cached = await self._client.get_json(favorite_stats_key(owner_id))
        return FavoriteStats(**cached) if cached is not None else None

    async def write_favorite_stats(self, *, owner_id: str, payload: FavoriteStats) -> None:
        await self._client.set_json(
            favorite_stats_key(owner_id), payload.model_dump(mode="json")
        )

    async def read_collection_stats(self, *, owner_id: str) -> CollectionStats | None:
        cached = await self._client.get_json(collection_stats_key(owner_id))
        return CollectionStats(**cached) if cached is not None else None

    async def write_collection_stats(
        self, *, owner_id: str, payload: CollectionStats
    ) -> None:
        await self._client.set_json(
            collection_stats_key(owner_id), payload.model_dump(mode="json")
        )

    async def invalidate(self, *, owner_id: str) -> None:
        """Delete every stats document derived from ``owner_id``'s data."""

        await self._client.delete(*owner_stats_keys(owner_id))
