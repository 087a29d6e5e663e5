from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from nasa_portal.settings import get_settings

logger = logging.getLogger(__name__)

_FAVORITE_STATS_PREFIX = "favorites:stats"
_COLLECTION_STATS_PREFIX = "collections:stats"

_redis_client: Redis | None = None
_client_lock = asyncio.Lock()
_redis_disabled = False


def favorite_stats_key(owner_id: str) -> str:
    return f"{_FAVORITE_STATS_PREFIX}:{owner_id}"


def collection_stats_key(owner_id: str) -> str:
    return f"{_COLLECTION_STATS_PREFIX}:{owner_id}"


def owner_stats_keys(owner_id: str) -> tuple[str, str]:
    """Return every cache key derived from ``owner_id``'s data."""

    return favorite_stats_key(owner_id), collection_stats_key(owner_id)


async def get_redis() -> Redis | None:
    """Get Redis client, returning None if connection fails."""
    global _redis_client, _redis_disabled

    if _redis_disabled:
        logger.debug("Redis connection disabled after previous failure; skipping attempt.")
        return None

    # ALWAYS acquire lock first to prevent TOCTOU race
    async with _client_lock:
        if _redis_client is not None:
            return _redis_client

        if _redis_disabled:
            return None

        try:
            client = Redis.from_url(
                get_settings().redis_url, decode_responses=True, encoding="utf-8"
            )
            await client.ping()
            _redis_client = client
            logger.info("Redis connection established successfully")
            return _redis_client
        except (RedisConnectionError, RedisTimeoutError, OSError) as exc:
            logger.warning(f"Redis connection failed: {exc}. Stats caching will be disabled.")
            _redis_client = None
            _redis_disabled = True
            return None


class CacheClient:
    """JSON cache facade that turns Redis outages into cache misses."""

    def __init__(self, redis: Redis | None, *, default_ttl: int | None = None) -> None:
        self._redis = redis
        self._default_ttl = default_ttl or get_settings().stats_cache_ttl_seconds

    async def get_json(self, key: str) -> Any:
        if self._redis is None:
            return None
        try:
            payload = await self._redis.get(key)
        except (RedisConnectionError, RedisTimeoutError) as exc:
            logger.debug(f"Redis get failed for key {key}: {exc}")
            return None
        if payload is None:
            return None
        try:
            return json.loads(payload)
        except json.JSONDecodeError:
            return None

    async def set_json(self, key: str, value: Any, ttl: int | None = None) -> None:
        if self._redis is None:
            return
        try:
            encoded = json.dumps(value, default=str)
            await self._redis.set(key, encoded, ex=ttl or self._default_ttl)
        except (RedisConnectionError, RedisTimeoutError) as exc:
            logger.debug(f"Redis set failed for key {key}: {exc}")

    async def delete(self, *keys: str) -> None:
        if self._redis is None or not keys:
            return
        try:
            await self._redis.delete(*keys)
        except (RedisConnectionError, RedisTimeoutError) as exc:
            logger.debug(f"Redis delete failed: {exc}")


async def get_cache_client() -> CacheClient:
    redis = await get_redis()
    return CacheClient(redis)


async def close_redis() -> None:
    """Close the global Redis connection gracefully."""
    global _redis_client, _redis_disabled
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
    _redis_disabled = False


__all__ = [
    "CacheClient",
    "close_redis",
    "collection_stats_key",
    "favorite_stats_key",
    "get_cache_client",
    "get_redis",
    "owner_stats_keys",
]
