"""Redis-backed cache for catalog listing pages.

Only read-side listing payloads are cached.  Favorite sets are never cached:
they are read straight from the store after every mutation, so a stale cache
entry can never make a confirmed add or remove appear undone.

Redis is optional at runtime.  When the server cannot be reached the client
logs once, disables itself for the rest of the process, and every cache
operation degrades to a no-op.
"""

from __future__ import annotations

import asyncio
import json
import logging
from hashlib import sha256
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from marketplace_api.settings import get_settings

logger = logging.getLogger(__name__)

_LISTING_PREFIX = "catalog:listing"

_redis_client: Redis | None = None
_client_lock = asyncio.Lock()
_redis_disabled = False

_UNREACHABLE_ERRORS: tuple[type[BaseException], ...] = (
    RedisConnectionError,
    RedisTimeoutError,
    OSError,
)


def catalog_listing_key(term: str, page: int, page_size: int) -> str:
    """Return the cache key for one listing page.

    The search term is lower-cased before hashing because matching is
    case-insensitive; ``"Phone"`` and ``"phone"`` share a cache entry.
    """

    signature = "|".join([term.strip().lower(), str(page), str(page_size)])
    digest = sha256(signature.encode("utf-8")).hexdigest()
    return f"{_LISTING_PREFIX}:{digest}"


async def get_redis() -> Redis | None:
    """Return the shared Redis client, or ``None`` when Redis is unreachable."""

    global _redis_client, _redis_disabled

    if _redis_disabled:
        return None

    async with _client_lock:
        if _redis_client is not None:
            return _redis_client
        if _redis_disabled:
            return None

        client = Redis.from_url(
            get_settings().redis_url, decode_responses=True, encoding="utf-8"
        )
        try:
            await client.ping()
        except _UNREACHABLE_ERRORS as exc:
            logger.warning("Redis connection failed: %s. Caching will be disabled.", exc)
            await client.aclose()
            _redis_disabled = True
            return None

        _redis_client = client
        logger.info("Redis connection established successfully")
        return _redis_client


class CacheClient:
    """Thin JSON wrapper around an optional Redis connection."""

    def __init__(self, redis: Redis | None, *, default_ttl: int | None = None) -> None:
        self._redis = redis
        self._default_ttl = (
            default_ttl
            if default_ttl is not None
            else get_settings().catalog_cache_ttl_seconds
        )

    @property
    def enabled(self) -> bool:
        return self._redis is not None and self._default_ttl > 0

    async def get_json(self, key: str) -> Any:
        if not self.enabled:
            return None
        try:
            payload = await self._redis.get(key)
        except _UNREACHABLE_ERRORS as exc:
            logger.debug("Redis get failed for key %s: %s", key, exc)
            return None
        if payload is None:
            return None
        try:
            return json.loads(payload)
        except json.JSONDecodeError:
            logger.debug("Discarding undecodable cache entry %s", key)
            return None

    async def set_json(self, key: str, value: Any, ttl: int | None = None) -> None:
        if not self.enabled:
            return
        expiry = ttl if ttl is not None else self._default_ttl
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=expiry)
        except _UNREACHABLE_ERRORS as exc:
            logger.debug("Redis set failed for key %s: %s", key, exc)

    async def delete(self, *keys: str) -> None:
        if self._redis is None or not keys:
            return
        try:
            await self._redis.delete(*keys)
        except _UNREACHABLE_ERRORS as exc:
            logger.debug("Redis delete failed: %s", exc)

    async def delete_pattern(self, pattern: str) -> None:
        if self._redis is None:
            return
        try:
            async for key in self._redis.scan_iter(match=pattern):
                await self._redis.delete(key)
        except _UNREACHABLE_ERRORS as exc:
            logger.debug("Redis delete_pattern failed for %s: %s", pattern, exc)


async def get_cache_client() -> CacheClient:
    return CacheClient(await get_redis())


async def close_redis() -> None:
    """Close the global Redis connection and allow a fresh attempt next time."""

    global _redis_client, _redis_disabled
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
    _redis_disabled = False


async def invalidate_catalog(cache: CacheClient) -> None:
    """Drop every cached listing page."""

    await cache.delete_pattern(f"{_LISTING_PREFIX}:*")


__all__ = [
    "CacheClient",
    "catalog_listing_key",
    "close_redis",
    "get_cache_client",
    "get_redis",
    "invalidate_catalog",
]
