"""
Redis-backed key/value cache used by the weather lookups.

The core only depends on the `CacheBackend` protocol, so tests can swap
in an in-memory implementation. `RedisCache` is the production adapter:
it wraps an async Redis client and turns `RedisError` into the domain
`TransportError`, leaving the fatal/non-fatal decision to the caller.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import redis.asyncio as aioredis
from fastapi import Request
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.errors import TransportError

logger = logging.getLogger(__name__)


class CacheBackend(Protocol):
    """
    Minimal cache contract consumed by the cache-aside orchestrator.

    All operations may raise `TransportError` when the cache is unreachable.
    """

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set_with_ttl(self, key: str, ttl_seconds: int, value: str) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def ping(self) -> bool:
        ...


class RedisCache:
    """
    `CacheBackend` implementation on top of `redis.asyncio`.

    Usage:
        cache = RedisCache(redis_client)
        raw = await cache.get("weather:london:gb:metric")
    """

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def get(self, key: str) -> Optional[str]:
        try:
            raw = await self._redis.get(key)
        except RedisError as exc:
            raise TransportError(f"Cache GET failed for key={key}") from exc
        if isinstance(raw, bytes):
            return raw.decode("utf-8")
        return raw

    async def set_with_ttl(self, key: str, ttl_seconds: int, value: str) -> None:
        try:
            await self._redis.setex(key, ttl_seconds, value)
        except RedisError as exc:
            raise TransportError(f"Cache SET failed for key={key}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except RedisError as exc:
            raise TransportError(f"Cache DELETE failed for key={key}") from exc

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError as exc:
            raise TransportError("Cache PING failed") from exc


def create_redis_client(url: str | None = None) -> aioredis.Redis:
    """
    Build the process-wide async Redis client.

    The client connects lazily; the first command opens the connection pool.
    """
    return aioredis.from_url(
        url or settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
    )


# ---------------------------------------------------------------------
# Dependency injection
# ---------------------------------------------------------------------

def get_cache(request: Request) -> CacheBackend:
    """
    FastAPI dependency that provides the cache adapter.

    The Redis client itself is created in the application lifespan and
    stored on `app.state.redis`.
    """
    return RedisCache(request.app.state.redis)
