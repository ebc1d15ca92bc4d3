"""
Cache-aside orchestration and cache invalidation.

`CacheAside.resolve` serves a key from the cache when present and
otherwise runs a caller-supplied producer, storing its result with a
fixed TTL. The producer decides where the data comes from (upstream
fetch + persist, or a database read); the orchestrator does not care.

Only successful results are cached. `NotFoundError` and `UpstreamError`
from the producer propagate untouched; `TransportError` (cache or
database down) is raised as `InternalError`.

`CacheInvalidator` removes the keys that may hold a record after it is
updated or deleted. Its failures are logged and swallowed: the database
write has already committed and must not depend on cache liveness.

No lock is held between the cache read and the cache write, so two
concurrent misses on the same key may both run the producer; the last
write wins.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable

from pydantic import ValidationError

from app.core.cache import CacheBackend
from app.core.errors import InternalError, TransportError
from app.schemas.weather import WeatherOut
from app.services.cache_keys import city_key, latest_key

logger = logging.getLogger(__name__)

MissFn = Callable[[], Awaitable[WeatherOut]]


class CacheAside:
    """
    Read-through cache for weather records.

    Usage:
        orchestrator = CacheAside(cache)
        record = await orchestrator.resolve(key, 1800, fetch_and_persist)
    """

    def __init__(self, cache: CacheBackend) -> None:
        self._cache = cache

    async def resolve(
        self,
        key: str,
        ttl: int,
        miss_fn: MissFn,
    ) -> WeatherOut:
        """
        Return the record cached under `key`, or produce and cache it.

        Args:
            key: Derived cache key.
            ttl: Expiry of the stored entry, in seconds.
            miss_fn: Async producer invoked only on a cache miss.

        Raises:
            NotFoundError: The producer found nothing. Nothing is cached.
            UpstreamError: The upstream provider failed. Nothing is cached.
            InternalError: The cache or the database is unreachable, or the
                cached entry cannot be read back.
        """
        try:
            cached = await self._cache.get(key)
        except TransportError as exc:
            raise InternalError("Cache unavailable") from exc

        if cached is not None:
            logger.debug("Cache hit: %s", key)
            try:
                return WeatherOut.model_validate_json(cached)
            except ValidationError as exc:
                logger.error("Unreadable cache entry for key=%s", key)
                raise InternalError("Cache entry is unreadable") from exc

        logger.debug("Cache miss: %s", key)
        try:
            value = await miss_fn()
        except TransportError as exc:
            raise InternalError(exc.message) from exc

        try:
            await self._cache.set_with_ttl(key, ttl, value.model_dump_json())
        except TransportError as exc:
            raise InternalError("Cache unavailable") from exc

        logger.debug("Cached %s ttl=%ds", key, ttl)
        return value


def record_keys(record: WeatherOut) -> list[str]:
    """Cache keys that may hold `record`: its city key and its latest key."""
    return [
        city_key(record.city_name, record.country, record.units),
        latest_key(record.city_name),
    ]


class CacheInvalidator:
    """
    Purges cache entries referencing a record after it is mutated.
    """

    def __init__(self, cache: CacheBackend) -> None:
        self._cache = cache

    async def invalidate(self, record: WeatherOut) -> None:
        """Delete the city key and the latest-by-city key of `record`."""
        await self.invalidate_keys(record_keys(record))

    async def invalidate_keys(self, keys: Iterable[str]) -> None:
        for key in dict.fromkeys(keys):
            try:
                await self._cache.delete(key)
                logger.debug("Cache invalidated: %s", key)
            except TransportError:
                logger.warning("Cache invalidation failed for key=%s", key, exc_info=True)
