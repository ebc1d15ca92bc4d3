from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheBackend
from app.core.config import settings
from app.core.errors import InternalError, InvalidRecordError, NotFoundError, TransportError
from app.models.weather import Units, WeatherRecord
from app.repositories.weather_repository import WeatherRepository
from app.schemas.weather import WeatherCreate, WeatherOut, WeatherUpdate
from app.services.cache_aside import CacheAside, CacheInvalidator, record_keys
from app.services.cache_keys import city_key, coordinate_key, latest_key
from app.services.providers.openweather_client import OpenWeatherClient

logger = logging.getLogger(__name__)

# Fields a client may never patch.
_IMMUTABLE_FIELDS = {"id", "created_at", "updated_at"}


def merge_weather(existing: WeatherOut, patch: WeatherUpdate) -> WeatherOut:
    """
    Apply a sparse patch to a record and return a new, validated record.

    Only fields explicitly set on `patch` overwrite `existing`. The result
    goes through `WeatherOut` validation again, so an update cannot store
    an empty city name.

    Raises:
        pydantic.ValidationError: The merged record is invalid.
    """
    changes = {
        k: v
        for k, v in patch.model_dump(exclude_unset=True).items()
        if k not in _IMMUTABLE_FIELDS
    }
    return WeatherOut.model_validate({**existing.model_dump(), **changes})


class WeatherService:
    """
    Weather lookups and mutations with cache-aside reads and
    write-through invalidation.

    Collaborators are injected so tests can substitute any of them:
    - `db`: request-scoped SQLAlchemy session
    - `cache`: any `CacheBackend`
    - `client`: upstream OpenWeatherMap client
    """

    def __init__(
        self,
        db: AsyncSession,
        cache: CacheBackend,
        client: Optional[OpenWeatherClient] = None,
        ttl_seconds: Optional[int] = None,
    ):
        self.repo = WeatherRepository(db)
        self.client = client
        self.ttl = ttl_seconds or settings.cache_ttl_seconds
        self.cache_aside = CacheAside(cache)
        self.invalidator = CacheInvalidator(cache)

    def _require_client(self) -> OpenWeatherClient:
        if self.client is None:
            raise InternalError("Upstream weather client is not configured")
        return self.client

    async def _persist_payload(self, payload: Dict[str, Any], units: Units | str) -> WeatherOut:
        fields = OpenWeatherClient.map_payload(payload, units)
        if not fields.get("city_name"):
            raise NotFoundError("Could not find a named location for the specified coordinates.")
        saved = await self.repo.save(WeatherRecord(**fields))
        return WeatherOut.model_validate(saved)

    # ------------------------------------------------------------------
    # Cached lookups
    # ------------------------------------------------------------------

    async def get_by_coordinates(
        self,
        lat: float,
        lon: float,
        units: Units = Units.METRIC,
        lang: str = "en",
    ) -> WeatherOut:
        """
        Current weather at a coordinate pair; fetched and stored on a miss.
        """
        async def fetch_and_persist() -> WeatherOut:
            payload = await self._require_client().fetch_by_coordinates(lat, lon, units, lang)
            return await self._persist_payload(payload, units)

        return await self.cache_aside.resolve(
            coordinate_key(lat, lon, units), self.ttl, fetch_and_persist
        )

    async def get_by_city(
        self,
        city_name: str,
        country: Optional[str] = None,
        units: Units = Units.METRIC,
        lang: str = "en",
    ) -> WeatherOut:
        """
        Current weather for a city; fetched and stored on a miss.
        """
        async def fetch_and_persist() -> WeatherOut:
            payload = await self._require_client().fetch_by_city(city_name, country, units, lang)
            return await self._persist_payload(payload, units)

        return await self.cache_aside.resolve(
            city_key(city_name, country, units), self.ttl, fetch_and_persist
        )

    async def create(self, payload: WeatherCreate) -> WeatherOut:
        return await self.get_by_city(
            payload.city_name, payload.country, payload.units, payload.lang
        )

    async def get_latest_by_city(self, city_name: str) -> WeatherOut:
        """
        Most recently fetched stored record for a city. Never calls upstream.

        Raises:
            NotFoundError: No stored record for this city.
        """

        async def read_latest() -> WeatherOut:
            record = await self.repo.find_latest_by_city(city_name)
            if record is None:
                raise NotFoundError("No weather data found for this city")
            return WeatherOut.model_validate(record)

        return await self.cache_aside.resolve(latest_key(city_name), self.ttl, read_latest)

    # ------------------------------------------------------------------
    # Uncached reads
    # ------------------------------------------------------------------

    async def _get_record(self, record_id: str) -> WeatherRecord:
        try:
            record = await self.repo.find_by_id(record_id)
        except TransportError as exc:
            raise InternalError(exc.message) from exc
        if record is None:
            raise NotFoundError("Weather record not found")
        return record

    async def get_by_id(self, record_id: str) -> WeatherOut:
        return WeatherOut.model_validate(await self._get_record(record_id))

    async def get_all(self) -> List[WeatherOut]:
        try:
            records = await self.repo.find_all()
        except TransportError as exc:
            logger.error("Failed to fetch all weather records", exc_info=True)
            raise InternalError("Failed to retrieve weather data") from exc
        return [WeatherOut.model_validate(r) for r in records]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def update(self, record_id: str, patch: WeatherUpdate) -> WeatherOut:
        """
        Merge `patch` into a record, save it, then purge its cache keys.

        Keys derived from both the previous and the new location/units are
        purged, so renaming a city does not leave the old entry behind.

        Raises:
            NotFoundError: No record with this id.
            InvalidRecordError: The merged record fails validation.
        """
        record = await self._get_record(record_id)
        before = WeatherOut.model_validate(record)
        try:
            merged = merge_weather(before, patch)
        except ValidationError as exc:
            raise InvalidRecordError() from exc

        for field, value in merged.model_dump(exclude=_IMMUTABLE_FIELDS).items():
            setattr(record, field, value.value if isinstance(value, Units) else value)

        try:
            saved = await self.repo.save(record)
        except TransportError as exc:
            raise InternalError(exc.message) from exc
        after = WeatherOut.model_validate(saved)

        await self.invalidator.invalidate_keys(record_keys(after) + record_keys(before))
        return after

    async def delete(self, record_id: str) -> None:
        """
        Remove a record, then purge the cache keys derived from it.
        """
        record = await self._get_record(record_id)
        removed = WeatherOut.model_validate(record)

        try:
            await self.repo.remove(record)
        except TransportError as exc:
            raise InternalError(exc.message) from exc

        await self.invalidator.invalidate(removed)
