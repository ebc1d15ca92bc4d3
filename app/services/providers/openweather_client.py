from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from app.core.config import settings
from app.core.errors import InternalError, NotFoundError, UpstreamError
from app.models.weather import Units

logger = logging.getLogger(__name__)


class OpenWeatherClient:
    """
    OpenWeatherMap "current weather" client.

    Endpoint used:
    - GET /data/2.5/weather?lat={lat}&lon={lon}
    - GET /data/2.5/weather?q={city},{country}

    HTTP failures are translated into `UpstreamError` carrying the provider
    status code (500 when there is none) and the provider message.
    A single attempt is made per call; the timeout comes from settings.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key or settings.openweather_api_key
        if not self.api_key:
            raise InternalError("OPENWEATHER_API_KEY is not configured")
        self.base_url = base_url or settings.openweather_base_url
        self.timeout = timeout_s or settings.openweather_timeout_s
        self._transport = transport

    async def _get_json(self, params: Dict[str, Any], default_message: str) -> Any:
        query = {**params, "appid": self.api_key}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.get(self.base_url, params=query)
                r.raise_for_status()
                return r.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            message = self._error_message(e.response) or default_message
            logger.warning("OpenWeatherMap returned %d: %s", status, message)
            raise UpstreamError(message, status_code=status) from e
        except httpx.HTTPError as e:
            logger.warning("OpenWeatherMap request failed: %s", e)
            raise UpstreamError(default_message) from e

    @staticmethod
    def _error_message(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return None

    async def fetch_by_coordinates(
        self,
        lat: float,
        lon: float,
        units: Units | str = Units.METRIC,
        lang: str = "en",
    ) -> Dict[str, Any]:
        params = {
            "lat": lat,
            "lon": lon,
            "units": Units(units).value,
            "lang": lang or "en",
        }
        return await self._get_json(params, "Failed to fetch weather data")

    async def fetch_by_city(
        self,
        city_name: str,
        country_code: Optional[str] = None,
        units: Units | str = Units.METRIC,
        lang: str = "en",
    ) -> Dict[str, Any]:
        """
        Fetch current weather by city name, optionally narrowed by country.

        Raises:
            NotFoundError: The provider answered with an empty payload.
        """
        q = city_name.lower()
        if country_code:
            q = f"{q},{country_code.lower()}"

        params = {"q": q, "units": Units(units).value, "lang": lang or "en"}
        data = await self._get_json(params, "Failed to fetch weather data for city")
        if not data:
            raise NotFoundError("Could not find location coordinates for the specified city.")
        return data

    @staticmethod
    def map_payload(payload: Dict[str, Any], units: Units | str = Units.METRIC) -> Dict[str, Any]:
        """
        Normalize an OpenWeatherMap payload into `WeatherRecord` fields.

        - wind gust is None when not reported
        - rain/snow use the last-hour volume, 0 when not reported
        - `dt` (unix seconds) becomes `fetched_at` in UTC
        """
        coord = payload.get("coord") or {}
        main = payload.get("main") or {}
        wind = payload.get("wind") or {}
        conditions = payload.get("weather") or []
        dt = payload.get("dt")

        return {
            "city_name": payload.get("name"),
            "country": (payload.get("sys") or {}).get("country"),
            "lat": coord.get("lat"),
            "lon": coord.get("lon"),
            "temperature": main.get("temp"),
            "feels_like": main.get("feels_like"),
            "temp_min": main.get("temp_min"),
            "temp_max": main.get("temp_max"),
            "pressure": main.get("pressure"),
            "humidity": main.get("humidity"),
            "wind_speed": wind.get("speed"),
            "wind_deg": wind.get("deg"),
            "wind_gust": wind.get("gust") or None,
            "description": conditions[0].get("description") if conditions else None,
            "visibility": payload.get("visibility"),
            "cloudiness": (payload.get("clouds") or {}).get("all"),
            "rain_volume": (payload.get("rain") or {}).get("1h") or 0,
            "snow_volume": (payload.get("snow") or {}).get("1h") or 0,
            "units": Units(units).value,
            "fetched_at": (
                datetime.fromtimestamp(dt, tz=timezone.utc)
                if dt is not None
                else datetime.now(timezone.utc)
            ),
        }


# ---------------------------------------------------------------------
# Dependency injection
# ---------------------------------------------------------------------

def get_weather_client() -> Optional[OpenWeatherClient]:
    """
    FastAPI dependency that provides the upstream weather client.

    Returns None when no API key is configured, so lookups served from the
    cache still work; a cache miss then fails with `InternalError`.
    """
    if not settings.openweather_api_key:
        return None
    return OpenWeatherClient()
