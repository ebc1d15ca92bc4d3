from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheBackend, get_cache
from app.core.db import get_db
from app.models.weather import Units
from app.schemas.weather import WeatherCreate, WeatherOut, WeatherUpdate
from app.services.providers.openweather_client import OpenWeatherClient, get_weather_client
from app.services.weather_service import WeatherService

router = APIRouter(prefix="/api/weather", tags=["Weather"])


def get_weather_service(
    db: AsyncSession = Depends(get_db),
    cache: CacheBackend = Depends(get_cache),
) -> WeatherService:
    """Service for routes that never call the upstream provider."""
    return WeatherService(db=db, cache=cache)


def get_fetching_weather_service(
    db: AsyncSession = Depends(get_db),
    cache: CacheBackend = Depends(get_cache),
    client: Optional[OpenWeatherClient] = Depends(get_weather_client),
) -> WeatherService:
    """Service for routes that may fetch from OpenWeatherMap on a cache miss."""
    return WeatherService(db=db, cache=cache, client=client)


@router.get(
    "",
    response_model=List[WeatherOut],
    summary="List weather records",
    description="Returns every stored weather record, most recently fetched first.",
)
async def list_weather(service: WeatherService = Depends(get_weather_service)):
    return await service.get_all()


@router.get(
    "/coordinates",
    response_model=WeatherOut,
    summary="Current weather by coordinates",
    description=(
        "Serves the lookup from the cache when possible. On a miss, fetches from "
        "OpenWeatherMap, stores the record and caches it for 30 minutes."
    ),
)
async def weather_by_coordinates(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    units: Units = Query(Units.METRIC),
    lang: str = Query("en", min_length=2, max_length=5),
    service: WeatherService = Depends(get_fetching_weather_service),
):
    return await service.get_by_coordinates(lat, lon, units, lang)


@router.get(
    "/city/{city_name}",
    response_model=WeatherOut,
    summary="Current weather by city",
    description="Same cache policy as the coordinates lookup, keyed by city, country and units.",
)
async def weather_by_city(
    city_name: str = Path(..., min_length=1),
    country: Optional[str] = Query(None, min_length=2, max_length=2),
    units: Units = Query(Units.METRIC),
    lang: str = Query("en", min_length=2, max_length=5),
    service: WeatherService = Depends(get_fetching_weather_service),
):
    return await service.get_by_city(city_name, country, units, lang)


@router.get(
    "/latest/{city_name}",
    response_model=WeatherOut,
    summary="Latest stored weather for a city",
    description="Reads the most recently fetched stored record. Never calls OpenWeatherMap.",
)
async def latest_by_city(
    city_name: str = Path(..., min_length=1),
    service: WeatherService = Depends(get_weather_service),
):
    return await service.get_latest_by_city(city_name)


@router.get(
    "/{record_id}",
    response_model=WeatherOut,
    summary="Get a weather record",
)
async def get_weather(
    record_id: str,
    service: WeatherService = Depends(get_weather_service),
):
    return await service.get_by_id(record_id)


@router.post(
    "",
    response_model=WeatherOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a weather record",
    description="Looks up current weather for a city (cache first) and returns the stored record.",
)
async def create_weather(
    payload: WeatherCreate,
    service: WeatherService = Depends(get_fetching_weather_service),
):
    return await service.create(payload)


@router.put(
    "/{record_id}",
    response_model=WeatherOut,
    summary="Update a weather record",
    description="Overwrites the fields sent in the body and purges the related cache entries.",
)
async def update_weather(
    record_id: str,
    payload: WeatherUpdate,
    service: WeatherService = Depends(get_weather_service),
):
    return await service.update(record_id, payload)


@router.delete(
    "/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a weather record",
    description="Deletes the record and purges the related cache entries.",
)
async def delete_weather(
    record_id: str,
    service: WeatherService = Depends(get_weather_service),
):
    await service.delete(record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
