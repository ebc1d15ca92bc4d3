from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.weather import Units


class WeatherOut(BaseModel):
    """
    Public representation of a stored weather record.

    This is also the shape serialized into cache entries, so a cache hit
    and a database read return identical payloads.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    city_name: str = Field(..., min_length=1)
    country: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None

    temperature: Optional[float] = None
    feels_like: Optional[float] = None
    temp_min: Optional[float] = None
    temp_max: Optional[float] = None
    pressure: Optional[float] = None
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_deg: Optional[float] = None
    wind_gust: Optional[float] = None
    visibility: Optional[float] = None
    cloudiness: Optional[float] = None
    rain_volume: Optional[float] = 0
    snow_volume: Optional[float] = 0
    description: Optional[str] = None

    units: Units = Units.METRIC

    fetched_at: datetime
    created_at: datetime
    updated_at: datetime


class WeatherCreate(BaseModel):
    """
    Request body for creating a weather record from a city lookup.
    """

    city_name: str = Field(..., min_length=1, examples=["London"])
    country: Optional[str] = Field(default=None, examples=["GB"])
    units: Units = Units.METRIC
    lang: str = Field(default="en", examples=["en"])


class WeatherUpdate(BaseModel):
    """
    Sparse patch applied to an existing weather record.

    Only fields explicitly sent by the client are applied. Identity and
    system timestamps are not patchable.
    """

    model_config = ConfigDict(extra="forbid")

    city_name: Optional[str] = Field(default=None, min_length=1)
    country: Optional[str] = None
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lon: Optional[float] = Field(default=None, ge=-180, le=180)

    temperature: Optional[float] = None
    feels_like: Optional[float] = None
    temp_min: Optional[float] = None
    temp_max: Optional[float] = None
    pressure: Optional[float] = None
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_deg: Optional[float] = None
    wind_gust: Optional[float] = None
    visibility: Optional[float] = None
    cloudiness: Optional[float] = None
    rain_volume: Optional[float] = None
    snow_volume: Optional[float] = None
    description: Optional[str] = None

    units: Optional[Units] = None
    fetched_at: Optional[datetime] = None
