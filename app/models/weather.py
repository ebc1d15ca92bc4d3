import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class Units(str, Enum):
    """Measurement systems supported by OpenWeatherMap."""

    METRIC = "metric"
    IMPERIAL = "imperial"
    STANDARD = "standard"


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _decimal(precision: int, scale: int) -> Numeric:
    # Values are exchanged as floats with the API and the cache.
    return Numeric(precision, scale, asdecimal=False)


class WeatherRecord(Base):
    """
    Weather record entity.

    Represents one current-weather reading for a location, as returned by
    the upstream provider and normalized into the canonical shape.

    Nullable measurement columns mean "not reported by upstream".
    """

    __tablename__ = "weather"

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=_new_id,
        comment="Opaque unique identifier (UUID4), immutable once assigned",
    )

    # ------------------------------------------------------------------
    # Location
    # ------------------------------------------------------------------

    city_name: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="City name as reported by the provider",
    )

    country: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="ISO 3166 country code",
    )

    lat: Mapped[Optional[float]] = mapped_column(_decimal(7, 3), nullable=True)
    lon: Mapped[Optional[float]] = mapped_column(_decimal(7, 3), nullable=True)

    # ------------------------------------------------------------------
    # Measurements
    # ------------------------------------------------------------------

    temperature: Mapped[Optional[float]] = mapped_column(_decimal(5, 2), nullable=True)
    feels_like: Mapped[Optional[float]] = mapped_column(_decimal(5, 2), nullable=True)
    temp_min: Mapped[Optional[float]] = mapped_column(_decimal(5, 2), nullable=True)
    temp_max: Mapped[Optional[float]] = mapped_column(_decimal(5, 2), nullable=True)
    pressure: Mapped[Optional[float]] = mapped_column(_decimal(6, 2), nullable=True)
    humidity: Mapped[Optional[float]] = mapped_column(_decimal(5, 2), nullable=True)
    wind_speed: Mapped[Optional[float]] = mapped_column(_decimal(5, 2), nullable=True)
    wind_deg: Mapped[Optional[float]] = mapped_column(_decimal(5, 2), nullable=True)
    wind_gust: Mapped[Optional[float]] = mapped_column(_decimal(5, 2), nullable=True)
    visibility: Mapped[Optional[float]] = mapped_column(_decimal(7, 2), nullable=True)
    cloudiness: Mapped[Optional[float]] = mapped_column(_decimal(5, 2), nullable=True)

    rain_volume: Mapped[Optional[float]] = mapped_column(
        _decimal(6, 2),
        nullable=True,
        default=0,
        comment="Rain volume for the last hour (mm)",
    )

    snow_volume: Mapped[Optional[float]] = mapped_column(
        _decimal(6, 2),
        nullable=True,
        default=0,
        comment="Snow volume for the last hour (mm)",
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Free-text weather condition description",
    )

    units: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=Units.METRIC.value,
        comment="Measurement system: metric, imperial or standard",
    )

    # ------------------------------------------------------------------
    # Timestamps
    # ------------------------------------------------------------------

    fetched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the upstream provider produced the data (UTC)",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
