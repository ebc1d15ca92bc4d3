from datetime import datetime, timezone
from typing import Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.cache import get_cache
from app.core.db import get_db
from app.main import app
from app.models import Base, WeatherRecord
from app.services.providers.openweather_client import OpenWeatherClient, get_weather_client

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


class FakeCache:
    """
    In-memory `CacheBackend` recording the TTL of every write.
    """

    def __init__(self) -> None:
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.deleted: list = []

    async def get(self, key: str) -> Optional[str]:
        return self.store.get(key)

    async def set_with_ttl(self, key: str, ttl_seconds: int, value: str) -> None:
        self.store[key] = value
        self.ttls[key] = ttl_seconds

    async def delete(self, key: str) -> None:
        self.deleted.append(key)
        self.store.pop(key, None)
        self.ttls.pop(key, None)

    async def ping(self) -> bool:
        return True


def make_owm_payload(
    name: str = "London",
    country: str = "GB",
    lat: float = 51.51,
    lon: float = -0.13,
    dt: int = 1641038400,
    **overrides,
) -> dict:
    """Factory for OpenWeatherMap /weather response dicts."""
    payload = {
        "coord": {"lon": lon, "lat": lat},
        "weather": [{"id": 802, "main": "Clouds", "description": "scattered clouds"}],
        "main": {
            "temp": 15.2,
            "feels_like": 14.8,
            "temp_min": 13.9,
            "temp_max": 16.1,
            "pressure": 1012,
            "humidity": 76,
        },
        "visibility": 10000,
        "wind": {"speed": 4.1, "deg": 250, "gust": 8.2},
        "clouds": {"all": 40},
        "dt": dt,
        "sys": {"country": country},
        "name": name,
        "cod": 200,
    }
    payload.update(overrides)
    return payload


def make_record(
    city_name: str = "London",
    country: Optional[str] = "GB",
    units: str = "metric",
    fetched_at: Optional[datetime] = None,
    **overrides,
) -> WeatherRecord:
    """Factory for unsaved `WeatherRecord` rows."""
    fields = dict(
        city_name=city_name,
        country=country,
        lat=51.51,
        lon=-0.13,
        temperature=15.2,
        feels_like=14.8,
        pressure=1012,
        humidity=76,
        wind_speed=4.1,
        wind_deg=250,
        wind_gust=None,
        description="scattered clouds",
        visibility=10000,
        cloudiness=40,
        rain_volume=0,
        snow_volume=0,
        units=units,
        fetched_at=fetched_at or datetime(2022, 1, 1, 12, 0, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return WeatherRecord(**fields)


@pytest_asyncio.fixture
async def test_engine():
    """
    Create an in-memory SQLite async engine with all tables.

    `StaticPool` keeps a single connection so every session sees the
    same in-memory database.
    """
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine):
    """
    Provide a fresh AsyncSession for each test.
    """
    TestingSessionLocal = sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def fake_cache():
    return FakeCache()


@pytest.fixture
def mock_client():
    """
    Upstream client double: real payload mapping, mocked network calls.
    """
    client = MagicMock(spec=OpenWeatherClient)
    client.fetch_by_coordinates = AsyncMock(return_value=make_owm_payload())
    client.fetch_by_city = AsyncMock(return_value=make_owm_payload())
    return client


@pytest.fixture
def test_app(db_session, fake_cache, mock_client):
    """
    Return the FastAPI app with its database, cache and upstream client
    dependencies overridden by test doubles.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: fake_cache
    app.dependency_overrides[get_weather_client] = lambda: mock_client
    yield app
    app.dependency_overrides.clear()
