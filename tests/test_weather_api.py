from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.core.errors import UpstreamError
from app.schemas.weather import WeatherOut
from app.services.providers.openweather_client import get_weather_client
from tests.conftest import make_owm_payload, make_record


@pytest_asyncio.fixture
async def client(test_app):
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
async def test_create_weather_returns_201(client, fake_cache, mock_client):
    r = await client.post("/api/weather", json={"city_name": "London", "country": "GB"})

    assert r.status_code == 201, r.text
    body = r.json()
    assert body["city_name"] == "London"
    assert body["units"] == "metric"
    assert body["id"]
    assert fake_cache.ttls["weather:london:gb:metric"] == 1800


@pytest.mark.asyncio
async def test_weather_by_coordinates(client, fake_cache, mock_client):
    r = await client.get("/api/weather/coordinates", params={"lat": 51.51, "lon": -0.13})

    assert r.status_code == 200, r.text
    assert r.json()["city_name"] == "London"
    assert "coords:51.51:-0.13:metric" in fake_cache.store


@pytest.mark.asyncio
async def test_weather_by_city_served_from_cache(client, mock_client):
    first = await client.get("/api/weather/city/London", params={"country": "GB"})
    second = await client.get("/api/weather/city/LONDON", params={"country": "gb"})

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()
    assert mock_client.fetch_by_city.await_count == 1


@pytest.mark.asyncio
async def test_upstream_error_status_is_forwarded(client, mock_client):
    mock_client.fetch_by_city = AsyncMock(side_effect=UpstreamError("city not found", status_code=404))

    r = await client.get("/api/weather/city/Atlantis")

    assert r.status_code == 404
    assert r.json() == {"status": "error", "message": "city not found"}


@pytest.mark.asyncio
async def test_latest_by_city_not_found(client):
    r = await client.get("/api/weather/latest/Paris")

    assert r.status_code == 404
    assert r.json() == {"status": "error", "message": "No weather data found for this city"}


@pytest.mark.asyncio
async def test_latest_by_city(client, db_session):
    db_session.add(make_record("Paris", "FR"))
    await db_session.commit()

    r = await client.get("/api/weather/latest/paris")

    assert r.status_code == 200
    assert r.json()["city_name"] == "Paris"


@pytest.mark.asyncio
async def test_list_and_get_by_id(client, db_session):
    record = make_record("Oslo", "NO")
    db_session.add(record)
    await db_session.commit()

    listed = await client.get("/api/weather")
    single = await client.get(f"/api/weather/{record.id}")
    missing = await client.get("/api/weather/does-not-exist")

    assert listed.status_code == 200
    assert [x["id"] for x in listed.json()] == [record.id]
    assert single.json()["city_name"] == "Oslo"
    assert missing.status_code == 404
    assert missing.json()["message"] == "Weather record not found"


@pytest.mark.asyncio
async def test_update_weather_purges_cache(client, db_session, fake_cache):
    db_session.add(make_record("Berlin", "DE", id="abc"))
    await db_session.commit()
    fake_cache.store["weather:berlin:de:metric"] = "{}"
    fake_cache.store["latest:berlin"] = "{}"

    r = await client.put("/api/weather/abc", json={"temperature": 18.0})

    assert r.status_code == 200, r.text
    assert r.json()["temperature"] == 18.0
    assert "weather:berlin:de:metric" not in fake_cache.store
    assert "latest:berlin" not in fake_cache.store


@pytest.mark.asyncio
async def test_update_rejects_empty_city_name(client, db_session):
    db_session.add(make_record("Berlin", "DE", id="abc"))
    await db_session.commit()

    r = await client.put("/api/weather/abc", json={"city_name": None})

    assert r.status_code == 422
    assert r.json()["status"] == "error"


@pytest.mark.asyncio
async def test_delete_weather(client, db_session, fake_cache):
    db_session.add(make_record("Berlin", "DE", id="abc"))
    await db_session.commit()
    fake_cache.store["latest:berlin"] = "{}"

    r = await client.delete("/api/weather/abc")
    again = await client.delete("/api/weather/abc")

    assert r.status_code == 204
    assert "latest:berlin" not in fake_cache.store
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_get_after_delete_refetches(client, mock_client):
    created = await client.post("/api/weather", json={"city_name": "London", "country": "GB"})
    await client.delete(f"/api/weather/{created.json()['id']}")
    mock_client.fetch_by_city = AsyncMock(return_value=make_owm_payload(main={"temp": 2.0}))

    r = await client.get("/api/weather/city/London", params={"country": "GB"})

    assert r.status_code == 200
    assert r.json()["temperature"] == 2.0
    assert r.json()["id"] != created.json()["id"]


@pytest.mark.asyncio
async def test_unreadable_cache_entry_is_500(client, fake_cache):
    fake_cache.store["latest:paris"] = '{"cityName": "Paris"}'

    r = await client.get("/api/weather/latest/Paris")

    assert r.status_code == 500
    assert r.json() == {"status": "error", "message": "Cache entry is unreadable"}


@pytest.mark.asyncio
async def test_without_api_key_cache_hits_still_served(client, test_app, db_session, fake_cache):
    test_app.dependency_overrides[get_weather_client] = lambda: None
    record = make_record("Berlin", "DE", id="abc")
    db_session.add(record)
    await db_session.commit()
    fake_cache.store["weather:berlin:de:metric"] = WeatherOut.model_validate(record).model_dump_json()

    hit = await client.get("/api/weather/city/Berlin", params={"country": "DE"})
    miss = await client.get("/api/weather/city/Paris")

    assert hit.status_code == 200
    assert hit.json()["id"] == "abc"
    assert miss.status_code == 500
    assert miss.json() == {"status": "error", "message": "Upstream weather client is not configured"}
