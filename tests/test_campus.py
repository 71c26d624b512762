"""Tests for campus map, buildings, weather, services and events endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from bettersafe.config import settings
from bettersafe.models.campus import CampusEvent, CampusService, ServiceCategory
from bettersafe.utils.weather import WeatherError, fetch_campus_weather, parse_forecast, weather_cache
from tests.conftest import bearer, run
from tests.test_friends import befriend

FORECAST = {
    "current": {"temperature_2m": 71.6, "wind_speed_10m": 5.4, "weather_code": 61},
    "hourly": {
        "time": ["2026-10-19T15:00", "2026-10-19T16:00", "2026-10-19T17:00", "2026-10-19T18:00", "2026-10-19T19:00"],
        "temperature_2m": [72.0, 70.4, 68.9, 66.1, 64.0],
        "weather_code": [61, 3, 0, 95, 2],
    },
}


def test_landmarks(client):
    all_landmarks = client.get("/api/campus/landmarks").json()["landmarks"]
    dining = client.get("/api/campus/landmarks", params={"category": "dining"}).json()["landmarks"]
    assert 0 < len(dining) < len(all_landmarks)
    assert client.get("/api/campus/landmarks", params={"category": "bars"}).status_code == 400


def test_buildings(client):
    body = client.get("/api/campus/buildings", params={"campus": "Main", "category": "Library"}).json()
    assert body["count"] == len(body["buildings"]) == 2
    assert client.get("/api/campus/buildings", params={"campus": "Mars"}).status_code == 400


def test_building_search(client):
    names = [b["name"] for b in client.get("/api/campus/buildings/search", params={"q": "founder"}).json()["buildings"]]
    assert names == ["Founder's Library"]


def test_nearest_and_nearby(client):
    params = {"latitude": 38.92236, "longitude": -77.01965}
    assert client.get("/api/campus/nearest", params=params).json() == {
        "description": "At Founders Library",
        "on_campus": True,
    }
    nearby = client.get("/api/campus/nearby", params=params).json()["landmarks"]
    assert nearby[0]["name"] == "Founders Library"


def test_markers_anonymous(client, valid_incident, app, monkeypatch):
    monkeypatch.setattr(app.state.websocket_manager, "broadcast", AsyncMock())
    client.post("/api/incidents", json=valid_incident)

    body = client.get("/api/campus/markers").json()
    assert len(body["incidents"]) == 1
    assert body["friends"] == []
    assert body["landmarks"]


def test_markers_include_friends(client, auth_headers, make_profile, app, monkeypatch):
    monkeypatch.setattr(app.state.websocket_manager, "send_to_user", AsyncMock())
    friend_id = make_profile(username="pal")
    befriend(client, auth_headers, friend_id)
    client.post("/api/location/update", json={"latitude": 38.9223, "longitude": -77.0196}, headers=bearer(friend_id))

    body = client.get("/api/campus/markers", headers=auth_headers).json()
    assert [f["friend_id"] for f in body["friends"]] == [str(friend_id)]


def test_parse_forecast():
    result = parse_forecast(FORECAST)
    assert result["temperature_f"] == 72
    assert result["wind_speed_mph"] == 5
    assert result["condition"] == "rain"
    assert [h["condition"] for h in result["hourly"]] == ["rain", "cloudy", "clear", "thunderstorm"]


def test_weather_served_from_cache():
    cached = {"temperature_f": 60}
    weather_cache.set(f"{settings.WEATHER_LAT},{settings.WEATHER_LNG}", cached)
    assert run(fetch_campus_weather()) == cached


def test_weather_endpoint(client):
    with patch("bettersafe.api.campus_info.fetch_campus_weather", AsyncMock(return_value=parse_forecast(FORECAST))):
        response = client.get("/api/weather")
    assert response.status_code == 200
    assert response.json()["condition"] == "rain"


def test_weather_endpoint_failure(client):
    with patch("bettersafe.api.campus_info.fetch_campus_weather", AsyncMock(side_effect=WeatherError("down"))):
        response = client.get("/api/weather")
    assert response.status_code == 502


def test_services_split_dining(client, db_run):
    async def _seed(session):
        session.add(CampusService(name="Cafe", category=ServiceCategory.DINING, open_time="00:00", close_time="23:59"))
        session.add(CampusService(name="Bookstore", category=ServiceCategory.SERVICE, is_closed=True))
        await session.commit()

    db_run(_seed)
    body = client.get("/api/services").json()
    assert [s["name"] for s in body["dining"]] == ["Cafe"]
    assert [s["name"] for s in body["services"]] == ["Bookstore"]
    assert body["services"][0]["is_open"] is False


def test_upcoming_events_only(client, db_run):
    now = datetime.now(timezone.utc)

    async def _seed(session):
        session.add(CampusEvent(title="Homecoming", starts_at=now + timedelta(days=3), location="The Yard"))
        session.add(CampusEvent(title="Last Year", starts_at=now - timedelta(days=3), location="The Yard"))
        await session.commit()

    db_run(_seed)
    events = client.get("/api/events").json()
    assert [e["title"] for e in events] == ["Homecoming"]


def test_events_limit_is_bounded(client):
    assert client.get("/api/events", params={"limit": 0}).status_code == 422
    assert client.get("/api/events", params={"limit": 101}).status_code == 422
    assert client.get("/api/events", params={"limit": 100}).status_code == 200


def test_maps_key(client, monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_MAPS_API_KEY", "maps-key")
    response = client.get("/api/maps/key")
    assert response.status_code == 200
    assert response.json() == {"apiKey": "maps-key"}
    assert response.headers["Cache-Control"] == "private, max-age=300"


def test_maps_key_missing(client, monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_MAPS_API_KEY", "")
    response = client.get("/api/maps/key")
    assert response.status_code == 500
    assert response.json()["detail"] == "Internal server error"


def test_maps_key_rate_limited(client, monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_MAPS_API_KEY", "maps-key")
    headers = {"X-Forwarded-For": "203.0.113.9"}
    for _ in range(10):
        assert client.get("/api/maps/key", headers=headers).status_code == 200

    response = client.get("/api/maps/key", headers=headers)
    assert response.status_code == 429
    assert "Retry-After" in response.headers
    # Other clients are unaffected
    assert client.get("/api/maps/key", headers={"X-Forwarded-For": "203.0.113.10"}).status_code == 200


@pytest.mark.parametrize(
    "path, is_admin, expected",
    [("{user}/avatar.png", False, 200), ("someone-else/avatar.png", False, 403), ("someone-else/avatar.png", True, 200)],
)
def test_signed_url_access(client, user_id, auth_headers, admin_headers, path, is_admin, expected):
    headers = admin_headers if is_admin else auth_headers
    with patch("bettersafe.api.campus_info.create_signed_url", AsyncMock(return_value="https://signed.example/a")):
        response = client.post("/api/storage/signed-url", json={"path": path.format(user=user_id)}, headers=headers)

    assert response.status_code == expected
    if expected == 200:
        assert response.json() == {"signedUrl": "https://signed.example/a", "expires_in": 60}


def test_signed_url_requires_path(client, auth_headers):
    assert client.post("/api/storage/signed-url", json={}, headers=auth_headers).status_code == 400


def test_signed_url_failure(client, auth_headers, user_id):
    with patch("bettersafe.api.campus_info.create_signed_url", AsyncMock(return_value=None)):
        response = client.post("/api/storage/signed-url", json={"path": f"{user_id}/a.png"}, headers=auth_headers)
    assert response.status_code == 500
