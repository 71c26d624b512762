"""Tests for incident reporting endpoints."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, patch

import pytest

from bettersafe.models.incident import IncidentReport, IncidentSubmission, SecurityAuditLog
from bettersafe.core.incidents import validate_incident_data
from sqlmodel import select


@pytest.fixture()
def broadcast(app, monkeypatch):
    mock = AsyncMock()
    monkeypatch.setattr(app.state.websocket_manager, "broadcast", mock)
    return mock


def test_validation_collects_every_error():
    errors = validate_incident_data(
        IncidentSubmission(category="Aliens", description="short", anonymous="yes", latitude=10.0),
        None,
    )
    assert "Invalid category" in errors
    assert "Description must be between 10 and 2000 characters" in errors
    assert "Anonymous flag must be a boolean" in errors
    assert "Latitude and longitude must be provided together" in errors


def test_validation_rejects_foreign_photos():
    user_id = uuid.uuid4()
    data = IncidentSubmission(
        category="Other",
        description="A long enough description",
        anonymous=False,
        photos=[f"{uuid.uuid4()}/draft/1_abcdef.jpg"],
    )
    assert validate_incident_data(data, user_id) == ["Photos must be uploaded by the reporting user"]

    data.photos = [f"{user_id}/draft/1_abcdef.jpg"]
    assert validate_incident_data(data, user_id) == []


def test_validation_photo_limit():
    data = IncidentSubmission(
        category="Other",
        description="A long enough description",
        anonymous=True,
        photos=[f"anonymous/d/{i}.jpg" for i in range(6)],
    )
    assert validate_incident_data(data, None) == ["Photos must be an array with maximum 5 items"]


def test_submit_incident(client, auth_headers, valid_incident, broadcast, db_run):
    response = client.post("/api/incidents", json=valid_incident, headers=auth_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["remaining_attempts"] == 2

    broadcast.assert_awaited_once()
    event = broadcast.await_args.args[0]
    assert event["type"] == "incident_created"
    assert event["incident"]["id"] == body["report_id"]

    async def _audit(session):
        result = await session.execute(select(SecurityAuditLog))
        return result.scalars().all()

    logs = db_run(_audit)
    assert len(logs) == 1
    assert logs[0].event_type == "incident_report_submitted"


def test_anonymous_incident_hidden(client, auth_headers, valid_incident, broadcast, db_run):
    valid_incident["anonymous"] = True
    response = client.post("/api/incidents", json=valid_incident, headers=auth_headers)
    assert response.status_code == 201
    report_id = response.json()["report_id"]

    broadcast.assert_not_awaited()
    assert client.get("/api/incidents").json() == []
    assert client.get(f"/api/incidents/{report_id}").status_code == 404

    async def _load(session):
        return await session.get(IncidentReport, uuid.UUID(report_id))

    # Reporter identity is not stored on anonymous reports
    assert db_run(_load).user_id is None


def test_submit_without_login(client, valid_incident, broadcast):
    response = client.post("/api/incidents", json=valid_incident)
    assert response.status_code == 201


def test_submit_invalid(client, auth_headers, broadcast):
    response = client.post(
        "/api/incidents",
        json={"category": "Other", "description": "too short", "anonymous": False},
        headers=auth_headers,
    )
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["error"] == "Validation failed"
    assert detail["details"] == ["Description must be between 10 and 2000 characters"]


def test_rate_limit_after_three_reports(client, auth_headers, valid_incident, broadcast):
    for _ in range(3):
        assert client.post("/api/incidents", json=valid_incident, headers=auth_headers).status_code == 201

    response = client.post("/api/incidents", json=valid_incident, headers=auth_headers)
    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) > 0
    assert response.json()["detail"]["error"] == "Rate limit exceeded"


def test_list_and_filter(client, auth_headers, valid_incident, broadcast):
    client.post("/api/incidents", json=valid_incident, headers=auth_headers)
    valid_incident["category"] = "Safety Hazard"
    client.post("/api/incidents", json=valid_incident, headers=auth_headers)

    assert len(client.get("/api/incidents").json()) == 2
    hazards = client.get("/api/incidents", params={"category": "Safety Hazard"}).json()
    assert [i["category"] for i in hazards] == ["Safety Hazard"]
    assert client.get("/api/incidents", params={"status": "resolved"}).json() == []


def test_get_incident_with_photos(client, auth_headers, user_id, valid_incident, broadcast):
    valid_incident["photos"] = [f"{user_id}/draft-1/1700000000000_abc123.jpg"]
    report_id = client.post("/api/incidents", json=valid_incident, headers=auth_headers).json()["report_id"]

    with patch(
        "bettersafe.api.incidents.create_signed_urls",
        AsyncMock(return_value={valid_incident["photos"][0]: "https://signed.example/photo"}),
    ):
        response = client.get(f"/api/incidents/{report_id}")

    assert response.status_code == 200
    photos = response.json()["photos"]
    assert len(photos) == 1
    assert photos[0]["signed_url"] == "https://signed.example/photo"


def test_nearby_incidents(client, auth_headers, valid_incident, broadcast):
    client.post("/api/incidents", json=valid_incident, headers=auth_headers)
    valid_incident.update({"latitude": 40.7128, "longitude": -74.0060})
    client.post("/api/incidents", json=valid_incident, headers=auth_headers)

    nearby = client.get("/api/incidents/nearby", params={"latitude": 38.9223, "longitude": -77.0196}).json()
    assert len(nearby) == 1
    assert nearby[0]["distance_km"] < 1


def test_my_incidents(client, auth_headers, valid_incident, broadcast):
    client.post("/api/incidents", json=valid_incident, headers=auth_headers)
    assert len(client.get("/api/incidents/mine", headers=auth_headers).json()) == 1
    assert client.get("/api/incidents/mine").status_code == 401


def test_upload_photos(client, auth_headers, user_id):
    upload = AsyncMock(side_effect=lambda bucket, path, *args, **kwargs: path)
    with (
        patch("bettersafe.api.incidents.upload_file", upload),
        patch("bettersafe.api.incidents.create_signed_urls", AsyncMock(return_value={})),
    ):
        response = client.post(
            "/api/incidents/photos",
            data={"draft_id": "draft-1"},
            files=[
                ("files", ("a.jpg", b"jpegdata", "image/jpeg")),
                ("files", ("notes.txt", b"text", "text/plain")),
            ],
            headers=auth_headers,
        )

    assert response.status_code == 200
    body = response.json()
    assert body["draft_id"] == "draft-1"
    assert len(body["paths"]) == 1
    assert body["paths"][0].startswith(f"{user_id}/draft-1/")
    assert body["paths"][0].endswith(".jpg")
    assert body["failed"] == 1


def test_upload_too_many_photos(client):
    files = [("files", (f"{i}.png", b"png", "image/png")) for i in range(6)]
    response = client.post("/api/incidents/photos", files=files)
    assert response.status_code == 400
