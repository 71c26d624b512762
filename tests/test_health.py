"""Tests for dependency health checks and the root endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from bettersafe.core import health
from tests.conftest import run

UP = {"status": "up", "response_time": 1, "message": "ok"}
DOWN = {"status": "down", "response_time": 1, "message": "failed"}


@pytest.mark.parametrize(
    "database, auth, storage, expected",
    [
        (UP, UP, UP, "healthy"),
        (UP, DOWN, UP, "degraded"),
        (UP, UP, DOWN, "degraded"),
        (DOWN, UP, UP, "unhealthy"),
    ],
)
def test_overall_status(database, auth, storage, expected):
    with (
        patch.object(health, "check_database", AsyncMock(return_value=database)),
        patch.object(health, "check_auth", AsyncMock(return_value=auth)),
        patch.object(health, "check_storage", AsyncMock(return_value=storage)),
    ):
        report = run(health.run_health_checks())

    assert report["status"] == expected
    assert set(report["services"]) == {"database", "auth", "storage"}


def test_database_check_uses_session(session_factory):
    result = run(health.check_database())
    assert result["status"] == "up"
    assert result["message"] == "Database connection successful"


def test_auth_check_unconfigured(monkeypatch):
    monkeypatch.setattr(health.settings, "SUPABASE_URL", "")
    assert run(health.check_auth())["status"] == "down"


def test_storage_check_failure():
    with patch.object(health, "list_bucket", AsyncMock(side_effect=RuntimeError("no bucket"))):
        result = run(health.check_storage())
    assert result["status"] == "down"
    assert "no bucket" in result["message"]


def test_health_endpoint_status_codes(client):
    healthy = {"status": "healthy", "timestamp": "t", "services": {}, "overall_response_time": 3}
    with patch("bettersafe.main.run_health_checks", AsyncMock(return_value=dict(healthy))):
        response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["active_connections"] == 0

    with patch("bettersafe.main.run_health_checks", AsyncMock(return_value={**healthy, "status": "degraded"})):
        assert client.get("/health").status_code == 503


def test_root(client):
    body = client.get("/").json()
    assert body["campus"] == "Howard University"
    assert body["status"] == "active"
