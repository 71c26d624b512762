"""Tests for bug reports, feedback and the changelog."""

from __future__ import annotations

from datetime import date

from bettersafe.models.campus import ChangelogEntry


def seed_changelog(db_run, *entries):
    async def _seed(session):
        for version, released in entries:
            session.add(ChangelogEntry(
                version=version, title=f"Release {version}", description="Fixes", release_date=released
            ))
        await session.commit()

    db_run(_seed)


def test_bug_report(client, auth_headers):
    response = client.post(
        "/api/bug-reports",
        json={"title": "Map freezes", "description": "The map freezes when I zoom out", "device_info": {"os": "iOS"}},
        headers=auth_headers,
    )
    assert response.status_code == 201
    assert response.json()["success"] is True


def test_bug_report_requires_login(client):
    response = client.post("/api/bug-reports", json={"title": "Map", "description": "Long enough text"})
    assert response.status_code == 401


def test_bug_report_validation(client, auth_headers):
    response = client.post("/api/bug-reports", json={"title": "x", "description": "short"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"]["details"] == [
        "Title must be at least 3 characters",
        "Description must be at least 10 characters",
    ]


def test_feedback(client, auth_headers):
    response = client.post("/api/feedback", json={"message": "Love the app", "rating": 5}, headers=auth_headers)
    assert response.status_code == 201


def test_feedback_rating_range(client, auth_headers):
    response = client.post("/api/feedback", json={"message": "Meh", "rating": 9}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"]["details"] == ["Rating must be between 1 and 5"]


def test_changelog_newest_first(client, db_run):
    seed_changelog(db_run, ("1.0.0", date(2026, 1, 10)), ("1.1.0", date(2026, 6, 1)))
    versions = [entry["version"] for entry in client.get("/api/changelog").json()]
    assert versions == ["1.1.0", "1.0.0"]


def test_latest_version_empty(client):
    assert client.get("/api/changelog/latest").json() == {"latest_version": None, "has_update": False}


def test_latest_version_update_check(client, db_run):
    seed_changelog(db_run, ("1.0.0", date(2026, 1, 10)), ("1.10.0", date(2026, 6, 1)))

    behind = client.get("/api/changelog/latest", params={"current_version": "1.9.2"}).json()
    assert behind["latest_version"] == "1.10.0"
    assert behind["has_update"] is True
    assert behind["release_date"] == "2026-06-01"

    current = client.get("/api/changelog/latest", params={"current_version": "1.10.0"}).json()
    assert current["has_update"] is False
