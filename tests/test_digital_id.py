"""Tests for the digital student ID endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

ID_FIELDS = {"full_name": "Toni Morrison", "student_id": "@02912345", "program": "English", "class_year": "2027"}


@pytest.fixture(autouse=True)
def storage_mocks():
    with (
        patch("bettersafe.api.digital_id.create_signed_url", AsyncMock(return_value="https://signed.example/id")),
        patch("bettersafe.api.digital_id.upload_file", AsyncMock(return_value="path")) as upload,
        patch("bettersafe.api.digital_id.delete_file", AsyncMock(return_value=True)) as delete,
    ):
        yield {"upload": upload, "delete": delete}


def test_missing_id(client, auth_headers):
    assert client.get("/api/digital-id", headers=auth_headers).status_code == 404


def test_create_requires_photo(client, auth_headers):
    response = client.put("/api/digital-id", json=ID_FIELDS, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Please upload your ID photo"


def test_create_requires_fields(client, auth_headers, user_id):
    response = client.put(
        "/api/digital-id",
        json={**ID_FIELDS, "program": "  ", "photo_url": f"{user_id}/digital-id.jpg"},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Please fill in all required fields"


def test_photo_must_be_owned(client, auth_headers):
    response = client.put(
        "/api/digital-id", json={**ID_FIELDS, "photo_url": "someone-else/digital-id.jpg"}, headers=auth_headers
    )
    assert response.status_code == 403


def test_upload_photo_then_create(client, auth_headers, user_id, storage_mocks):
    upload = client.post(
        "/api/digital-id/photo", files={"file": ("me.png", b"pngdata", "image/png")}, headers=auth_headers
    )
    assert upload.status_code == 200
    photo_url = upload.json()["photo_url"]
    assert photo_url == f"{user_id}/digital-id.png"
    assert storage_mocks["upload"].await_args.kwargs["upsert"] is True

    created = client.put("/api/digital-id", json={**ID_FIELDS, "photo_url": photo_url}, headers=auth_headers)
    assert created.status_code == 200
    body = created.json()
    assert body["status"] == "active"
    assert body["photo_signed_url"] == "https://signed.example/id"

    # Updating keeps the stored photo when none is sent
    updated = client.put("/api/digital-id", json={**ID_FIELDS, "class_year": "2028"}, headers=auth_headers)
    assert updated.status_code == 200
    assert updated.json()["class_year"] == "2028"
    assert updated.json()["photo_url"] == photo_url
    assert updated.json()["id"] == body["id"]


def test_upload_rejects_other_types(client, auth_headers):
    response = client.post(
        "/api/digital-id/photo", files={"file": ("me.gif", b"gif", "image/gif")}, headers=auth_headers
    )
    assert response.status_code == 400


def test_delete_removes_photo(client, auth_headers, user_id, storage_mocks):
    client.put("/api/digital-id", json={**ID_FIELDS, "photo_url": f"{user_id}/digital-id.jpg"}, headers=auth_headers)

    assert client.delete("/api/digital-id", headers=auth_headers).status_code == 200
    storage_mocks["delete"].assert_awaited_once()
    assert client.get("/api/digital-id", headers=auth_headers).status_code == 404
