"""Tests for storage path rules and the Supabase storage wrapper."""

from __future__ import annotations

import uuid
from unittest.mock import MagicMock, patch

import pytest

from bettersafe.utils import storage
from bettersafe.utils.storage import (
    StorageError,
    build_photo_path,
    file_extension,
    is_path_owned,
    validate_image,
)
from tests.conftest import run


@pytest.fixture()
def bucket():
    """Mock bucket returned by client.storage.from_()."""
    client = MagicMock()
    bucket = MagicMock()
    client.storage.from_.return_value = bucket
    with patch("bettersafe.utils.storage.get_storage_client", return_value=client):
        yield bucket


def test_validate_image():
    assert validate_image("image/png", 1024) is None
    assert validate_image("application/pdf", 1024).startswith("Invalid file type")
    assert validate_image("image/jpeg", 10 * 1024 * 1024) == "File too large. Maximum size is 5MB."


def test_file_extension():
    assert file_extension("Photo.JPEG", "image/jpeg") == "jpeg"
    assert file_extension(None, "image/webp") == "webp"
    assert file_extension("weird.$$$", None) == "jpg"


def test_photo_path_layout():
    user_id = uuid.uuid4()
    owner, draft, name = build_photo_path(user_id, "draft-9", "a.png", "image/png").split("/")
    assert owner == str(user_id)
    assert draft == "draft-9"
    assert name.endswith(".png")
    assert build_photo_path(None, "d", None, "image/gif").startswith("anonymous/d/")


def test_path_ownership():
    user_id = uuid.uuid4()
    assert is_path_owned(f"{user_id}/d/a.jpg", user_id)
    assert not is_path_owned(f"{uuid.uuid4()}/d/a.jpg", user_id)
    assert not is_path_owned(f"{user_id}/../other/a.jpg", user_id)
    assert is_path_owned("anonymous/d/a.jpg", None)
    assert not is_path_owned("", user_id)


def test_client_requires_configuration(monkeypatch):
    storage.reset_storage_client()
    monkeypatch.setattr(storage.settings, "SUPABASE_URL", "")
    with pytest.raises(StorageError):
        storage.get_storage_client()


def test_upload_file(bucket):
    assert run(storage.upload_file("avatars", "u/a.png", b"data", "image/png", upsert=True)) == "u/a.png"
    bucket.upload.assert_called_once_with("u/a.png", b"data", {"content-type": "image/png", "upsert": "true"})


def test_upload_failure_raises(bucket):
    bucket.upload.side_effect = RuntimeError("bucket missing")
    with pytest.raises(StorageError):
        run(storage.upload_file("avatars", "u/a.png", b"data", "image/png"))


def test_delete_files(bucket):
    assert run(storage.delete_files("avatars", [])) is True
    bucket.remove.assert_not_called()

    assert run(storage.delete_file("avatars", "u/a.png")) is True
    bucket.remove.assert_called_once_with(["u/a.png"])

    bucket.remove.side_effect = RuntimeError("nope")
    assert run(storage.delete_file("avatars", "u/a.png")) is False


def test_create_signed_url(bucket):
    bucket.create_signed_url.return_value = {"signedURL": "https://signed.example/a"}
    assert run(storage.create_signed_url("avatars", "u/a.png", 60)) == "https://signed.example/a"
    bucket.create_signed_url.assert_called_once_with("u/a.png", 60)

    bucket.create_signed_url.side_effect = RuntimeError("nope")
    assert run(storage.create_signed_url("avatars", "u/a.png")) is None


def test_create_signed_urls(bucket):
    bucket.create_signed_urls.return_value = [
        {"path": "u/a.png", "signedURL": "https://signed.example/a"},
        {"path": "u/b.png", "error": "not found", "signedURL": None},
    ]
    urls = run(storage.create_signed_urls("incident-photos", ["u/a.png", "u/b.png"]))
    assert urls == {"u/a.png": "https://signed.example/a", "u/b.png": None}
