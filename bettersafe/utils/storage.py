"""
Supabase Storage helpers for incident photos and avatars

Usage:
    from bettersafe.utils.storage import upload_file, create_signed_url

    path = build_photo_path(user_id, draft_id, "photo.jpg", "image/jpeg")
    await upload_file(settings.INCIDENT_PHOTO_BUCKET, path, content, "image/jpeg")
    url = await create_signed_url(settings.INCIDENT_PHOTO_BUCKET, path)

The supabase client is synchronous; calls are run in a worker thread.
"""

import asyncio
import logging
import threading
import time
import uuid
from typing import Dict, List, Optional, Any

from supabase import Client, create_client

from bettersafe.config import settings

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}
MAX_PHOTOS_PER_REPORT = 5

class StorageError(Exception):
    """Raised when an upload or delete against the storage backend fails"""

_client_lock = threading.Lock()
_client: Optional[Client] = None

def get_storage_client() -> Client:
    """Return the singleton service-role Supabase client"""
    global _client

    with _client_lock:
        if _client is None:
            if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
                raise StorageError("Supabase storage is not configured")
            _client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
            logger.info("Supabase storage client created")
        return _client

def reset_storage_client() -> None:
    global _client
    with _client_lock:
        _client = None

def validate_image(content_type: Optional[str], size: int) -> Optional[str]:
    """Return an error message for an unacceptable photo, or None"""
    if content_type not in ALLOWED_IMAGE_TYPES:
        return "Invalid file type. Only JPEG, PNG, GIF, and WebP images are allowed."
    if size > settings.MAX_PHOTO_SIZE_BYTES:
        limit_mb = settings.MAX_PHOTO_SIZE_BYTES // (1024 * 1024)
        return f"File too large. Maximum size is {limit_mb}MB."
    return None

def file_extension(filename: Optional[str], content_type: Optional[str]) -> str:
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[1].lower()
        if ext.isalnum():
            return ext
    return ALLOWED_IMAGE_TYPES.get(content_type or "", "jpg")

def owner_folder(user_id: Optional[uuid.UUID]) -> str:
    return str(user_id) if user_id else "anonymous"

def build_photo_path(
    user_id: Optional[uuid.UUID],
    draft_id: str,
    filename: Optional[str],
    content_type: Optional[str]
) -> str:
    """{user_id|anonymous}/{draft_id}/{epoch_ms}_{rand6}.{ext}"""
    timestamp = int(time.time() * 1000)
    suffix = uuid.uuid4().hex[:6]
    ext = file_extension(filename, content_type)
    return f"{owner_folder(user_id)}/{draft_id}/{timestamp}_{suffix}.{ext}"

def is_path_owned(path: str, user_id: Optional[uuid.UUID]) -> bool:
    """Check that a storage path lives in the caller's top-level folder"""
    if not path or ".." in path.split("/"):
        return False
    return path.split("/", 1)[0] == owner_folder(user_id)

def _signed_url_from(response: Any) -> Optional[str]:
    if isinstance(response, dict):
        return response.get("signedURL") or response.get("signedUrl")
    return None

async def upload_file(
    bucket: str,
    path: str,
    content: bytes,
    content_type: str,
    upsert: bool = False
) -> str:
    client = get_storage_client()
    try:
        await asyncio.to_thread(
            client.storage.from_(bucket).upload,
            path,
            content,
            {"content-type": content_type, "upsert": "true" if upsert else "false"},
        )
    except Exception as e:
        logger.error(f"Upload to {bucket}/{path} failed: {e}")
        raise StorageError(str(e)) from e

    logger.info(f"Uploaded {bucket}/{path} ({len(content)} bytes)")
    return path

async def delete_file(bucket: str, path: str) -> bool:
    return await delete_files(bucket, [path])

async def delete_files(bucket: str, paths: List[str]) -> bool:
    if not paths:
        return True
    try:
        client = get_storage_client()
        await asyncio.to_thread(client.storage.from_(bucket).remove, paths)
        return True
    except Exception as e:
        logger.error(f"Deleting {len(paths)} file(s) from {bucket} failed: {e}")
        return False

async def create_signed_url(
    bucket: str,
    path: str,
    expires_in: Optional[int] = None
) -> Optional[str]:
    try:
        client = get_storage_client()
        response = await asyncio.to_thread(
            client.storage.from_(bucket).create_signed_url,
            path,
            expires_in or settings.SIGNED_URL_EXPIRY_SECONDS,
        )
        return _signed_url_from(response)
    except Exception as e:
        logger.error(f"Signed URL for {bucket}/{path} failed: {e}")
        return None

async def create_signed_urls(
    bucket: str,
    paths: List[str],
    expires_in: Optional[int] = None
) -> Dict[str, Optional[str]]:
    """Map each path to a signed URL (None where signing failed)"""
    if not paths:
        return {}
    try:
        client = get_storage_client()
        response = await asyncio.to_thread(
            client.storage.from_(bucket).create_signed_urls,
            paths,
            expires_in or settings.SIGNED_URL_EXPIRY_SECONDS,
        )
    except Exception as e:
        logger.error(f"Batch signed URLs for {bucket} failed: {e}")
        return {path: None for path in paths}

    urls: Dict[str, Optional[str]] = {path: None for path in paths}
    for item in response or []:
        if isinstance(item, dict) and item.get("path") in urls:
            urls[item["path"]] = _signed_url_from(item)
    return urls

async def list_bucket(bucket: str, limit: int = 1) -> List[Dict[str, Any]]:
    client = get_storage_client()
    return await asyncio.to_thread(
        client.storage.from_(bucket).list, "", {"limit": limit}
    )
