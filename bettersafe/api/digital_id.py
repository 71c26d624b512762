from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from datetime import datetime, timezone
from typing import Any, Optional
import logging
import uuid

from bettersafe.database import SessionDep
from bettersafe.config import settings
from bettersafe.models.user import Profile, DigitalID, DigitalIDUpsert, DigitalIDRead
from bettersafe.api.auth import get_current_user
from bettersafe.utils.security import sanitize_input
from bettersafe.utils.storage import (
    StorageError, create_signed_url, delete_file, is_path_owned,
    upload_file, validate_image
)

logger = logging.getLogger(__name__)

router = APIRouter()

ID_PHOTO_TYPES = {"image/jpeg", "image/png"}

async def get_digital_id(db: AsyncSession, user_id: uuid.UUID) -> Optional[DigitalID]:
    result = await db.execute(select(DigitalID).where(DigitalID.user_id == user_id))
    return result.scalar_one_or_none()

async def to_read(digital_id: DigitalID) -> DigitalIDRead:
    signed_url = None
    if digital_id.photo_url:
        signed_url = await create_signed_url(settings.AVATAR_BUCKET, digital_id.photo_url)
    return DigitalIDRead(**digital_id.model_dump(), photo_signed_url=signed_url)

@router.get("", response_model=DigitalIDRead)
async def get_my_digital_id(
    db: SessionDep,
    current_user: Profile = Depends(get_current_user)
):
    digital_id = await get_digital_id(db, current_user.user_id)
    if not digital_id:
        raise HTTPException(status_code=404, detail="Digital ID not found")
    return await to_read(digital_id)

@router.put("", response_model=DigitalIDRead)
async def upsert_digital_id(
    db: SessionDep,
    id_data: DigitalIDUpsert,
    current_user: Profile = Depends(get_current_user)
):
    fields = {
        "full_name": sanitize_input(id_data.full_name, max_length=100),
        "student_id": sanitize_input(id_data.student_id, max_length=50),
        "program": sanitize_input(id_data.program, max_length=100),
        "class_year": sanitize_input(id_data.class_year, max_length=20),
    }
    if not all(fields.values()):
        raise HTTPException(status_code=400, detail="Please fill in all required fields")

    if id_data.photo_url and not is_path_owned(id_data.photo_url, current_user.user_id):
        raise HTTPException(status_code=403, detail="Photo must belong to the current user")

    digital_id = await get_digital_id(db, current_user.user_id)
    photo_url = id_data.photo_url or (digital_id.photo_url if digital_id else None)
    if not photo_url:
        raise HTTPException(status_code=400, detail="Please upload your ID photo")

    if digital_id is None:
        digital_id = DigitalID(user_id=current_user.user_id, photo_url=photo_url, **fields)
        logger.info(f"Digital ID created for user {current_user.user_id}")
    else:
        for key, value in fields.items():
            setattr(digital_id, key, value)
        digital_id.photo_url = photo_url
        digital_id.updated_at = datetime.now(timezone.utc)

    db.add(digital_id)
    await db.commit()
    await db.refresh(digital_id)

    return await to_read(digital_id)

@router.post("/photo")
async def upload_id_photo(
    file: UploadFile = File(...),
    current_user: Profile = Depends(get_current_user)
) -> dict[str, Any]:
    if file.content_type not in ID_PHOTO_TYPES:
        raise HTTPException(status_code=400, detail="Please select a JPG or PNG image")

    content = await file.read()
    error = validate_image(file.content_type, len(content))
    if error:
        raise HTTPException(status_code=400, detail=error)

    ext = "png" if file.content_type == "image/png" else "jpg"
    path = f"{current_user.user_id}/digital-id.{ext}"
    try:
        await upload_file(settings.AVATAR_BUCKET, path, content, file.content_type, upsert=True)
    except StorageError:
        raise HTTPException(status_code=502, detail="Photo upload failed")

    return {"photo_url": path}

@router.delete("")
async def delete_digital_id(
    db: SessionDep,
    current_user: Profile = Depends(get_current_user)
) -> dict[str, str]:
    digital_id = await get_digital_id(db, current_user.user_id)
    if not digital_id:
        raise HTTPException(status_code=404, detail="Digital ID not found")

    photo_url = digital_id.photo_url
    await db.delete(digital_id)
    await db.commit()

    if photo_url:
        await delete_file(settings.AVATAR_BUCKET, photo_url)

    return {"message": "Digital ID deleted"}
