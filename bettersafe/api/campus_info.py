from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from sqlmodel import select, SQLModel
from typing import Any, List, Optional
import logging

from bettersafe.database import SessionDep
from bettersafe.config import settings
from bettersafe.models.user import Profile
from bettersafe.models.campus import (
    CampusService, CampusServiceRead, ServiceCategory, CampusEvent, CampusEventRead
)
from bettersafe.api.auth import get_current_user
from bettersafe.core.rate_limiter import maps_key_limiter
from bettersafe.core.services import is_service_open
from bettersafe.utils.security import get_client_ip
from bettersafe.utils.storage import create_signed_url, is_path_owned
from bettersafe.utils.timeutils import utcnow, ensure_utc, campus_now
from bettersafe.utils.weather import fetch_campus_weather, WeatherError

logger = logging.getLogger(__name__)

router = APIRouter()

AVATAR_URL_EXPIRY_SECONDS = 60

class SignedUrlRequest(SQLModel):
    path: Optional[str] = None

@router.get("/weather", tags=["Campus Info"])
async def get_weather() -> dict[str, Any]:
    try:
        return await fetch_campus_weather()
    except WeatherError:
        raise HTTPException(status_code=502, detail="Unable to load weather. Please try again later.")

@router.get("/services", tags=["Campus Info"])
async def get_services(db: SessionDep) -> dict[str, List[CampusServiceRead]]:
    """Dining locations and campus services with live open/closed status"""
    result = await db.execute(select(CampusService).order_by(CampusService.name))
    now = campus_now()

    dining, services = [], []
    for service in result.scalars().all():
        read = CampusServiceRead(**service.model_dump(), is_open=is_service_open(service, now))
        (dining if service.category == ServiceCategory.DINING else services).append(read)

    return {"dining": dining, "services": services}

@router.get("/events", response_model=List[CampusEventRead], tags=["Campus Info"])
async def get_upcoming_events(db: SessionDep, limit: int = Query(20, ge=1, le=100)):
    result = await db.execute(
        select(CampusEvent)
        .where(CampusEvent.starts_at >= utcnow())
        .order_by(CampusEvent.starts_at)
        .limit(limit)
    )
    return [
        CampusEventRead(**{**event.model_dump(), "starts_at": ensure_utc(event.starts_at)})
        for event in result.scalars().all()
    ]

@router.get("/maps/key", tags=["Campus Info"])
async def get_maps_key(request: Request, response: Response) -> dict[str, str]:
    client_ip = get_client_ip(request)

    if not maps_key_limiter.can_attempt(client_ip):
        retry_after = int(maps_key_limiter.remaining_time(client_ip)) + 1
        raise HTTPException(
            status_code=429,
            detail="Too many requests. Please try again later.",
            headers={"Retry-After": str(retry_after)}
        )

    if not settings.GOOGLE_MAPS_API_KEY:
        logger.error("GOOGLE_MAPS_API_KEY is not configured")
        raise HTTPException(status_code=500, detail="Internal server error")

    response.headers["Cache-Control"] = "private, max-age=300"
    return {"apiKey": settings.GOOGLE_MAPS_API_KEY}

@router.post("/storage/signed-url", tags=["Storage"])
async def get_avatar_signed_url(
    body: SignedUrlRequest,
    current_user: Profile = Depends(get_current_user)
) -> dict[str, Any]:
    """Short-lived URL for a file in the avatars bucket"""
    if not body.path:
        raise HTTPException(status_code=400, detail="File path is required")

    if not current_user.is_admin and not is_path_owned(body.path, current_user.user_id):
        logger.warning(f"User {current_user.user_id} denied signed URL for {body.path}")
        raise HTTPException(status_code=403, detail="Access denied")

    url = await create_signed_url(settings.AVATAR_BUCKET, body.path, AVATAR_URL_EXPIRY_SECONDS)
    if url is None:
        raise HTTPException(status_code=500, detail="Failed to create signed URL")

    return {"signedUrl": url, "expires_in": AVATAR_URL_EXPIRY_SECONDS}
