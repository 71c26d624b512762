from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile, File, Form, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, desc
from typing import List, Optional, Any, Dict
import logging
import re
import uuid

from bettersafe.database import SessionDep
from bettersafe.config import settings
from bettersafe.models.user import Profile
from bettersafe.models.incident import (
    IncidentReport, IncidentPhoto, IncidentSubmission, IncidentRead,
    IncidentPhotoRead, IncidentStatus, IncidentPriority, SecurityAuditLog
)
from bettersafe.api.auth import get_current_user, get_optional_user
from bettersafe.core.rate_limiter import check_rate_limit
from bettersafe.core.incidents import validate_incident_data
from bettersafe.core.geofencing import calculate_distance
from bettersafe.utils.security import get_client_ip, get_user_agent, sanitize_input
from bettersafe.utils.storage import (
    MAX_PHOTOS_PER_REPORT, StorageError, build_photo_path, create_signed_urls,
    upload_file, validate_image
)
from bettersafe.utils.timeutils import utcnow, ensure_utc

logger = logging.getLogger(__name__)

router = APIRouter()

DRAFT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

def to_incident_read(
    report: IncidentReport,
    photos: Optional[List[IncidentPhotoRead]] = None,
    distance_km: Optional[float] = None
) -> IncidentRead:
    data = report.model_dump()
    for field in ("incident_time", "reported_at", "created_at", "updated_at"):
        data[field] = ensure_utc(data[field])
    return IncidentRead(**data, photos=photos, distance_km=distance_km)

async def load_photos(
    db: AsyncSession,
    incident_ids: List[uuid.UUID]
) -> Dict[uuid.UUID, List[IncidentPhotoRead]]:
    """Photos with signed URLs, grouped by incident"""
    if not incident_ids:
        return {}

    result = await db.execute(
        select(IncidentPhoto)
        .where(IncidentPhoto.incident_id.in_(incident_ids))
        .order_by(IncidentPhoto.created_at)
    )
    photos = result.scalars().all()

    urls = await create_signed_urls(
        settings.INCIDENT_PHOTO_BUCKET, [p.storage_path for p in photos]
    )

    grouped: Dict[uuid.UUID, List[IncidentPhotoRead]] = {i: [] for i in incident_ids}
    for photo in photos:
        grouped[photo.incident_id].append(IncidentPhotoRead(
            id=photo.id,
            storage_path=photo.storage_path,
            file_size=photo.file_size,
            created_at=ensure_utc(photo.created_at),
            signed_url=urls.get(photo.storage_path)
        ))
    return grouped

def public_incidents():
    return select(IncidentReport).where(IncidentReport.is_anonymous == False)  # noqa: E712

@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_incident_report(
    db: SessionDep,
    request: Request,
    submission: IncidentSubmission,
    current_user: Optional[Profile] = Depends(get_optional_user)
) -> dict[str, Any]:
    user_id = current_user.user_id if current_user else None
    client_ip = get_client_ip(request)
    user_agent = get_user_agent(request)

    rate_limit = await check_rate_limit(db, user_id, client_ip, "incident_report")
    if not rate_limit.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "Rate limit exceeded",
                "message": "Too many incident reports submitted. Please try again later.",
                "reset_time": rate_limit.reset_time.isoformat()
            },
            headers={"Retry-After": str(rate_limit.retry_after_seconds())}
        )

    errors = validate_incident_data(submission, user_id)
    if errors:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Validation failed", "details": errors}
        )

    location_text = submission.location.strip() if submission.location else None
    report = IncidentReport(
        user_id=None if submission.anonymous else user_id,
        category=submission.category.strip(),
        category_custom=(
            sanitize_input(submission.category_custom, max_length=100) or None
            if submission.category_custom else None
        ),
        description=submission.description.strip(),
        location_text=location_text or None,
        latitude=submission.latitude,
        longitude=submission.longitude,
        incident_time=submission.incident_time,
        is_anonymous=submission.anonymous,
        status=IncidentStatus.PENDING,
        priority=IncidentPriority.MEDIUM,
        client_info={
            "ip_address": client_ip,
            "user_agent": user_agent,
            "submitted_at": utcnow().isoformat()
        }
    )
    db.add(report)
    await db.flush()

    for path in submission.photos or []:
        db.add(IncidentPhoto(incident_id=report.id, storage_path=path))

    if user_id:
        db.add(SecurityAuditLog(
            user_id=user_id,
            event_type="incident_report_submitted",
            event_details={
                "report_id": str(report.id),
                "category": report.category,
                "anonymous": report.is_anonymous
            },
            ip_address=client_ip,
            user_agent=user_agent
        ))

    await db.commit()
    await db.refresh(report)

    logger.info(f"Incident report {report.id} submitted ({report.category})")

    if not report.is_anonymous:
        websocket_manager = request.app.state.websocket_manager
        await websocket_manager.broadcast({
            "type": "incident_created",
            "incident": to_incident_read(report).model_dump(mode="json")
        })

    return {
        "success": True,
        "report_id": str(report.id),
        "message": "Incident report submitted successfully",
        "remaining_attempts": rate_limit.remaining_attempts
    }

@router.post("/photos")
async def upload_incident_photos(
    files: List[UploadFile] = File(...),
    draft_id: Optional[str] = Form(None),
    current_user: Optional[Profile] = Depends(get_optional_user)
) -> dict[str, Any]:
    """Upload photos ahead of submitting a report; returns storage paths to submit"""
    if len(files) > MAX_PHOTOS_PER_REPORT:
        raise HTTPException(
            status_code=400,
            detail=f"Maximum {MAX_PHOTOS_PER_REPORT} photos allowed per report"
        )
    if draft_id is not None and not DRAFT_ID_PATTERN.match(draft_id):
        raise HTTPException(status_code=400, detail="Invalid draft id")

    draft_id = draft_id or str(uuid.uuid4())
    user_id = current_user.user_id if current_user else None

    paths: List[str] = []
    errors: List[str] = []

    for upload in files:
        content = await upload.read()
        error = validate_image(upload.content_type, len(content))
        if error:
            errors.append(f"{upload.filename}: {error}")
            continue

        path = build_photo_path(user_id, draft_id, upload.filename, upload.content_type)
        try:
            await upload_file(settings.INCIDENT_PHOTO_BUCKET, path, content, upload.content_type)
            paths.append(path)
        except StorageError as e:
            errors.append(f"{upload.filename}: upload failed")
            logger.error(f"Incident photo upload failed: {e}")

    urls = await create_signed_urls(settings.INCIDENT_PHOTO_BUCKET, paths)

    return {
        "draft_id": draft_id,
        "paths": paths,
        "signed_urls": [urls.get(path) for path in paths],
        "failed": len(errors),
        "errors": errors
    }

@router.get("", response_model=List[IncidentRead])
async def list_incidents(
    db: SessionDep,
    status_filter: Optional[IncidentStatus] = Query(None, alias="status"),
    category: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    include_photos: bool = False
):
    statement = public_incidents()
    if status_filter:
        statement = statement.where(IncidentReport.status == status_filter)
    if category:
        statement = statement.where(IncidentReport.category == category)
    statement = statement.order_by(desc(IncidentReport.reported_at)).limit(limit)

    result = await db.execute(statement)
    reports = result.scalars().all()

    photos = await load_photos(db, [r.id for r in reports]) if include_photos else {}
    return [
        to_incident_read(r, photos.get(r.id) if include_photos else None)
        for r in reports
    ]

@router.get("/nearby", response_model=List[IncidentRead])
async def get_nearby_incidents(
    db: SessionDep,
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(5.0, gt=0, le=50)
):
    result = await db.execute(
        public_incidents()
        .where(IncidentReport.latitude.is_not(None), IncidentReport.longitude.is_not(None))
        .order_by(desc(IncidentReport.reported_at))
        .limit(50)
    )

    nearby = []
    for report in result.scalars().all():
        distance = calculate_distance(latitude, longitude, report.latitude, report.longitude)
        if distance <= radius_km:
            nearby.append(to_incident_read(report, distance_km=round(distance, 3)))
    return nearby

@router.get("/mine", response_model=List[IncidentRead])
async def get_my_incidents(
    db: SessionDep,
    current_user: Profile = Depends(get_current_user)
):
    result = await db.execute(
        select(IncidentReport)
        .where(IncidentReport.user_id == current_user.user_id)
        .order_by(desc(IncidentReport.reported_at))
    )
    return [to_incident_read(r) for r in result.scalars().all()]

@router.get("/{incident_id}", response_model=IncidentRead)
async def get_incident(
    db: SessionDep,
    incident_id: uuid.UUID
):
    result = await db.execute(
        public_incidents().where(IncidentReport.id == incident_id)
    )
    report = result.scalar_one_or_none()
    if not report:
        raise HTTPException(status_code=404, detail="Incident not found")

    photos = await load_photos(db, [report.id])
    return to_incident_read(report, photos[report.id])
