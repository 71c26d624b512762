from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, desc, delete
from datetime import datetime, timezone
from typing import Any, List, Optional, Type
import logging
import re
import uuid

from bettersafe.database import SessionDep
from bettersafe.config import settings
from bettersafe.models.user import Profile
from bettersafe.models.emergency import (
    DirectoryContact, DirectoryContactCreate, DirectoryContactUpdate
)
from bettersafe.models.campus import (
    CampusService, CampusServiceCreate, CampusServiceUpdate,
    CampusEvent, CampusEventCreate, CampusEventUpdate,
    ChangelogEntry, ChangelogEntryCreate, ChangelogEntryUpdate, BugReport, UserFeedback
)
from bettersafe.models.incident import (
    IncidentReport, IncidentPhoto, IncidentRead, IncidentModeration, IncidentStatus
)
from bettersafe.api.auth import require_admin
from bettersafe.api.incidents import to_incident_read
from bettersafe.core.analytics import campus_analytics
from bettersafe.utils.storage import delete_files

logger = logging.getLogger(__name__)

router = APIRouter()

VERSION_PATTERN = re.compile(r"^\d+(\.\d+)*$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
WEEKDAYS = {"monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"}

async def get_or_404(db: AsyncSession, model: Type, item_id: uuid.UUID, name: str):
    item = await db.get(model, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"{name} not found")
    return item

async def apply_update(db: AsyncSession, item, updates: dict):
    for key, value in updates.items():
        setattr(item, key, value)
    if hasattr(item, "updated_at"):
        item.updated_at = datetime.now(timezone.utc)
    db.add(item)
    await db.commit()
    await db.refresh(item)
    return item

def validate_service_fields(
    open_time: Optional[str],
    close_time: Optional[str],
    days_open: Optional[List[str]]
) -> List[str]:
    errors = []
    for label, value in (("open_time", open_time), ("close_time", close_time)):
        if value is not None and not TIME_PATTERN.match(value):
            errors.append(f"{label} must be in HH:MM format")
    if days_open is not None:
        unknown = [d for d in days_open if d.lower() not in WEEKDAYS]
        if unknown:
            errors.append(f"Unknown days: {', '.join(unknown)}")
    return errors

def clean_version(version: str) -> str:
    version = version.strip()
    if not VERSION_PATTERN.match(version):
        raise HTTPException(status_code=400, detail="Version must be dotted numbers, e.g. 1.4.0")
    return version

# Emergency directory

@router.get("/directory", response_model=List[DirectoryContact])
async def list_directory(db: SessionDep, admin: Profile = Depends(require_admin)):
    result = await db.execute(
        select(DirectoryContact).order_by(desc(DirectoryContact.priority), DirectoryContact.title)
    )
    return result.scalars().all()

@router.post("/directory", response_model=DirectoryContact, status_code=status.HTTP_201_CREATED)
async def create_directory_contact(
    db: SessionDep,
    contact_data: DirectoryContactCreate,
    admin: Profile = Depends(require_admin)
):
    contact = DirectoryContact.model_validate(contact_data)
    db.add(contact)
    await db.commit()
    await db.refresh(contact)
    return contact

@router.put("/directory/{contact_id}", response_model=DirectoryContact)
async def update_directory_contact(
    db: SessionDep,
    contact_id: uuid.UUID,
    contact_update: DirectoryContactUpdate,
    admin: Profile = Depends(require_admin)
):
    contact = await get_or_404(db, DirectoryContact, contact_id, "Contact")
    return await apply_update(db, contact, contact_update.model_dump(exclude_unset=True))

@router.delete("/directory/{contact_id}")
async def delete_directory_contact(
    db: SessionDep,
    contact_id: uuid.UUID,
    admin: Profile = Depends(require_admin)
) -> dict[str, str]:
    contact = await get_or_404(db, DirectoryContact, contact_id, "Contact")
    await db.delete(contact)
    await db.commit()
    return {"message": "Contact deleted"}

# Dining and services

@router.post("/services", response_model=CampusService, status_code=status.HTTP_201_CREATED)
async def create_service(
    db: SessionDep,
    service_data: CampusServiceCreate,
    admin: Profile = Depends(require_admin)
):
    errors = validate_service_fields(service_data.open_time, service_data.close_time, service_data.days_open)
    if errors:
        raise HTTPException(status_code=400, detail={"error": "Validation failed", "details": errors})

    service = CampusService.model_validate(service_data)
    db.add(service)
    await db.commit()
    await db.refresh(service)
    return service

@router.put("/services/{service_id}", response_model=CampusService)
async def update_service(
    db: SessionDep,
    service_id: uuid.UUID,
    service_update: CampusServiceUpdate,
    admin: Profile = Depends(require_admin)
):
    service = await get_or_404(db, CampusService, service_id, "Service")
    updates = service_update.model_dump(exclude_unset=True)
    errors = validate_service_fields(updates.get("open_time"), updates.get("close_time"), updates.get("days_open"))
    if errors:
        raise HTTPException(status_code=400, detail={"error": "Validation failed", "details": errors})
    return await apply_update(db, service, updates)

@router.delete("/services/{service_id}")
async def delete_service(
    db: SessionDep,
    service_id: uuid.UUID,
    admin: Profile = Depends(require_admin)
) -> dict[str, str]:
    service = await get_or_404(db, CampusService, service_id, "Service")
    await db.delete(service)
    await db.commit()
    return {"message": "Service deleted"}

# Events

@router.post("/events", response_model=CampusEvent, status_code=status.HTTP_201_CREATED)
async def create_event(
    db: SessionDep,
    event_data: CampusEventCreate,
    admin: Profile = Depends(require_admin)
):
    event = CampusEvent(**event_data.model_dump())
    db.add(event)
    await db.commit()
    await db.refresh(event)
    return event

@router.put("/events/{event_id}", response_model=CampusEvent)
async def update_event(
    db: SessionDep,
    event_id: uuid.UUID,
    event_update: CampusEventUpdate,
    admin: Profile = Depends(require_admin)
):
    event = await get_or_404(db, CampusEvent, event_id, "Event")
    return await apply_update(db, event, event_update.model_dump(exclude_unset=True))

@router.delete("/events/{event_id}")
async def delete_event(
    db: SessionDep,
    event_id: uuid.UUID,
    admin: Profile = Depends(require_admin)
) -> dict[str, str]:
    event = await get_or_404(db, CampusEvent, event_id, "Event")
    await db.delete(event)
    await db.commit()
    return {"message": "Event deleted"}

# Changelog

@router.post("/changelog", response_model=ChangelogEntry, status_code=status.HTTP_201_CREATED)
async def create_changelog_entry(
    db: SessionDep,
    entry_data: ChangelogEntryCreate,
    admin: Profile = Depends(require_admin)
):
    entry = ChangelogEntry.model_validate(entry_data)
    entry.version = clean_version(entry_data.version)
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    return entry

@router.put("/changelog/{entry_id}", response_model=ChangelogEntry)
async def update_changelog_entry(
    db: SessionDep,
    entry_id: uuid.UUID,
    entry_update: ChangelogEntryUpdate,
    admin: Profile = Depends(require_admin)
):
    entry = await get_or_404(db, ChangelogEntry, entry_id, "Changelog entry")
    updates = {k: v for k, v in entry_update.model_dump(exclude_unset=True).items() if v is not None}
    if "version" in updates:
        updates["version"] = clean_version(updates["version"])
    return await apply_update(db, entry, updates)

@router.delete("/changelog/{entry_id}")
async def delete_changelog_entry(
    db: SessionDep,
    entry_id: uuid.UUID,
    admin: Profile = Depends(require_admin)
) -> dict[str, str]:
    entry = await get_or_404(db, ChangelogEntry, entry_id, "Changelog entry")
    await db.delete(entry)
    await db.commit()
    return {"message": "Changelog entry deleted"}

# Incident moderation

@router.get("/incidents", response_model=List[IncidentRead])
async def list_all_incidents(
    db: SessionDep,
    status_filter: Optional[IncidentStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    admin: Profile = Depends(require_admin)
):
    statement = select(IncidentReport)
    if status_filter:
        statement = statement.where(IncidentReport.status == status_filter)
    result = await db.execute(statement.order_by(desc(IncidentReport.reported_at)).limit(limit))
    return [to_incident_read(r) for r in result.scalars().all()]

@router.patch("/incidents/{incident_id}", response_model=IncidentRead)
async def moderate_incident(
    db: SessionDep,
    request: Request,
    incident_id: uuid.UUID,
    moderation: IncidentModeration,
    admin: Profile = Depends(require_admin)
):
    report = await get_or_404(db, IncidentReport, incident_id, "Incident")
    updates = {k: v for k, v in moderation.model_dump(exclude_unset=True).items() if v is not None}
    if not updates:
        raise HTTPException(status_code=400, detail="Nothing to update")

    report = await apply_update(db, report, updates)
    logger.info(f"Incident {report.id} moderated by {admin.user_id}: {updates}")

    incident = to_incident_read(report)
    if not report.is_anonymous:
        websocket_manager = request.app.state.websocket_manager
        await websocket_manager.broadcast({
            "type": "incident_updated",
            "incident": incident.model_dump(mode="json")
        })
    return incident

@router.delete("/incidents/{incident_id}")
async def delete_incident(
    db: SessionDep,
    incident_id: uuid.UUID,
    admin: Profile = Depends(require_admin)
) -> dict[str, Any]:
    report = await get_or_404(db, IncidentReport, incident_id, "Incident")

    result = await db.execute(
        select(IncidentPhoto.storage_path).where(IncidentPhoto.incident_id == report.id)
    )
    photo_paths = list(result.scalars().all())

    await db.execute(delete(IncidentPhoto).where(IncidentPhoto.incident_id == report.id))
    await db.delete(report)
    await db.commit()

    photos_removed = await delete_files(settings.INCIDENT_PHOTO_BUCKET, photo_paths)
    if not photos_removed:
        logger.warning(f"Incident {incident_id} deleted but its photos could not be removed")

    return {"message": "Incident deleted", "photos_deleted": len(photo_paths) if photos_removed else 0}

# Analytics

@router.get("/analytics/incidents")
async def get_incident_analytics(
    db: SessionDep,
    admin: Profile = Depends(require_admin)
) -> dict[str, Any]:
    return await campus_analytics.get_incident_analytics(db)

@router.get("/analytics/emergencies")
async def get_emergency_analytics(
    db: SessionDep,
    days_back: int = Query(30, ge=1, le=365),
    admin: Profile = Depends(require_admin)
) -> dict[str, Any]:
    return await campus_analytics.get_emergency_analytics(db, days_back)

# Bug reports and feedback

@router.get("/bug-reports", response_model=List[BugReport])
async def list_bug_reports(
    db: SessionDep,
    limit: int = Query(100, ge=1, le=500),
    admin: Profile = Depends(require_admin)
):
    result = await db.execute(select(BugReport).order_by(desc(BugReport.created_at)).limit(limit))
    return result.scalars().all()

@router.get("/feedback", response_model=List[UserFeedback])
async def list_feedback(
    db: SessionDep,
    limit: int = Query(100, ge=1, le=500),
    admin: Profile = Depends(require_admin)
):
    result = await db.execute(select(UserFeedback).order_by(desc(UserFeedback.created_at)).limit(limit))
    return result.scalars().all()
