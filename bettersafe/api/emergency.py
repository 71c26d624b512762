from fastapi import APIRouter, Depends, HTTPException, BackgroundTasks, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, desc
from datetime import datetime, timezone
from typing import Any, List, Optional
import logging
import uuid

from bettersafe.database import SessionDep
from bettersafe.models.user import Profile
from bettersafe.models.emergency import (
    DirectoryContact, DirectoryContactRead, DirectoryCategory,
    UserEmergencyContact, UserEmergencyContactCreate, UserEmergencyContactUpdate,
    UserEmergencyContactRead, EmergencyAlert, EmergencyRequest, EmergencyAlertRead,
    AlertStatus
)
from bettersafe.api.auth import get_current_user
from bettersafe.core.directory import FALLBACK_DIRECTORY, group_by_category, validate_phone
from bettersafe.core.emergency_alert import send_emergency_notifications
from bettersafe.core.geofencing import validate_coordinates
from bettersafe.utils.geocoding import reverse_geocode
from bettersafe.utils.security import sanitize_input, validate_email

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_ALERT_MESSAGE = "Emergency alert triggered"

def validation_error(errors: List[str]) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"error": "Validation failed", "details": errors}
    )

def validate_contact_fields(
    name: Optional[str],
    phone: Optional[str],
    email: Optional[str],
    relationship: Optional[str],
    partial: bool = False
) -> List[str]:
    errors = []
    if not partial or name is not None:
        if not name or not 1 <= len(name.strip()) <= 100:
            errors.append("Name must be between 1 and 100 characters")
    if not partial or phone is not None:
        phone_error = validate_phone(phone)
        if phone_error:
            errors.append(phone_error)
    if email:
        valid, error = validate_email(email)
        if not valid:
            errors.append(error)
    if not partial or relationship is not None:
        if not relationship or not 1 <= len(relationship.strip()) <= 50:
            errors.append("Relationship must be between 1 and 50 characters")
    return errors

async def get_owned_contact(
    db: AsyncSession,
    contact_id: uuid.UUID,
    user: Profile
) -> UserEmergencyContact:
    result = await db.execute(
        select(UserEmergencyContact).where(
            UserEmergencyContact.id == contact_id,
            UserEmergencyContact.user_id == user.user_id,
            UserEmergencyContact.is_active == True  # noqa: E712
        )
    )
    contact = result.scalar_one_or_none()
    if not contact:
        raise HTTPException(status_code=404, detail="Contact not found")
    return contact

# Campus directory

@router.get("/directory", response_model=List[DirectoryCategory])
async def get_emergency_directory(db: SessionDep):
    result = await db.execute(
        select(DirectoryContact)
        .where(DirectoryContact.is_active == True)  # noqa: E712
        .order_by(desc(DirectoryContact.priority), DirectoryContact.title)
    )
    entries = [DirectoryContactRead.model_validate(c) for c in result.scalars().all()]

    if not entries:
        logger.info("Emergency directory empty, serving fallback contacts")
        entries = FALLBACK_DIRECTORY

    return group_by_category(entries)

# Personal emergency contacts

@router.get("/contacts", response_model=List[UserEmergencyContactRead])
async def list_my_contacts(
    db: SessionDep,
    current_user: Profile = Depends(get_current_user)
):
    result = await db.execute(
        select(UserEmergencyContact)
        .where(
            UserEmergencyContact.user_id == current_user.user_id,
            UserEmergencyContact.is_active == True  # noqa: E712
        )
        .order_by(desc(UserEmergencyContact.priority), UserEmergencyContact.name)
    )
    return result.scalars().all()

@router.post("/contacts", response_model=UserEmergencyContactRead, status_code=status.HTTP_201_CREATED)
async def add_contact(
    db: SessionDep,
    contact_data: UserEmergencyContactCreate,
    current_user: Profile = Depends(get_current_user)
):
    errors = validate_contact_fields(
        contact_data.name, contact_data.phone, contact_data.email, contact_data.relationship
    )
    if errors:
        raise validation_error(errors)

    contact = UserEmergencyContact(
        user_id=current_user.user_id,
        name=sanitize_input(contact_data.name, max_length=100),
        phone=contact_data.phone.strip(),
        email=contact_data.email.strip() if contact_data.email else None,
        relationship=sanitize_input(contact_data.relationship, max_length=50),
        priority=contact_data.priority
    )
    db.add(contact)
    await db.commit()
    await db.refresh(contact)

    return contact

@router.put("/contacts/{contact_id}", response_model=UserEmergencyContactRead)
async def update_contact(
    db: SessionDep,
    contact_id: uuid.UUID,
    contact_update: UserEmergencyContactUpdate,
    current_user: Profile = Depends(get_current_user)
):
    contact = await get_owned_contact(db, contact_id, current_user)
    updates = contact_update.model_dump(exclude_unset=True)

    errors = validate_contact_fields(
        updates.get("name"), updates.get("phone"), updates.get("email"),
        updates.get("relationship"), partial=True
    )
    if errors:
        raise validation_error(errors)

    if updates.get("name") is not None:
        updates["name"] = sanitize_input(updates["name"], max_length=100)
    if updates.get("relationship") is not None:
        updates["relationship"] = sanitize_input(updates["relationship"], max_length=50)

    for key, value in updates.items():
        setattr(contact, key, value)
    contact.updated_at = datetime.now(timezone.utc)

    db.add(contact)
    await db.commit()
    await db.refresh(contact)

    return contact

@router.delete("/contacts/{contact_id}")
async def delete_contact(
    db: SessionDep,
    contact_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user)
) -> dict[str, str]:
    contact = await get_owned_contact(db, contact_id, current_user)
    await db.delete(contact)
    await db.commit()

    return {"message": "Contact removed"}

@router.post("/contacts/{contact_id}/primary", response_model=UserEmergencyContactRead)
async def set_primary_contact(
    db: SessionDep,
    contact_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user)
):
    contact = await get_owned_contact(db, contact_id, current_user)

    result = await db.execute(
        select(UserEmergencyContact).where(UserEmergencyContact.user_id == current_user.user_id)
    )
    now = datetime.now(timezone.utc)
    for other in result.scalars().all():
        other.priority = 0
        other.updated_at = now
        db.add(other)

    contact.priority = 1
    db.add(contact)
    await db.commit()
    await db.refresh(contact)

    return contact

# Emergency alerts

@router.post("/alerts")
async def trigger_emergency_alert(
    db: SessionDep,
    emergency_data: EmergencyRequest,
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user)
) -> dict[str, Any]:
    result = await db.execute(
        select(UserEmergencyContact)
        .where(
            UserEmergencyContact.user_id == current_user.user_id,
            UserEmergencyContact.is_active == True  # noqa: E712
        )
        .order_by(desc(UserEmergencyContact.priority), UserEmergencyContact.name)
    )
    contacts = result.scalars().all()

    if not contacts:
        raise HTTPException(status_code=400, detail="No emergency contacts configured")

    lat, lng = emergency_data.location_lat, emergency_data.location_lng
    if (lat is None) != (lng is None):
        raise validation_error(["Latitude and longitude must be provided together"])
    if lat is not None:
        errors = validate_coordinates(lat, lng)
        if errors:
            raise validation_error(errors)

    address = emergency_data.location_address
    if lat is not None and not address:
        address = await reverse_geocode(lat, lng)

    alert = EmergencyAlert(
        user_id=current_user.user_id,
        alert_type=emergency_data.alert_type,
        location_lat=lat,
        location_lng=lng,
        location_address=address,
        message=emergency_data.message or DEFAULT_ALERT_MESSAGE,
        status=AlertStatus.SENT,
        contacts_notified=len(contacts)
    )
    db.add(alert)
    await db.commit()
    await db.refresh(alert)

    logger.critical(f"Emergency alert {alert.id} triggered by user {current_user.user_id}")

    # Send notifications in background
    background_tasks.add_task(
        send_emergency_notifications,
        alert_id=alert.id,
        contacts=[
            {"name": c.name, "phone": c.phone, "email": c.email, "relationship": c.relationship}
            for c in contacts
        ],
        user_name=current_user.full_name or current_user.username or current_user.email or "A BetterSafe user"
    )

    return {
        "success": True,
        "alert_id": str(alert.id),
        "contacts_notified": len(contacts)
    }

@router.get("/alerts", response_model=List[EmergencyAlertRead])
async def get_alert_history(
    db: SessionDep,
    limit: int = Query(20, ge=1, le=100),
    current_user: Profile = Depends(get_current_user)
):
    # Only return user's own alerts for privacy
    result = await db.execute(
        select(EmergencyAlert)
        .where(EmergencyAlert.user_id == current_user.user_id)
        .order_by(desc(EmergencyAlert.created_at))
        .limit(limit)
    )
    return result.scalars().all()

@router.put("/alerts/{alert_id}/resolve", response_model=EmergencyAlertRead)
async def resolve_alert(
    db: SessionDep,
    alert_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user)
):
    result = await db.execute(
        select(EmergencyAlert)
        .where(
            EmergencyAlert.id == alert_id,
            EmergencyAlert.user_id == current_user.user_id
        )
    )

    alert = result.scalar_one_or_none()
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")

    alert.status = AlertStatus.RESOLVED
    alert.resolved_at = datetime.now(timezone.utc)

    db.add(alert)
    await db.commit()
    await db.refresh(alert)

    return alert
