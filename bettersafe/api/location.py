from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, desc, update
from typing import List, Any, Optional
from datetime import datetime, timezone
import uuid

from bettersafe.database import SessionDep
from bettersafe.models.user import Profile
from bettersafe.models.location import (
    LocationSharingPreference, SharingPreferencesRead, SharingPreferencesUpdate,
    UserLocation, LocationUpdateCreate, FriendLocation
)
from bettersafe.core.geofencing import get_nearest_landmark, is_within_campus, validate_coordinates
from bettersafe.api.auth import get_current_user
from bettersafe.api.friends import get_friend_ids, load_profiles
from bettersafe.utils.timeutils import ensure_utc

router = APIRouter()

async def get_or_create_preferences(db: AsyncSession, user_id: uuid.UUID) -> LocationSharingPreference:
    result = await db.execute(
        select(LocationSharingPreference).where(LocationSharingPreference.user_id == user_id)
    )
    preferences = result.scalar_one_or_none()

    if preferences is None:
        preferences = LocationSharingPreference(user_id=user_id)
        db.add(preferences)
        await db.commit()
        await db.refresh(preferences)

    return preferences

async def deactivate_locations(db: AsyncSession, user_id: uuid.UUID):
    await db.execute(
        update(UserLocation)
        .where(UserLocation.user_id == user_id, UserLocation.is_active == True)  # noqa: E712
        .values(is_active=False)
    )

async def record_location(
    db: AsyncSession,
    request: Request,
    user: Profile,
    location_data: LocationUpdateCreate
) -> dict[str, Any]:
    """Replace the user's active location and push it to online friends"""
    errors = validate_coordinates(location_data.latitude, location_data.longitude)
    if errors:
        raise HTTPException(status_code=400, detail=errors[0])

    await deactivate_locations(db, user.user_id)

    location = UserLocation(
        user_id=user.user_id,
        latitude=location_data.latitude,
        longitude=location_data.longitude,
        accuracy=location_data.accuracy,
        heading=location_data.heading,
        speed=location_data.speed,
        is_active=True
    )
    db.add(location)
    await db.commit()
    await db.refresh(location)

    nearest_landmark = get_nearest_landmark(location_data.latitude, location_data.longitude)

    websocket_manager = request.app.state.websocket_manager
    payload = {
        "type": "friend_location",
        "friend_id": str(user.user_id),
        "friend_username": user.username,
        "latitude": location.latitude,
        "longitude": location.longitude,
        "accuracy": location.accuracy,
        "landmark": nearest_landmark,
        "timestamp": ensure_utc(location.timestamp).isoformat()
    }
    for friend_id in await get_friend_ids(db, user.user_id):
        await websocket_manager.send_to_user(str(friend_id), payload)

    return {
        "message": "Location updated successfully",
        "location_id": str(location.id),
        "nearest_landmark": nearest_landmark,
        "on_campus": is_within_campus(location_data.latitude, location_data.longitude)
    }

@router.get("/preferences", response_model=SharingPreferencesRead)
async def get_sharing_preferences(
    db: SessionDep,
    current_user: Profile = Depends(get_current_user)
):
    return await get_or_create_preferences(db, current_user.user_id)

@router.put("/preferences", response_model=SharingPreferencesRead)
async def update_sharing_preferences(
    db: SessionDep,
    preferences_update: SharingPreferencesUpdate,
    current_user: Profile = Depends(get_current_user)
):
    preferences = await get_or_create_preferences(db, current_user.user_id)

    for key, value in preferences_update.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(preferences, key, value)
    preferences.updated_at = datetime.now(timezone.utc)

    db.add(preferences)
    await db.commit()
    await db.refresh(preferences)

    return preferences

@router.post("/update")
async def update_location(
    db: SessionDep,
    request: Request,
    location_data: LocationUpdateCreate,
    current_user: Profile = Depends(get_current_user)
) -> dict[str, Any]:
    preferences = await get_or_create_preferences(db, current_user.user_id)
    if not preferences.share_with_friends:
        raise HTTPException(status_code=409, detail="Location sharing is disabled")

    return await record_location(db, request, current_user, location_data)

@router.post("/start")
async def start_sharing(
    db: SessionDep,
    request: Request,
    location_data: Optional[LocationUpdateCreate] = None,
    current_user: Profile = Depends(get_current_user)
) -> dict[str, Any]:
    preferences = await get_or_create_preferences(db, current_user.user_id)
    preferences.share_with_friends = True
    preferences.updated_at = datetime.now(timezone.utc)
    db.add(preferences)
    await db.commit()

    response: dict[str, Any] = {"message": "Location sharing started", "sharing": True}
    if location_data is not None:
        response.update(await record_location(db, request, current_user, location_data))
        response["message"] = "Location sharing started"
    return response

@router.post("/stop")
async def stop_sharing(
    db: SessionDep,
    current_user: Profile = Depends(get_current_user)
) -> dict[str, Any]:
    await deactivate_locations(db, current_user.user_id)
    await db.commit()

    return {"message": "Location sharing stopped", "sharing": False}

async def get_friend_locations(db: AsyncSession, user_id: uuid.UUID) -> List[FriendLocation]:
    """Latest active location of every friend who shares with friends"""
    friend_ids = await get_friend_ids(db, user_id)
    if not friend_ids:
        return []

    # Friends without a preferences row share by default
    result = await db.execute(
        select(LocationSharingPreference.user_id).where(
            LocationSharingPreference.user_id.in_(friend_ids),
            LocationSharingPreference.share_with_friends == False  # noqa: E712
        )
    )
    hidden_ids = set(result.scalars().all())
    sharing_ids = [f for f in friend_ids if f not in hidden_ids]
    if not sharing_ids:
        return []

    result = await db.execute(
        select(UserLocation)
        .where(UserLocation.user_id.in_(sharing_ids), UserLocation.is_active == True)  # noqa: E712
        .order_by(desc(UserLocation.timestamp))
    )
    latest = {}
    for location in result.scalars().all():
        latest.setdefault(location.user_id, location)

    profiles = await load_profiles(db, list(latest.keys()))

    return [
        FriendLocation(
            friend_id=friend_id,
            friend_username=profiles[friend_id].username if friend_id in profiles else None,
            friend_avatar_url=profiles[friend_id].avatar_url if friend_id in profiles else None,
            latitude=location.latitude,
            longitude=location.longitude,
            location_timestamp=ensure_utc(location.timestamp),
            is_sharing=True,
            nearest_landmark=get_nearest_landmark(location.latitude, location.longitude)
        )
        for friend_id, location in latest.items()
    ]

@router.get("/friends", response_model=List[FriendLocation])
async def get_friends_locations(
    db: SessionDep,
    current_user: Profile = Depends(get_current_user)
):
    return await get_friend_locations(db, current_user.user_id)
