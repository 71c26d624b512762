from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import select, desc
from typing import Any, Optional
from datetime import timedelta

from bettersafe.database import SessionDep
from bettersafe.models.user import Profile
from bettersafe.models.incident import IncidentReport
from bettersafe.api.auth import get_optional_user
from bettersafe.api.location import get_friend_locations
from bettersafe.core.geofencing import (
    HOWARD_LANDMARKS, LANDMARK_CATEGORIES, CAMPUSES, BUILDING_CATEGORIES,
    get_landmarks_by_category, get_buildings, search_buildings,
    get_nearest_landmark, get_nearby_landmarks, is_within_campus
)
from bettersafe.utils.timeutils import utcnow, ensure_utc

router = APIRouter()

@router.get("/landmarks")
async def get_campus_landmarks(category: Optional[str] = None) -> dict[str, Any]:
    """Get Howard campus landmarks, optionally for one category"""
    if category is None:
        return {"landmarks": HOWARD_LANDMARKS}
    if category not in LANDMARK_CATEGORIES:
        raise HTTPException(status_code=400, detail=f"Unknown landmark category: {category}")
    return {"landmarks": get_landmarks_by_category(category)}

@router.get("/buildings")
async def get_campus_buildings(
    campus: Optional[str] = None,
    category: Optional[str] = None
) -> dict[str, Any]:
    if campus is not None and campus not in CAMPUSES:
        raise HTTPException(status_code=400, detail=f"Unknown campus: {campus}")
    if category is not None and category not in BUILDING_CATEGORIES:
        raise HTTPException(status_code=400, detail=f"Unknown building category: {category}")

    buildings = get_buildings(campus, category)
    return {"buildings": buildings, "count": len(buildings)}

@router.get("/buildings/search")
async def search_campus_buildings(q: str = "") -> dict[str, Any]:
    return {"buildings": search_buildings(q)}

@router.get("/nearest")
async def get_nearest(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180)
) -> dict[str, Any]:
    return {
        "description": get_nearest_landmark(latitude, longitude),
        "on_campus": is_within_campus(latitude, longitude)
    }

@router.get("/nearby")
async def get_nearby(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(0.5, gt=0, le=10)
) -> dict[str, Any]:
    return {"landmarks": get_nearby_landmarks(latitude, longitude, radius_km)}

@router.get("/markers")
async def get_map_markers(
    db: SessionDep,
    since_hours: Optional[int] = Query(None, ge=1, le=24 * 365),
    current_user: Optional[Profile] = Depends(get_optional_user)
) -> dict[str, Any]:
    """Everything the campus map draws: landmarks, public incidents and friends"""
    statement = select(IncidentReport).where(
        IncidentReport.is_anonymous == False,  # noqa: E712
        IncidentReport.latitude.is_not(None),
        IncidentReport.longitude.is_not(None)
    )
    if since_hours:
        statement = statement.where(IncidentReport.reported_at >= utcnow() - timedelta(hours=since_hours))
    result = await db.execute(statement.order_by(desc(IncidentReport.reported_at)).limit(200))

    incidents = [
        {
            "id": str(report.id),
            "category": report.category,
            "status": report.status,
            "priority": report.priority,
            "latitude": report.latitude,
            "longitude": report.longitude,
            "location_text": report.location_text,
            "reported_at": ensure_utc(report.reported_at).isoformat()
        }
        for report in result.scalars().all()
    ]

    friends = []
    if current_user is not None:
        friends = [
            f.model_dump(mode="json")
            for f in await get_friend_locations(db, current_user.user_id)
        ]

    return {
        "landmarks": HOWARD_LANDMARKS,
        "incidents": incidents,
        "friends": friends
    }
