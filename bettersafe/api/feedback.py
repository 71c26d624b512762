from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import select, desc
from typing import Any, List, Optional
import logging

from bettersafe.database import SessionDep
from bettersafe.models.user import Profile
from bettersafe.models.campus import (
    BugReport, BugReportCreate, UserFeedback, UserFeedbackCreate,
    ChangelogEntry, ChangelogEntryRead
)
from bettersafe.api.auth import get_current_user
from bettersafe.core.services import compare_versions
from bettersafe.utils.security import sanitize_input, validate_text_field

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/bug-reports", status_code=status.HTTP_201_CREATED, tags=["Feedback"])
async def submit_bug_report(
    db: SessionDep,
    report_data: BugReportCreate,
    current_user: Profile = Depends(get_current_user)
) -> dict[str, Any]:
    errors = []
    for value, name, low, high in (
        (report_data.title, "Title", 3, 200),
        (report_data.description, "Description", 10, 5000),
    ):
        valid, error = validate_text_field(value, name, low, high)
        if not valid:
            errors.append(error)
    if report_data.steps_to_reproduce:
        valid, error = validate_text_field(report_data.steps_to_reproduce, "Steps to reproduce", 0, 5000)
        if not valid:
            errors.append(error)
    if errors:
        raise HTTPException(status_code=400, detail={"error": "Validation failed", "details": errors})

    bug_report = BugReport(
        user_id=current_user.user_id,
        title=sanitize_input(report_data.title, max_length=200),
        description=sanitize_input(report_data.description, allow_line_breaks=True, max_length=5000),
        steps_to_reproduce=(
            sanitize_input(report_data.steps_to_reproduce, allow_line_breaks=True, max_length=5000) or None
        ),
        device_info=report_data.device_info
    )
    db.add(bug_report)
    await db.commit()
    await db.refresh(bug_report)

    logger.info(f"Bug report {bug_report.id} submitted")
    return {"success": True, "id": str(bug_report.id), "message": "Bug report submitted. Thank you!"}

@router.post("/feedback", status_code=status.HTTP_201_CREATED, tags=["Feedback"])
async def submit_feedback(
    db: SessionDep,
    feedback_data: UserFeedbackCreate,
    current_user: Profile = Depends(get_current_user)
) -> dict[str, Any]:
    errors = []
    valid, error = validate_text_field(feedback_data.message, "Message", 1, 2000)
    if not valid:
        errors.append(error)
    if feedback_data.rating is not None and not 1 <= feedback_data.rating <= 5:
        errors.append("Rating must be between 1 and 5")
    if errors:
        raise HTTPException(status_code=400, detail={"error": "Validation failed", "details": errors})

    feedback = UserFeedback(
        user_id=current_user.user_id,
        type=feedback_data.type,
        message=sanitize_input(feedback_data.message, allow_line_breaks=True, max_length=2000),
        rating=feedback_data.rating
    )
    db.add(feedback)
    await db.commit()
    await db.refresh(feedback)

    return {"success": True, "id": str(feedback.id), "message": "Thanks for your feedback!"}

@router.get("/changelog", response_model=List[ChangelogEntryRead], tags=["Updates"])
async def list_changelog(
    db: SessionDep,
    limit: int = Query(50, ge=1, le=200)
):
    result = await db.execute(
        select(ChangelogEntry)
        .order_by(desc(ChangelogEntry.release_date), desc(ChangelogEntry.created_at))
        .limit(limit)
    )
    return result.scalars().all()

@router.get("/changelog/latest", tags=["Updates"])
async def get_latest_version(
    db: SessionDep,
    current_version: Optional[str] = None
) -> dict[str, Any]:
    """Latest released version and whether the caller's version is behind it"""
    result = await db.execute(
        select(ChangelogEntry)
        .order_by(desc(ChangelogEntry.release_date), desc(ChangelogEntry.created_at))
        .limit(1)
    )
    latest = result.scalar_one_or_none()

    if latest is None:
        return {"latest_version": None, "has_update": False}

    has_update = bool(current_version) and compare_versions(latest.version, current_version) > 0
    return {
        "latest_version": latest.version,
        "title": latest.title,
        "release_date": latest.release_date.isoformat(),
        "has_update": has_update
    }
