from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, desc, or_, and_
from datetime import datetime, timezone
from typing import Any, Dict, List
import logging
import uuid

from bettersafe.database import SessionDep
from bettersafe.models.user import Profile, ProfileSummary
from bettersafe.models.friend import (
    FriendRequest, FriendRequestStatus, Friendship,
    FriendRequestCreate, FriendRequestRead, FriendRead
)
from bettersafe.api.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()

async def get_friend_ids(db: AsyncSession, user_id: uuid.UUID) -> List[uuid.UUID]:
    result = await db.execute(
        select(Friendship.friend_id).where(Friendship.user_id == user_id)
    )
    return list(result.scalars().all())

async def are_friends(db: AsyncSession, user_id: uuid.UUID, other_id: uuid.UUID) -> bool:
    result = await db.execute(
        select(Friendship.id).where(
            Friendship.user_id == user_id, Friendship.friend_id == other_id
        )
    )
    return result.first() is not None

async def load_profiles(db: AsyncSession, user_ids: List[uuid.UUID]) -> Dict[uuid.UUID, Profile]:
    if not user_ids:
        return {}
    result = await db.execute(select(Profile).where(Profile.user_id.in_(user_ids)))
    return {p.user_id: p for p in result.scalars().all()}

def summarize(profile: Profile) -> ProfileSummary:
    return ProfileSummary(
        user_id=profile.user_id, username=profile.username, avatar_url=profile.avatar_url
    )

async def get_pending_request_for(
    db: AsyncSession,
    request_id: uuid.UUID
) -> FriendRequest:
    result = await db.execute(select(FriendRequest).where(FriendRequest.id == request_id))
    friend_request = result.scalar_one_or_none()
    if not friend_request:
        raise HTTPException(status_code=404, detail="Friend request not found")
    if friend_request.status != FriendRequestStatus.PENDING:
        raise HTTPException(status_code=400, detail="Friend request is no longer pending")
    return friend_request

@router.get("", response_model=List[FriendRead])
async def list_friends(
    db: SessionDep,
    current_user: Profile = Depends(get_current_user)
):
    result = await db.execute(
        select(Friendship)
        .where(Friendship.user_id == current_user.user_id)
        .order_by(desc(Friendship.created_at))
    )
    friendships = result.scalars().all()
    profiles = await load_profiles(db, [f.friend_id for f in friendships])

    return [
        FriendRead(
            id=f.id,
            friend_id=f.friend_id,
            username=profiles[f.friend_id].username if f.friend_id in profiles else None,
            avatar_url=profiles[f.friend_id].avatar_url if f.friend_id in profiles else None,
            created_at=f.created_at
        )
        for f in friendships
    ]

@router.get("/requests")
async def list_friend_requests(
    db: SessionDep,
    current_user: Profile = Depends(get_current_user)
) -> dict[str, List[FriendRequestRead]]:
    result = await db.execute(
        select(FriendRequest)
        .where(
            FriendRequest.status == FriendRequestStatus.PENDING,
            or_(
                FriendRequest.requester_id == current_user.user_id,
                FriendRequest.addressee_id == current_user.user_id
            )
        )
        .order_by(desc(FriendRequest.created_at))
    )
    requests = result.scalars().all()

    profile_ids = {r.requester_id for r in requests} | {r.addressee_id for r in requests}
    profiles = await load_profiles(db, list(profile_ids))

    def to_read(r: FriendRequest) -> FriendRequestRead:
        return FriendRequestRead(
            id=r.id,
            requester_id=r.requester_id,
            addressee_id=r.addressee_id,
            status=r.status,
            created_at=r.created_at,
            requester=summarize(profiles[r.requester_id]) if r.requester_id in profiles else None,
            addressee=summarize(profiles[r.addressee_id]) if r.addressee_id in profiles else None
        )

    return {
        "incoming": [to_read(r) for r in requests if r.addressee_id == current_user.user_id],
        "outgoing": [to_read(r) for r in requests if r.requester_id == current_user.user_id],
    }

@router.get("/search", response_model=List[ProfileSummary])
async def search_users(
    db: SessionDep,
    q: str = Query("", max_length=50),
    current_user: Profile = Depends(get_current_user)
):
    query = q.strip()
    if not query:
        return []

    result = await db.execute(
        select(Profile)
        .where(
            Profile.username.is_not(None),
            Profile.username.ilike(f"%{query}%"),
            Profile.user_id != current_user.user_id
        )
        .order_by(Profile.username)
        .limit(10)
    )
    return [summarize(p) for p in result.scalars().all()]

@router.post("/requests", response_model=FriendRequestRead, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
    db: SessionDep,
    request_data: FriendRequestCreate,
    current_user: Profile = Depends(get_current_user)
):
    addressee_id = request_data.addressee_id

    if addressee_id == current_user.user_id:
        raise HTTPException(status_code=400, detail="You cannot send a friend request to yourself")

    result = await db.execute(select(Profile).where(Profile.user_id == addressee_id))
    addressee = result.scalar_one_or_none()
    if not addressee:
        raise HTTPException(status_code=404, detail="User not found")

    if await are_friends(db, current_user.user_id, addressee_id):
        raise HTTPException(status_code=409, detail="You are already friends")

    result = await db.execute(
        select(FriendRequest).where(
            or_(
                and_(FriendRequest.requester_id == current_user.user_id,
                     FriendRequest.addressee_id == addressee_id),
                and_(FriendRequest.requester_id == addressee_id,
                     FriendRequest.addressee_id == current_user.user_id)
            )
        )
    )
    existing = result.scalars().all()

    if any(r.status == FriendRequestStatus.PENDING for r in existing):
        raise HTTPException(status_code=409, detail="A friend request is already pending")

    # Reuse a resolved request in the same direction instead of adding a duplicate
    reusable = next((r for r in existing if r.requester_id == current_user.user_id), None)
    now = datetime.now(timezone.utc)
    if reusable:
        friend_request = reusable
        friend_request.status = FriendRequestStatus.PENDING
        friend_request.created_at = now
        friend_request.updated_at = now
    else:
        friend_request = FriendRequest(
            requester_id=current_user.user_id,
            addressee_id=addressee_id
        )

    db.add(friend_request)
    try:
        await db.commit()
    except IntegrityError:
        logger.info(f"Duplicate friend request from {current_user.user_id} to {addressee_id}")
        await db.rollback()
        raise HTTPException(status_code=409, detail="A friend request is already pending")
    await db.refresh(friend_request)

    logger.info(f"Friend request {friend_request.id} sent")

    return FriendRequestRead(
        id=friend_request.id,
        requester_id=friend_request.requester_id,
        addressee_id=friend_request.addressee_id,
        status=friend_request.status,
        created_at=friend_request.created_at,
        requester=summarize(current_user),
        addressee=summarize(addressee)
    )

@router.post("/requests/{request_id}/accept")
async def accept_friend_request(
    db: SessionDep,
    request_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user)
) -> dict[str, Any]:
    friend_request = await get_pending_request_for(db, request_id)
    if friend_request.addressee_id != current_user.user_id:
        raise HTTPException(status_code=403, detail="Only the recipient can accept this request")

    friend_request.status = FriendRequestStatus.ACCEPTED
    friend_request.updated_at = datetime.now(timezone.utc)
    db.add(friend_request)

    pairs = [
        (friend_request.requester_id, friend_request.addressee_id),
        (friend_request.addressee_id, friend_request.requester_id),
    ]
    for user_id, friend_id in pairs:
        if not await are_friends(db, user_id, friend_id):
            db.add(Friendship(user_id=user_id, friend_id=friend_id))

    await db.commit()

    return {"message": "Friend request accepted", "friend_id": str(friend_request.requester_id)}

@router.post("/requests/{request_id}/reject")
async def reject_friend_request(
    db: SessionDep,
    request_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user)
) -> dict[str, str]:
    friend_request = await get_pending_request_for(db, request_id)
    if friend_request.addressee_id != current_user.user_id:
        raise HTTPException(status_code=403, detail="Only the recipient can reject this request")

    friend_request.status = FriendRequestStatus.REJECTED
    friend_request.updated_at = datetime.now(timezone.utc)
    db.add(friend_request)
    await db.commit()

    return {"message": "Friend request rejected"}

@router.delete("/requests/{request_id}")
async def cancel_friend_request(
    db: SessionDep,
    request_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user)
) -> dict[str, str]:
    friend_request = await get_pending_request_for(db, request_id)
    if friend_request.requester_id != current_user.user_id:
        raise HTTPException(status_code=403, detail="Only the sender can cancel this request")

    friend_request.status = FriendRequestStatus.CANCELLED
    friend_request.updated_at = datetime.now(timezone.utc)
    db.add(friend_request)
    await db.commit()

    return {"message": "Friend request cancelled"}

@router.delete("/{friend_id}")
async def remove_friend(
    db: SessionDep,
    friend_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user)
) -> dict[str, str]:
    result = await db.execute(
        select(Friendship).where(
            or_(
                and_(Friendship.user_id == current_user.user_id, Friendship.friend_id == friend_id),
                and_(Friendship.user_id == friend_id, Friendship.friend_id == current_user.user_id)
            )
        )
    )
    friendships = result.scalars().all()
    if not friendships:
        raise HTTPException(status_code=404, detail="Friend not found")

    for friendship in friendships:
        await db.delete(friendship)
    await db.commit()

    return {"message": "Friend removed"}
