from sqlmodel import SQLModel, Field, Column, DateTime, UniqueConstraint
from datetime import datetime, timezone
from typing import Optional
from enum import Enum
import uuid

from bettersafe.models.user import ProfileSummary

class FriendRequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

class FriendRequest(SQLModel, table=True):
    """One row per direction; a resolved request is reused when re-sent"""
    __tablename__ = "friend_requests"
    __table_args__ = (UniqueConstraint("requester_id", "addressee_id"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    requester_id: uuid.UUID = Field(index=True)
    addressee_id: uuid.UUID = Field(index=True)
    status: FriendRequestStatus = FriendRequestStatus.PENDING
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class Friendship(SQLModel, table=True):
    """Directed edge: user_id considers friend_id a friend"""
    __tablename__ = "friendships"
    __table_args__ = (UniqueConstraint("user_id", "friend_id"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(index=True)
    friend_id: uuid.UUID = Field(index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class FriendRequestCreate(SQLModel):
    addressee_id: uuid.UUID

class FriendRequestRead(SQLModel):
    id: uuid.UUID
    requester_id: uuid.UUID
    addressee_id: uuid.UUID
    status: FriendRequestStatus
    created_at: datetime
    requester: Optional[ProfileSummary] = None
    addressee: Optional[ProfileSummary] = None

class FriendRead(SQLModel):
    id: uuid.UUID
    friend_id: uuid.UUID
    username: Optional[str]
    avatar_url: Optional[str]
    created_at: datetime
