from sqlmodel import SQLModel, Field, Column, DateTime
from datetime import datetime, timezone
from typing import Optional
from enum import Enum
import uuid

class ProfileBase(SQLModel):
    username: Optional[str] = Field(default=None, unique=True, index=True)
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None

class Profile(ProfileBase, table=True):
    __tablename__ = "profiles"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    # Identity provider's user id (JWT "sub")
    user_id: uuid.UUID = Field(unique=True, index=True)
    email: Optional[str] = None
    is_admin: bool = False
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class ProfileRead(ProfileBase):
    id: uuid.UUID
    user_id: uuid.UUID
    email: Optional[str]
    is_admin: bool
    created_at: datetime
    updated_at: datetime

class ProfileUpdate(SQLModel):
    username: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None

class ProfileSummary(SQLModel):
    """Public view of another user's profile"""
    user_id: uuid.UUID
    username: Optional[str] = None
    avatar_url: Optional[str] = None

class DigitalIDStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    EXPIRED = "expired"

class DigitalIDBase(SQLModel):
    full_name: str
    student_id: str
    program: str
    class_year: str

class DigitalID(DigitalIDBase, table=True):
    __tablename__ = "digital_ids"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(unique=True, index=True)
    photo_url: Optional[str] = None  # storage path in the avatars bucket
    status: DigitalIDStatus = DigitalIDStatus.ACTIVE
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class DigitalIDUpsert(DigitalIDBase):
    photo_url: Optional[str] = None

class DigitalIDRead(DigitalIDBase):
    id: uuid.UUID
    user_id: uuid.UUID
    photo_url: Optional[str]
    photo_signed_url: Optional[str] = None
    status: DigitalIDStatus
    created_at: datetime
    updated_at: datetime
