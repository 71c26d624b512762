from sqlmodel import SQLModel, Field, Column, DateTime
from datetime import datetime, timezone
from typing import Optional
import uuid

class LocationSharingPreference(SQLModel, table=True):
    __tablename__ = "location_sharing_preferences"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(unique=True, index=True)
    share_with_friends: bool = True
    share_with_all: bool = False
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class SharingPreferencesRead(SQLModel):
    share_with_friends: bool
    share_with_all: bool

class SharingPreferencesUpdate(SQLModel):
    share_with_friends: Optional[bool] = None
    share_with_all: Optional[bool] = None

class LocationUpdateBase(SQLModel):
    latitude: float
    longitude: float
    accuracy: Optional[float] = None  # meters
    heading: Optional[float] = None
    speed: Optional[float] = None

class UserLocation(LocationUpdateBase, table=True):
    __tablename__ = "user_locations"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(index=True)
    is_active: bool = True
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class LocationUpdateCreate(LocationUpdateBase):
    pass

class FriendLocation(SQLModel):
    friend_id: uuid.UUID
    friend_username: Optional[str]
    friend_avatar_url: Optional[str]
    latitude: float
    longitude: float
    location_timestamp: datetime
    is_sharing: bool
    nearest_landmark: Optional[str] = None
