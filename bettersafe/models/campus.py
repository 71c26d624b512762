from sqlmodel import SQLModel, Field, Column, DateTime
from sqlalchemy import JSON
from datetime import datetime, date, timezone
from typing import Optional, List, Dict, Any
from enum import Enum
import uuid

# Dining and campus services

class ServiceCategory(str, Enum):
    DINING = "dining"
    SERVICE = "service"

class CampusServiceBase(SQLModel):
    name: str
    category: ServiceCategory = ServiceCategory.DINING
    hours: Optional[str] = None
    url: Optional[str] = None
    open_time: Optional[str] = None   # "HH:MM", campus local time
    close_time: Optional[str] = None
    days_open: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    is_closed: bool = False

class CampusService(CampusServiceBase, table=True):
    __tablename__ = "services"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class CampusServiceCreate(CampusServiceBase):
    pass

class CampusServiceUpdate(SQLModel):
    name: Optional[str] = None
    category: Optional[ServiceCategory] = None
    hours: Optional[str] = None
    url: Optional[str] = None
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    days_open: Optional[List[str]] = None
    is_closed: Optional[bool] = None

class CampusServiceRead(CampusServiceBase):
    id: uuid.UUID
    is_open: bool = False

# Campus events

class EventCategory(str, Enum):
    ACADEMIC = "academic"
    SOCIAL = "social"
    CAREER = "career"
    CULTURAL = "cultural"

class CampusEventBase(SQLModel):
    title: str
    starts_at: datetime = Field(sa_column=Column(DateTime(timezone=True)))
    category: EventCategory = EventCategory.ACADEMIC
    location: str

class CampusEvent(CampusEventBase, table=True):
    __tablename__ = "events"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class CampusEventCreate(SQLModel):
    title: str
    starts_at: datetime
    category: EventCategory = EventCategory.ACADEMIC
    location: str

class CampusEventUpdate(SQLModel):
    title: Optional[str] = None
    starts_at: Optional[datetime] = None
    category: Optional[EventCategory] = None
    location: Optional[str] = None

class CampusEventRead(SQLModel):
    id: uuid.UUID
    title: str
    starts_at: datetime
    category: EventCategory
    location: str

# Changelog

class ChangelogEntryBase(SQLModel):
    version: str
    title: str
    description: str
    release_date: date

class ChangelogEntry(ChangelogEntryBase, table=True):
    __tablename__ = "changelog_entries"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class ChangelogEntryCreate(ChangelogEntryBase):
    pass

class ChangelogEntryUpdate(SQLModel):
    version: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    release_date: Optional[date] = None

class ChangelogEntryRead(ChangelogEntryBase):
    id: uuid.UUID

# Bug reports and feedback

class BugReport(SQLModel, table=True):
    __tablename__ = "bug_reports"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: Optional[uuid.UUID] = Field(default=None, index=True)
    title: str
    description: str
    steps_to_reproduce: Optional[str] = None
    device_info: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class BugReportCreate(SQLModel):
    title: str
    description: str
    steps_to_reproduce: Optional[str] = None
    device_info: Optional[Dict[str, Any]] = None

class FeedbackType(str, Enum):
    GENERAL = "general"
    FEATURE = "feature"
    BUG = "bug"

class UserFeedback(SQLModel, table=True):
    __tablename__ = "user_feedback"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: Optional[uuid.UUID] = Field(default=None, index=True)
    type: FeedbackType = FeedbackType.GENERAL
    message: str
    rating: Optional[int] = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class UserFeedbackCreate(SQLModel):
    type: FeedbackType = FeedbackType.GENERAL
    message: str
    rating: Optional[int] = None
