from sqlmodel import SQLModel, Field, Column, DateTime
from sqlalchemy import JSON
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from enum import Enum
import uuid

INCIDENT_CATEGORIES = [
    "Suspicious Activity",
    "Theft/Burglary",
    "Harassment",
    "Safety Hazard",
    "Emergency",
    "Other",
]

class IncidentStatus(str, Enum):
    PENDING = "pending"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    CLOSED = "closed"

class IncidentPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

class IncidentReport(SQLModel, table=True):
    __tablename__ = "incident_reports"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: Optional[uuid.UUID] = Field(default=None, index=True)
    category: str = Field(index=True)
    category_custom: Optional[str] = None
    description: str
    location_text: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    incident_time: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True))
    )
    reported_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), index=True)
    )
    is_anonymous: bool = False
    status: IncidentStatus = IncidentStatus.PENDING
    priority: IncidentPriority = IncidentPriority.MEDIUM
    client_info: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class IncidentPhoto(SQLModel, table=True):
    __tablename__ = "incident_photos"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    incident_id: uuid.UUID = Field(foreign_key="incident_reports.id", index=True)
    storage_path: str
    file_size: Optional[int] = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class IncidentSubmission(SQLModel):
    """Raw submission body; validated by core.incidents.validate_incident_data"""
    category: Any = None
    category_custom: Optional[str] = None
    description: Any = None
    location: Any = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    incident_time: Optional[datetime] = None
    anonymous: Any = None
    photos: Any = None

class IncidentPhotoRead(SQLModel):
    id: uuid.UUID
    storage_path: str
    file_size: Optional[int]
    created_at: datetime
    signed_url: Optional[str] = None

class IncidentRead(SQLModel):
    id: uuid.UUID
    category: str
    category_custom: Optional[str]
    description: str
    location_text: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    incident_time: Optional[datetime]
    reported_at: datetime
    is_anonymous: bool
    status: IncidentStatus
    priority: IncidentPriority
    created_at: datetime
    updated_at: datetime
    photos: Optional[List[IncidentPhotoRead]] = None
    distance_km: Optional[float] = None

class IncidentModeration(SQLModel):
    status: Optional[IncidentStatus] = None
    priority: Optional[IncidentPriority] = None

class RateLimitRecord(SQLModel, table=True):
    __tablename__ = "rate_limits"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: Optional[uuid.UUID] = Field(default=None, index=True)
    ip_address: str = Field(index=True)
    action_type: str = Field(index=True)
    attempts_count: int = 1
    window_start: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), index=True)
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class SecurityAuditLog(SQLModel, table=True):
    __tablename__ = "security_audit_log"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: Optional[uuid.UUID] = Field(default=None, index=True)
    event_type: str
    event_details: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
