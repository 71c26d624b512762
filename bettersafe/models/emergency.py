from sqlmodel import SQLModel, Field, Column, DateTime
from datetime import datetime, timezone
from typing import Optional, List
from enum import Enum
import uuid

# Campus-wide directory (admin managed)

class DirectoryContactBase(SQLModel):
    title: str
    contact: str
    description: str
    category: str = "emergency-contacts"
    priority: int = 0
    is_active: bool = True

class DirectoryContact(DirectoryContactBase, table=True):
    __tablename__ = "emergency_contacts"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class DirectoryContactCreate(DirectoryContactBase):
    pass

class DirectoryContactUpdate(SQLModel):
    title: Optional[str] = None
    contact: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None

class DirectoryContactRead(DirectoryContactBase):
    id: Optional[uuid.UUID] = None

class DirectoryCategory(SQLModel):
    category: str
    items: List[DirectoryContactRead]

# Personal emergency contacts

class UserEmergencyContactBase(SQLModel):
    name: str
    phone: str
    email: Optional[str] = None
    relationship: str
    priority: int = 0

class UserEmergencyContact(UserEmergencyContactBase, table=True):
    __tablename__ = "user_emergency_contacts"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(index=True)
    is_active: bool = True
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )

class UserEmergencyContactCreate(UserEmergencyContactBase):
    pass

class UserEmergencyContactUpdate(SQLModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    relationship: Optional[str] = None
    priority: Optional[int] = None

class UserEmergencyContactRead(UserEmergencyContactBase):
    id: uuid.UUID
    user_id: uuid.UUID
    is_active: bool
    created_at: datetime
    updated_at: datetime

# Emergency alerts

class AlertStatus(str, Enum):
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    RESOLVED = "resolved"

class EmergencyAlertBase(SQLModel):
    alert_type: str = "quick_help"  # quick_help, medical, security, harassment
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    location_address: Optional[str] = None
    message: Optional[str] = None

class EmergencyAlert(EmergencyAlertBase, table=True):
    __tablename__ = "emergency_alerts"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(index=True)
    status: AlertStatus = AlertStatus.SENT
    contacts_notified: int = 0
    notifications_sent: int = 0
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True))
    )
    resolved_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True))
    )

class EmergencyRequest(EmergencyAlertBase):
    pass

class EmergencyAlertRead(EmergencyAlertBase):
    id: uuid.UUID
    user_id: uuid.UUID
    status: AlertStatus
    contacts_notified: int
    notifications_sent: int
    created_at: datetime
    resolved_at: Optional[datetime]
