"""
Table models for the Better Safe API

Importing this package registers every table on SQLModel.metadata:
- user: profiles and digital student IDs
- incident: incident reports, photos, rate limit counters, audit log
- emergency: campus directory, personal contacts, emergency alerts
- friend: friend requests and friendships
- location: sharing preferences and shared locations
- campus: dining/services, events, changelog, bug reports, feedback
"""

from .user import Profile, DigitalID
from .incident import IncidentReport, IncidentPhoto, RateLimitRecord, SecurityAuditLog
from .emergency import DirectoryContact, UserEmergencyContact, EmergencyAlert
from .friend import FriendRequest, Friendship
from .location import LocationSharingPreference, UserLocation
from .campus import CampusService, CampusEvent, ChangelogEntry, BugReport, UserFeedback

__all__ = [
    "Profile",
    "DigitalID",
    "IncidentReport",
    "IncidentPhoto",
    "RateLimitRecord",
    "SecurityAuditLog",
    "DirectoryContact",
    "UserEmergencyContact",
    "EmergencyAlert",
    "FriendRequest",
    "Friendship",
    "LocationSharingPreference",
    "UserLocation",
    "CampusService",
    "CampusEvent",
    "ChangelogEntry",
    "BugReport",
    "UserFeedback",
]
