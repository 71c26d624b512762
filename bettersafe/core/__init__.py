"""
Core modules for the Better Safe API

This package contains the core business logic:
- geofencing: Howard campus boundary, landmarks and building directory
- incidents: incident submission validation
- rate_limiter: database-backed and in-memory rate limiting
- emergency_alert: emergency contact notification relay
- directory: built-in campus emergency directory
- services: dining/service hours and app version comparison
- analytics: incident and emergency alert statistics for admins
- health: dependency health checks
"""

from .geofencing import (
    is_within_campus,
    get_nearest_landmark,
    get_landmarks_by_category,
    get_nearby_landmarks,
    validate_coordinates,
    HOWARD_LANDMARKS
)

from .emergency_alert import (
    emergency_service,
    send_emergency_notifications
)

from .analytics import (
    campus_analytics
)

__all__ = [
    # Geofencing
    "is_within_campus",
    "get_nearest_landmark",
    "get_landmarks_by_category",
    "get_nearby_landmarks",
    "validate_coordinates",
    "HOWARD_LANDMARKS",

    # Emergency
    "emergency_service",
    "send_emergency_notifications",

    # Analytics
    "campus_analytics"
]
