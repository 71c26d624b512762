"""
Utility modules for the Better Safe API

This package contains utility functions and services:
- notifications: SMS (Twilio) and email (SendGrid/SMTP) delivery
- storage: Supabase storage uploads and signed URLs
- security: input sanitization and request metadata
- weather, geocoding: external HTTP lookups
"""

from .notifications import (
    SMSService,
    EmailService,
    NotificationManager,
    notification_manager
)

from .security import (
    sanitize_input,
    validate_email,
    get_client_ip
)

__all__ = [
    # Notification services
    "SMSService",
    "EmailService",
    "NotificationManager",
    "notification_manager",

    # Security helpers
    "sanitize_input",
    "validate_email",
    "get_client_ip"
]
