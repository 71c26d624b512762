from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from bettersafe.config import settings

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from backends without tz support"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

def campus_now() -> datetime:
    return datetime.now(ZoneInfo(settings.CAMPUS_TIMEZONE))

def format_campus_time(value: datetime) -> str:
    """Format like 'Oct 19, 2026, 3:04 PM' in the campus timezone"""
    local = ensure_utc(value).astimezone(ZoneInfo(settings.CAMPUS_TIMEZONE))
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{local.strftime('%b')} {local.day}, {local.year}, {hour}:{local.minute:02d} {suffix}"
