from datetime import datetime
from typing import Optional

from bettersafe.models.campus import CampusService
from bettersafe.utils.timeutils import campus_now

def is_service_open(service: CampusService, now: Optional[datetime] = None) -> bool:
    """
    Whether a dining location or campus service is open right now

    open_time/close_time are "HH:MM" in campus local time and compared as
    strings, so a service closing after midnight is reported closed.
    """
    if service.is_closed or not service.open_time or not service.close_time:
        return False

    local = now or campus_now()
    current_time = local.strftime("%H:%M")
    current_day = local.strftime("%A").lower()

    open_today = not service.days_open or current_day in [d.lower() for d in service.days_open]
    within_hours = service.open_time <= current_time < service.close_time
    return open_today and within_hours

def compare_versions(v1: str, v2: str) -> int:
    """Compare dotted numeric versions: 1 if v1 is newer, -1 if older, 0 if equal"""
    def parts(version: str):
        result = []
        for piece in version.strip().lstrip("vV").split("."):
            try:
                result.append(int(piece))
            except ValueError:
                result.append(0)
        return result

    parts1, parts2 = parts(v1), parts(v2)
    for i in range(max(len(parts1), len(parts2))):
        part1 = parts1[i] if i < len(parts1) else 0
        part2 = parts2[i] if i < len(parts2) else 0
        if part1 > part2:
            return 1
        if part1 < part2:
            return -1
    return 0
