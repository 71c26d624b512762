import re
from typing import Dict, List, Optional

from bettersafe.models.emergency import DirectoryContactRead, DirectoryCategory

# Served when the directory table has no active entries
FALLBACK_DIRECTORY: List[DirectoryContactRead] = [
    DirectoryContactRead(title="Campus Security", contact="(202) 806-HELP (4357)",
                         description="24/7 campus emergency line",
                         category="emergency-contacts", priority=2),
    DirectoryContactRead(title="Metropolitan Police", contact="911",
                         description="Emergency police response",
                         category="emergency-contacts", priority=2),
    DirectoryContactRead(title="Howard University Hospital", contact="(202) 865-6100",
                         description="Campus medical emergency",
                         category="emergency-contacts", priority=2),
    DirectoryContactRead(title="Student Health Center", contact="(202) 806-7540",
                         description="Non-emergency medical care",
                         category="emergency-contacts", priority=1),
    DirectoryContactRead(title="Counseling Services", contact="(202) 806-6870",
                         description="Mental health support and counseling",
                         category="support-services", priority=1),
    DirectoryContactRead(title="Title IX Office", contact="(202) 806-2550",
                         description="Sexual harassment and discrimination reporting",
                         category="support-services", priority=1),
    DirectoryContactRead(title="Dean of Students", contact="(202) 806-2755",
                         description="Student affairs and support",
                         category="support-services", priority=0),
    DirectoryContactRead(title="Campus Ministry", contact="(202) 806-7280",
                         description="Spiritual guidance and support",
                         category="support-services", priority=0),
    DirectoryContactRead(title="Safety Escort Service", contact="(202) 806-4357",
                         description="Free campus escort service (6 PM - 2 AM)",
                         category="safety-resources", priority=1),
    DirectoryContactRead(title="Blue Light Phones", contact="Campus-wide",
                         description="Emergency phones located throughout campus",
                         category="safety-resources", priority=1),
    DirectoryContactRead(title="LiveSafe App", contact="Download from app store",
                         description="Campus safety app for reporting and alerts",
                         category="safety-resources", priority=0),
    DirectoryContactRead(title="Safety Training", contact="(202) 806-1919",
                         description="Personal safety workshops and training",
                         category="safety-resources", priority=0),
]

PHONE_PATTERN = re.compile(r"^[\d\s\-+().]+$")

def group_by_category(entries: List[DirectoryContactRead]) -> List[DirectoryCategory]:
    """Group entries by category (first-seen order), each sorted priority desc then title"""
    grouped: Dict[str, List[DirectoryContactRead]] = {}
    for entry in entries:
        grouped.setdefault(entry.category, []).append(entry)

    return [
        DirectoryCategory(
            category=category,
            items=sorted(items, key=lambda e: (-e.priority, e.title))
        )
        for category, items in grouped.items()
    ]

def validate_phone(phone: Optional[str]) -> Optional[str]:
    if not phone or not PHONE_PATTERN.match(phone.strip()):
        return "Phone number may only contain digits, spaces and + - ( ) ."
    digits = sum(1 for c in phone if c.isdigit())
    if not 7 <= digits <= 20:
        return "Phone number must have between 7 and 20 digits"
    return None
