import uuid
from typing import List, Optional

from bettersafe.core.geofencing import validate_coordinates
from bettersafe.models.incident import INCIDENT_CATEGORIES, IncidentSubmission
from bettersafe.utils.storage import MAX_PHOTOS_PER_REPORT, is_path_owned

DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 2000
LOCATION_MAX_LENGTH = 255

def validate_incident_data(data: IncidentSubmission, user_id: Optional[uuid.UUID]) -> List[str]:
    """Return every problem with a submission; an empty list means it is valid"""
    errors: List[str] = []

    if not data.category or not isinstance(data.category, str):
        errors.append("Category is required")
    elif data.category.strip() not in INCIDENT_CATEGORIES:
        errors.append("Invalid category")

    if not data.description or not isinstance(data.description, str):
        errors.append("Description is required")
    elif not DESCRIPTION_MIN_LENGTH <= len(data.description.strip()) <= DESCRIPTION_MAX_LENGTH:
        errors.append(
            f"Description must be between {DESCRIPTION_MIN_LENGTH} and "
            f"{DESCRIPTION_MAX_LENGTH} characters"
        )

    if data.location is not None and (
        not isinstance(data.location, str) or len(data.location) > LOCATION_MAX_LENGTH
    ):
        errors.append(f"Location must be a string with maximum {LOCATION_MAX_LENGTH} characters")

    if not isinstance(data.anonymous, bool):
        errors.append("Anonymous flag must be a boolean")

    if data.photos is not None:
        if not isinstance(data.photos, list) or len(data.photos) > MAX_PHOTOS_PER_REPORT:
            errors.append(f"Photos must be an array with maximum {MAX_PHOTOS_PER_REPORT} items")
        elif not all(isinstance(p, str) and is_path_owned(p, user_id) for p in data.photos):
            errors.append("Photos must be uploaded by the reporting user")

    if (data.latitude is None) != (data.longitude is None):
        errors.append("Latitude and longitude must be provided together")
    elif data.latitude is not None:
        errors.extend(validate_coordinates(data.latitude, data.longitude))

    return errors
