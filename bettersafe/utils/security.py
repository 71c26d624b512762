import re
from typing import Optional, Tuple
from fastapi import Request

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

def sanitize_input(
    text: Optional[str],
    allow_line_breaks: bool = False,
    max_length: int = 1000,
    strip_html: bool = True
) -> str:
    """
    Clean user supplied text before it is stored

    Args:
        text: Raw input
        allow_line_breaks: Keep \\r and \\n instead of turning them into spaces
        max_length: Truncate to this many characters
        strip_html: Remove HTML tags and stray angle brackets
    """
    if not text or not isinstance(text, str):
        return ""

    cleaned = text.strip()

    if strip_html:
        cleaned = re.sub(r"<[^>]*>", "", cleaned)
        cleaned = re.sub(r"[<>]", "", cleaned)

    if not allow_line_breaks:
        cleaned = re.sub(r"[\r\n]", " ", cleaned)

    # Quote, slash and ampersand characters are never stored
    cleaned = re.sub(r"[\\/<>'\"&]", "", cleaned)

    return cleaned[:max_length]

def validate_email(email: Optional[str]) -> Tuple[bool, Optional[str]]:
    sanitized = sanitize_input(email, max_length=255)

    if not sanitized:
        return False, "Email is required"
    if len(sanitized) < 5:
        return False, "Email is too short"
    if not EMAIL_REGEX.match(sanitized):
        return False, "Invalid email format"
    return True, None

def validate_text_field(
    value: Optional[str],
    field_name: str,
    min_length: int = 1,
    max_length: int = 1000
) -> Tuple[bool, Optional[str]]:
    """Validate a free text field, returning (is_valid, error message)"""
    # Sanitize without truncating so over-long input is reported
    sanitized = sanitize_input(value, allow_line_breaks=True, max_length=max_length + 1)

    if not sanitized and min_length > 0:
        return False, f"{field_name} is required"
    if len(sanitized) < min_length:
        return False, f"{field_name} must be at least {min_length} characters"
    if len(sanitized) > max_length:
        return False, f"{field_name} must be less than {max_length} characters"
    return True, None

def get_client_ip(request: Request) -> str:
    """Client IP from proxy headers, falling back to 'unknown'"""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    cf_ip = request.headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip

    return "unknown"

def get_user_agent(request: Request) -> str:
    return request.headers.get("user-agent", "unknown")
