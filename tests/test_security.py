"""Tests for input sanitization and request metadata helpers."""

from __future__ import annotations

from starlette.requests import Request

from bettersafe.utils.security import (
    get_client_ip,
    get_user_agent,
    sanitize_input,
    validate_email,
    validate_text_field,
)


def make_request(headers: dict) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "headers": raw})


def test_sanitize_strips_tags_and_quotes():
    assert sanitize_input("<script>alert('x')</script>Hello") == "alert(x)Hello"
    assert sanitize_input('Tom & "Jerry"') == "Tom  Jerry"


def test_sanitize_line_breaks():
    assert sanitize_input("one\ntwo") == "one two"
    assert sanitize_input("one\ntwo", allow_line_breaks=True) == "one\ntwo"


def test_sanitize_truncates_and_handles_empty():
    assert sanitize_input("abcdef", max_length=3) == "abc"
    assert sanitize_input(None) == ""
    assert sanitize_input("   ") == ""


def test_validate_email():
    assert validate_email("student@bison.howard.edu") == (True, None)
    assert validate_email("") == (False, "Email is required")
    assert validate_email("a@b") == (False, "Email is too short")
    assert validate_email("not-an-email") == (False, "Invalid email format")


def test_validate_text_field_bounds():
    assert validate_text_field("hello", "Title", 3, 10) == (True, None)
    assert validate_text_field("", "Title", 3, 10) == (False, "Title is required")
    assert validate_text_field("hi", "Title", 3, 10) == (False, "Title must be at least 3 characters")
    assert validate_text_field("x" * 11, "Title", 3, 10) == (False, "Title must be less than 10 characters")


def test_client_ip_prefers_forwarded_for():
    request = make_request({"X-Forwarded-For": "203.0.113.5, 10.0.0.1", "X-Real-IP": "10.0.0.2"})
    assert get_client_ip(request) == "203.0.113.5"


def test_client_ip_fallbacks():
    assert get_client_ip(make_request({"X-Real-IP": "10.0.0.2"})) == "10.0.0.2"
    assert get_client_ip(make_request({"CF-Connecting-IP": "198.51.100.7"})) == "198.51.100.7"
    assert get_client_ip(make_request({})) == "unknown"


def test_user_agent_default():
    assert get_user_agent(make_request({})) == "unknown"
    assert get_user_agent(make_request({"User-Agent": "BetterSafe/1.2"})) == "BetterSafe/1.2"
