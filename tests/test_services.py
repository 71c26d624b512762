"""Tests for service hours, version comparison and the campus directory."""

from __future__ import annotations

from datetime import datetime

import pytest

from bettersafe.core.directory import FALLBACK_DIRECTORY, group_by_category, validate_phone
from bettersafe.core.services import compare_versions, is_service_open
from bettersafe.models.campus import CampusService

# 2026-03-04 is a Wednesday
WEDNESDAY_NOON = datetime(2026, 3, 4, 12, 0)


def make_service(**overrides) -> CampusService:
    data = {"name": "The Punchout", "open_time": "08:00", "close_time": "20:00"}
    data.update(overrides)
    return CampusService(**data)


def test_service_open_within_hours():
    assert is_service_open(make_service(), WEDNESDAY_NOON)


def test_service_closed_outside_hours():
    assert not is_service_open(make_service(), datetime(2026, 3, 4, 21, 0))
    assert not is_service_open(make_service(), datetime(2026, 3, 4, 7, 59))


def test_service_close_time_is_exclusive():
    assert not is_service_open(make_service(), datetime(2026, 3, 4, 20, 0))


def test_service_days_open():
    weekdays = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
    assert is_service_open(make_service(days_open=weekdays), WEDNESDAY_NOON)
    assert not is_service_open(make_service(days_open=["saturday", "sunday"]), WEDNESDAY_NOON)


def test_service_closed_flag_or_missing_hours():
    assert not is_service_open(make_service(is_closed=True), WEDNESDAY_NOON)
    assert not is_service_open(make_service(open_time=None), WEDNESDAY_NOON)


@pytest.mark.parametrize(
    "v1, v2, expected",
    [
        ("1.2.0", "1.1.9", 1),
        ("1.2", "1.2.0", 0),
        ("1.10.0", "1.9.0", 1),
        ("v2.0.0", "2.0.1", -1),
    ],
)
def test_compare_versions(v1, v2, expected):
    assert compare_versions(v1, v2) == expected


def test_group_by_category_orders_items():
    groups = group_by_category(FALLBACK_DIRECTORY)
    assert groups[0].category == "emergency-contacts"
    priorities = [item.priority for item in groups[0].items]
    assert priorities == sorted(priorities, reverse=True)
    assert sum(len(g.items) for g in groups) == len(FALLBACK_DIRECTORY)


def test_validate_phone():
    assert validate_phone("(202) 806-1919") is None
    assert validate_phone("+1 202 555 0100") is None
    assert validate_phone("call me") is not None
    assert validate_phone("12345") == "Phone number must have between 7 and 20 digits"
    assert validate_phone(None) is not None
