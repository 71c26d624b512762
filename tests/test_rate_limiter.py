"""Tests for the database-backed and per-endpoint rate limiters."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from bettersafe.core.rate_limiter import EndpointRateLimiter, check_rate_limit
from bettersafe.models.incident import RateLimitRecord
from tests.conftest import run


def test_incident_limit_allows_three_then_denies(db_run):
    user_id = uuid.uuid4()

    async def _attempts(session):
        return [await check_rate_limit(session, user_id, "1.2.3.4", "incident_report") for _ in range(4)]

    results = db_run(_attempts)
    assert [r.allowed for r in results] == [True, True, True, False]
    assert [r.remaining_attempts for r in results] == [2, 1, 0, 0]
    assert results[3].retry_after_seconds() > 0


def test_anonymous_limit_is_per_ip(db_run):
    async def _attempts(session):
        for _ in range(3):
            await check_rate_limit(session, None, "1.2.3.4", "incident_report")
        blocked = await check_rate_limit(session, None, "1.2.3.4", "incident_report")
        other_ip = await check_rate_limit(session, None, "5.6.7.8", "incident_report")
        return blocked, other_ip

    blocked, other_ip = db_run(_attempts)
    assert not blocked.allowed
    assert other_ip.allowed


def test_users_do_not_share_limits(db_run):
    first, second = uuid.uuid4(), uuid.uuid4()

    async def _attempts(session):
        for _ in range(3):
            await check_rate_limit(session, first, "1.2.3.4", "incident_report")
        return await check_rate_limit(session, second, "1.2.3.4", "incident_report")

    assert db_run(_attempts).allowed


def test_unknown_action_uses_global_limit(db_run):
    async def _attempt(session):
        return await check_rate_limit(session, uuid.uuid4(), "1.2.3.4", "something_else")

    assert db_run(_attempt).remaining_attempts == 9


def test_expired_window_starts_fresh(db_run):
    user_id = uuid.uuid4()

    async def _attempt(session):
        session.add(RateLimitRecord(
            user_id=user_id,
            ip_address="1.2.3.4",
            action_type="incident_report",
            attempts_count=3,
            window_start=datetime.now(timezone.utc) - timedelta(minutes=20)
        ))
        await session.commit()
        return await check_rate_limit(session, user_id, "1.2.3.4", "incident_report")

    result = db_run(_attempt)
    assert result.allowed
    assert result.remaining_attempts == 2


def test_database_error_denies():
    session = MagicMock()
    session.execute = AsyncMock(side_effect=RuntimeError("database is gone"))
    session.rollback = AsyncMock()

    result = run(check_rate_limit(session, None, "1.2.3.4", "incident_report"))
    assert not result.allowed
    session.rollback.assert_awaited_once()


def test_endpoint_limiter_window():
    limiter = EndpointRateLimiter("2/minute")
    assert limiter.can_attempt("ip")
    assert limiter.can_attempt("ip")
    assert not limiter.can_attempt("ip")
    assert 0 < limiter.remaining_time("ip") <= 60
    assert limiter.can_attempt("other-ip")

    limiter.reset()
    assert limiter.can_attempt("ip")
    assert limiter.remaining_time("unseen") == 0.0
