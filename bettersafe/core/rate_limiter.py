import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from bettersafe.models.incident import RateLimitRecord
from bettersafe.utils.timeutils import utcnow, ensure_utc

logger = logging.getLogger(__name__)

# action_type -> (max attempts, window minutes)
RATE_LIMITS: Dict[str, Tuple[int, int]] = {
    "incident_report": (3, 15),
    "global": (10, 5),
}

@dataclass
class RateLimitResult:
    allowed: bool
    remaining_attempts: int
    reset_time: datetime

    def retry_after_seconds(self) -> int:
        return max(0, int((self.reset_time - utcnow()).total_seconds() + 0.999))

async def check_rate_limit(
    db: AsyncSession,
    user_id: Optional[uuid.UUID],
    ip_address: str,
    action_type: str
) -> RateLimitResult:
    """
    Fixed-window counter scoped to the user (when known) or the client IP

    Any database failure denies the action.
    """
    max_attempts, window_minutes = RATE_LIMITS.get(action_type, RATE_LIMITS["global"])
    window = timedelta(minutes=window_minutes)
    now = utcnow()

    try:
        statement = select(RateLimitRecord).where(
            RateLimitRecord.action_type == action_type,
            RateLimitRecord.window_start >= now - window
        )
        if user_id:
            statement = statement.where(RateLimitRecord.user_id == user_id)
        else:
            statement = statement.where(
                RateLimitRecord.user_id.is_(None),
                RateLimitRecord.ip_address == ip_address
            )
        statement = statement.order_by(RateLimitRecord.window_start.desc()).limit(1)

        result = await db.execute(statement)
        record = result.scalars().first()

        # Only rows inside the current window match, so none starts a new window
        if record is None:
            db.add(RateLimitRecord(
                user_id=user_id,
                ip_address=ip_address,
                action_type=action_type,
                attempts_count=1,
                window_start=now
            ))
            await db.commit()
            return RateLimitResult(True, max_attempts - 1, now + window)

        window_end = ensure_utc(record.window_start) + window

        if record.attempts_count >= max_attempts:
            logger.warning(
                f"Rate limit exceeded for {action_type} "
                f"({'user ' + str(user_id) if user_id else 'ip ' + ip_address})"
            )
            return RateLimitResult(False, 0, window_end)

        record.attempts_count += 1
        db.add(record)
        await db.commit()
        return RateLimitResult(True, max_attempts - record.attempts_count, window_end)

    except Exception as e:
        logger.error(f"Rate limit check error: {e}")
        await db.rollback()
        return RateLimitResult(False, 0, now)

class EndpointRateLimiter:
    """Per-process fixed-window limiter for lightweight endpoints, keyed by client"""

    def __init__(self, rate: str = "10/minute"):
        self.rate = parse(rate)
        self.storage = MemoryStorage()
        self.limiter = FixedWindowRateLimiter(self.storage)

    def can_attempt(self, key: str) -> bool:
        return self.limiter.hit(self.rate, key)

    def remaining_time(self, key: str) -> float:
        """Seconds until the key's window resets"""
        stats = self.limiter.get_window_stats(self.rate, key)
        return max(0.0, stats.reset_time - time.time())

    def reset(self) -> None:
        self.storage.reset()

maps_key_limiter = EndpointRateLimiter("10/minute")
