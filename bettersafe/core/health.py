import asyncio
import logging
import time
from typing import Dict, Any

import aiohttp
from sqlalchemy import text

from bettersafe.config import settings
from bettersafe.utils.storage import list_bucket
from bettersafe.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

def _elapsed_ms(start: float) -> int:
    return round((time.perf_counter() - start) * 1000)

def _check(status: str, start: float, message: str) -> Dict[str, Any]:
    return {"status": status, "response_time": _elapsed_ms(start), "message": message}

async def check_database() -> Dict[str, Any]:
    from bettersafe.database import AsyncSessionLocal

    start = time.perf_counter()
    try:
        async with AsyncSessionLocal() as db:
            await db.execute(text("SELECT 1"))
        return _check("up", start, "Database connection successful")
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return _check("down", start, f"Database check failed: {e}")

async def check_auth() -> Dict[str, Any]:
    start = time.perf_counter()
    if not settings.SUPABASE_URL:
        return _check("down", start, "Auth provider not configured")

    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(
                f"{settings.SUPABASE_URL}/auth/v1/health",
                timeout=aiohttp.ClientTimeout(total=10)
            ) as response:
                # 401 means the service is up and rejecting an unauthenticated call
                if response.status in (200, 401):
                    return _check("up", start, "Auth service responding")
                return _check("down", start, f"Auth service error: status {response.status}")
    except Exception as e:
        logger.error(f"Auth health check failed: {e}")
        return _check("down", start, f"Auth check failed: {e}")

async def check_storage() -> Dict[str, Any]:
    start = time.perf_counter()
    try:
        await list_bucket(settings.AVATAR_BUCKET, limit=1)
        return _check("up", start, "Storage service accessible")
    except Exception as e:
        logger.error(f"Storage health check failed: {e}")
        return _check("down", start, f"Storage check failed: {e}")

async def run_health_checks() -> Dict[str, Any]:
    """
    Check database, auth and storage concurrently

    healthy: everything up; unhealthy: database down; degraded otherwise.
    """
    start = time.perf_counter()
    database, auth, storage = await asyncio.gather(
        check_database(), check_auth(), check_storage()
    )

    if database["status"] == "down":
        status = "unhealthy"
    elif auth["status"] == "up" and storage["status"] == "up":
        status = "healthy"
    else:
        status = "degraded"

    if status != "healthy":
        logger.warning(f"Health check reported {status}")

    return {
        "status": status,
        "timestamp": utcnow().isoformat(),
        "services": {"database": database, "auth": auth, "storage": storage},
        "overall_response_time": _elapsed_ms(start),
    }
