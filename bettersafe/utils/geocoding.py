import asyncio
import logging

import aiohttp

from bettersafe.config import settings

logger = logging.getLogger(__name__)

def format_coordinates(latitude: float, longitude: float) -> str:
    return f"{latitude:.6f}, {longitude:.6f}"

async def reverse_geocode(latitude: float, longitude: float) -> str:
    """
    Human readable address for coordinates

    Falls back to "lat, lng" (6 decimals) when the lookup fails.
    """
    params = {
        "format": "json",
        "lat": str(latitude),
        "lon": str(longitude),
    }
    headers = {"User-Agent": settings.GEOCODING_USER_AGENT}

    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(
                settings.GEOCODING_API_URL,
                params=params,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=10)
            ) as response:
                if response.status == 200:
                    data = await response.json()
                    address = data.get("display_name")
                    if address:
                        return address
                else:
                    logger.warning(f"Geocoding API returned {response.status}")
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.warning(f"Reverse geocoding failed: {e}")

    return format_coordinates(latitude, longitude)
