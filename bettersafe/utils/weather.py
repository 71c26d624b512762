import asyncio
import logging
from typing import Dict, Any, List

import aiohttp

from bettersafe.config import settings
from bettersafe.utils.cache import TTLCache

logger = logging.getLogger(__name__)

weather_cache = TTLCache(default_ttl=settings.WEATHER_CACHE_SECONDS)

class WeatherError(Exception):
    """Raised when the forecast provider cannot be reached or answers badly"""

RAIN_CODES = {51, 53, 55, 61, 63, 65, 80, 81, 82}
SNOW_CODES = {71, 73, 75, 77, 85, 86}
STORM_CODES = {95, 96, 99}

def weather_condition(code: int) -> str:
    """Simplified label for an Open-Meteo WMO weather code"""
    if code == 0:
        return "clear"
    if code in (1, 2):
        return "partly_cloudy"
    if code in RAIN_CODES:
        return "rain"
    if code in SNOW_CODES:
        return "snow"
    if code in STORM_CODES:
        return "thunderstorm"
    return "cloudy"

def parse_forecast(data: Dict[str, Any], hours: int = 4) -> Dict[str, Any]:
    current = data["current"]
    hourly = data["hourly"]

    forecast: List[Dict[str, Any]] = []
    for i, time_str in enumerate(hourly["time"][:hours]):
        code = int(hourly["weather_code"][i])
        forecast.append({
            "time": time_str,
            "temperature_f": round(hourly["temperature_2m"][i]),
            "weather_code": code,
            "condition": weather_condition(code),
        })

    code = int(current["weather_code"])
    return {
        "temperature_f": round(current["temperature_2m"]),
        "wind_speed_mph": round(current["wind_speed_10m"]),
        "weather_code": code,
        "condition": weather_condition(code),
        "hourly": forecast,
    }

async def fetch_campus_weather() -> Dict[str, Any]:
    """
    Current conditions and the next few hourly slots for the campus

    Results are cached for WEATHER_CACHE_SECONDS.
    """
    cache_key = f"{settings.WEATHER_LAT},{settings.WEATHER_LNG}"
    cached = weather_cache.get(cache_key)
    if cached is not None:
        return cached

    params = {
        "latitude": str(settings.WEATHER_LAT),
        "longitude": str(settings.WEATHER_LNG),
        "current": "temperature_2m,wind_speed_10m,weather_code",
        "hourly": "temperature_2m,weather_code",
        "forecast_days": "1",
        "timezone": "auto",
        "temperature_unit": "fahrenheit",
        "wind_speed_unit": "mph",
    }

    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(
                settings.WEATHER_API_URL,
                params=params,
                timeout=aiohttp.ClientTimeout(total=settings.HTTP_TIMEOUT_SECONDS)
            ) as response:
                if response.status != 200:
                    raise WeatherError(f"Weather API returned {response.status}")
                data = await response.json()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.error(f"Weather request failed: {e}")
        raise WeatherError("Failed to load weather") from e

    try:
        result = parse_forecast(data)
    except (KeyError, IndexError, TypeError, ValueError) as e:
        logger.error(f"Unexpected weather payload: {e}")
        raise WeatherError("Failed to load weather") from e

    weather_cache.set(cache_key, result)
    return result
