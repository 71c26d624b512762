from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./bettersafe.db"
    DB_ECHO: bool = False

    # Security (tokens are issued by the auth provider with this shared secret)
    SECRET_KEY: str = "your-secret-key-here"
    ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = "authenticated"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Supabase storage
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    INCIDENT_PHOTO_BUCKET: str = "incident-photos"
    AVATAR_BUCKET: str = "avatars"
    MAX_PHOTO_SIZE_BYTES: int = 5 * 1024 * 1024  # 5MB
    SIGNED_URL_EXPIRY_SECONDS: int = 3600

    # Howard University campus
    CAMPUS_CENTER_LAT: float = 38.9230
    CAMPUS_CENTER_LNG: float = -77.0200
    CAMPUS_RADIUS_KM: float = 3.0
    CAMPUS_TIMEZONE: str = "America/New_York"
    CAMPUS_SECURITY_PHONE: str = "(202) 806-4357"
    EMERGENCY_SERVICES_PHONE: str = "911"

    # SMS (Twilio)
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_PHONE_NUMBER: str = ""
    TWILIO_API_URL: str = "https://api.twilio.com/2010-04-01"

    # Email (SendGrid, falling back to SMTP)
    SENDGRID_API_KEY: str = ""
    SENDGRID_API_URL: str = "https://api.sendgrid.com/v3/mail/send"
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    FROM_EMAIL: str = "noreply@bettersafe.app"
    FROM_NAME: str = "BetterSafe Emergency"

    # Maps, geocoding and weather
    GOOGLE_MAPS_API_KEY: str = ""
    GEOCODING_API_URL: str = "https://nominatim.openstreetmap.org/reverse"
    GEOCODING_USER_AGENT: str = "BetterSafe-HowardUniversity"
    WEATHER_API_URL: str = "https://api.open-meteo.com/v1/forecast"
    WEATHER_LAT: float = 38.9226
    WEATHER_LNG: float = -77.0190
    WEATHER_CACHE_SECONDS: int = 600

    # HTTP
    CORS_ORIGINS: List[str] = ["*"]
    HTTP_TIMEOUT_SECONDS: int = 30
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
