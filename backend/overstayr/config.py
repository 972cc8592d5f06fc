"""Application configuration."""
from functools import lru_cache

from dateutil import tz
from pydantic import field_validator
from pydantic_settings import BaseSettings

NOTIFICATION_BACKENDS = ("database", "memory")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "Overstayr"
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000", "http://localhost:8081"]

    # Database
    database_url: str = "sqlite:///./data/overstayr.db"

    # Reminder delivery
    timezone: str | None = None  # IANA name; None means the device's local zone
    notification_backend: str = "database"
    notifications_supported: bool = True
    notifications_permission_granted: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str | None) -> str | None:
        """Fail closed on timezone names dateutil cannot resolve."""
        if value is None or not value.strip():
            return None

        value = value.strip()
        if tz.gettz(value) is None:
            raise ValueError(f"TIMEZONE {value!r} is not a known IANA timezone.")
        return value

    @field_validator("notification_backend")
    @classmethod
    def validate_notification_backend(cls, value: str) -> str:
        lowered = value.strip().lower()
        if lowered not in NOTIFICATION_BACKENDS:
            raise ValueError(
                f"NOTIFICATION_BACKEND must be one of {', '.join(NOTIFICATION_BACKENDS)}."
            )
        return lowered


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
