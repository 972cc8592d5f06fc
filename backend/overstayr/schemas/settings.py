"""Reminder settings schemas."""
from pydantic import BaseModel, Field

DEFAULT_ENABLED = True
DEFAULT_HOUR = 9
DEFAULT_MINUTE = 0
DEFAULT_OFFSETS_DAYS = (14, 7, 3, 0)
MAX_OFFSET_DAYS = 365


class ReminderSettings(BaseModel):
    """Reminder configuration, loaded once per operation and passed explicitly."""

    enabled: bool = DEFAULT_ENABLED
    hour: int = Field(DEFAULT_HOUR, ge=0, le=23)
    minute: int = Field(DEFAULT_MINUTE, ge=0, le=59)
    offsets_days: tuple[int, ...] = DEFAULT_OFFSETS_DAYS

    class Config:
        frozen = True


class ReminderEnabledUpdate(BaseModel):
    enabled: bool


class ReminderEnabledResponse(BaseModel):
    settings: ReminderSettings
    permission_granted: bool | None = None  # only asked when turning reminders on


class ReminderTimeUpdate(BaseModel):
    hour: int | float | str
    minute: int | float | str


class ReminderOffsetsUpdate(BaseModel):
    offsets_days: list[int | float]


class OnboardingResponse(BaseModel):
    done: bool


class PermissionResponse(BaseModel):
    supported: bool
    granted: bool
