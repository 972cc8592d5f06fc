"""Visa schemas."""
from datetime import date, datetime

from pydantic import BaseModel, Field


class VisaRecord(BaseModel):
    """Stored visa record (camelCase keys in the persisted JSON)."""

    id: str
    country_code: str = Field(alias="countryCode")
    label: str = Field(alias="visaLabel")
    entry_date: date = Field(alias="entryDate")
    duration_days: int = Field(alias="durationDays")
    created_at: str = Field(alias="createdAt")
    notification_ids: list[str] = Field(default_factory=list, alias="notificationIds")

    class Config:
        populate_by_name = True


class VisaCreate(BaseModel):
    """Request to add a visa. Values are validated by the visa service."""

    country_code: str
    label: str
    entry_date: str = Field(description="Entry date, YYYY-MM-DD")
    duration_days: int | str


class VisaStatusItem(BaseModel):
    """A visa with its countdown, as shown in the list."""

    id: str
    country_code: str
    label: str
    entry_date: date
    duration_days: int
    created_at: str
    expiry_date: date
    days_remaining: int
    status: str  # expired, urgent, warning, safe
    reminder_count: int


class VisaListResponse(BaseModel):
    """All visas, most urgent first."""

    visas: list[VisaStatusItem]
    summary: dict


class ReminderPlanEntry(BaseModel):
    """A reminder that would be (or was) scheduled for a visa."""

    offset_days: int
    fire_at: datetime
    title: str
    message: str


class ScheduleOutcomeResponse(BaseModel):
    offset_days: int
    fire_at: datetime
    status: str  # scheduled, refused, failed
    handle: str | None = None
    error: str | None = None


class VisaCreateResponse(BaseModel):
    """Created visa plus what happened to each planned reminder."""

    visa: VisaStatusItem
    reminders: list[ScheduleOutcomeResponse]
    reminders_skipped_reason: str | None = None


class CancelOutcomeResponse(BaseModel):
    handle: str
    cancelled: bool
    error: str | None = None


class VisaDeleteResponse(BaseModel):
    deleted: bool
    cancellations: list[CancelOutcomeResponse]
