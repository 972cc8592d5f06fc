"""Reminder planning: which local instants to remind at, and what to say.

Pure functions only. `settings.enabled` is deliberately not consulted here;
whether to schedule at all is the scheduler's decision.
"""
from dataclasses import dataclass
from datetime import datetime, tzinfo

from dateutil import tz

from overstayr.schemas.settings import ReminderSettings
from overstayr.schemas.visa import VisaRecord
from overstayr.services.calendar_math import add_calendar_days, at_local_time, ensure_aware
from overstayr.services.visa_status import compute_expiry

REMINDER_TITLE = "Visa reminder"


@dataclass(frozen=True)
class ReminderPlanItem:
    offset_days: int
    fire_at: datetime  # aware, local to the delivery zone
    title: str
    message: str


def reminder_message(country_code: str, offset_days: int) -> str:
    if offset_days == 0:
        return f"Your {country_code} visa expires today."
    return f"Your {country_code} visa expires in {offset_days} day(s)."


def plan_reminders(
    visa: VisaRecord,
    settings: ReminderSettings,
    now: datetime,
    zone: tzinfo | None = None,
) -> list[ReminderPlanItem]:
    """Plan one reminder per configured offset, in configuration order.

    The fire day is computed in calendar space (it does not move with the
    device zone); the wall-clock time is attached in `zone`, the device's
    local zone by default. Instants at or before `now` are dropped.
    """
    if zone is None:
        zone = tz.tzlocal()
    now = ensure_aware(now, zone)

    expiry = compute_expiry(visa.entry_date, visa.duration_days)

    plan = []
    for offset_days in settings.offsets_days:
        fire_day = add_calendar_days(expiry, -offset_days)
        fire_at = at_local_time(fire_day, settings.hour, settings.minute, zone)
        if fire_at <= now:
            continue
        plan.append(ReminderPlanItem(
            offset_days=offset_days,
            fire_at=fire_at,
            title=REMINDER_TITLE,
            message=reminder_message(visa.country_code, offset_days),
        ))

    return plan
