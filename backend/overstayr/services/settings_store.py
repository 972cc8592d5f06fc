"""Settings repository: onboarding flag and reminder configuration.

Stored values are sanitized on read and never rejected: anything that does
not parse falls back to the documented default.
"""
import json
import logging
import math

from sqlalchemy.orm import Session

from overstayr.schemas.settings import (
    DEFAULT_ENABLED,
    DEFAULT_HOUR,
    DEFAULT_MINUTE,
    DEFAULT_OFFSETS_DAYS,
    MAX_OFFSET_DAYS,
    ReminderSettings,
)
from overstayr.services import kv_store

logger = logging.getLogger(__name__)

KEY_ONBOARDING_DONE = "onboarding_done"
KEY_NOTIF_ENABLED = "notif_enabled"
KEY_REMINDER_HOUR = "reminder_hour"
KEY_REMINDER_MIN = "reminder_min"
KEY_REMINDER_OFFSETS = "reminder_offsets_days"  # JSON array like [14, 7, 3, 0]

REMINDER_KEYS = (KEY_NOTIF_ENABLED, KEY_REMINDER_HOUR, KEY_REMINDER_MIN, KEY_REMINDER_OFFSETS)


# ---------- onboarding ----------

def is_onboarding_done(db: Session) -> bool:
    return kv_store.get_item(db, KEY_ONBOARDING_DONE) == "1"


def set_onboarding_done(db: Session) -> None:
    kv_store.set_item(db, KEY_ONBOARDING_DONE, "1")


def clear_onboarding_done(db: Session) -> None:
    kv_store.remove_item(db, KEY_ONBOARDING_DONE)


# ---------- reminders ----------

def get_reminder_settings(db: Session) -> ReminderSettings:
    """Load reminder settings, falling back to defaults for bad or missing values."""
    enabled_str = kv_store.get_item(db, KEY_NOTIF_ENABLED)
    hour_str = kv_store.get_item(db, KEY_REMINDER_HOUR)
    minute_str = kv_store.get_item(db, KEY_REMINDER_MIN)
    offsets_str = kv_store.get_item(db, KEY_REMINDER_OFFSETS)

    enabled = DEFAULT_ENABLED if enabled_str is None else enabled_str == "1"
    hour = _read_int_in_range(hour_str, 0, 23, DEFAULT_HOUR, KEY_REMINDER_HOUR)
    minute = _read_int_in_range(minute_str, 0, 59, DEFAULT_MINUTE, KEY_REMINDER_MIN)
    offsets_days = _read_offsets(offsets_str)

    return ReminderSettings(enabled=enabled, hour=hour, minute=minute, offsets_days=offsets_days)


def set_reminder_enabled(db: Session, enabled: bool) -> None:
    kv_store.set_item(db, KEY_NOTIF_ENABLED, "1" if enabled else "0")


def set_reminder_time(db: Session, hour: float, minute: float) -> None:
    """Store the reminder time, clamped into 00:00-23:59."""
    h = clamp_int(hour, 0, 23, DEFAULT_HOUR)
    m = clamp_int(minute, 0, 59, DEFAULT_MINUTE)
    kv_store.set_item(db, KEY_REMINDER_HOUR, str(h))
    kv_store.set_item(db, KEY_REMINDER_MIN, str(m))


def set_reminder_offsets(db: Session, offsets_days: list[float]) -> list[int]:
    """Store offsets, dropping entries that are not whole days within 0-365."""
    clean = [int(x) for x in offsets_days if _is_valid_offset(x)]
    kv_store.set_item(db, KEY_REMINDER_OFFSETS, json.dumps(clean))
    return clean


def reset_all_settings(db: Session) -> None:
    """Forget stored reminder settings (the onboarding flag is kept)."""
    for key in REMINDER_KEYS:
        kv_store.remove_item(db, key)


# ---------- helpers ----------

def clamp_int(n: float, minimum: int, maximum: int, fallback: int) -> int:
    if not _is_finite_number(n):
        return fallback
    x = math.floor(n)
    if x < minimum:
        return minimum
    if x > maximum:
        return maximum
    return x


def _read_int_in_range(raw: str | None, minimum: int, maximum: int, fallback: int, key: str) -> int:
    if raw is None:
        return fallback
    try:
        value = float(raw)
    except ValueError:
        value = math.nan

    if not math.isfinite(value) or not minimum <= math.floor(value) <= maximum:
        logger.warning(f"Ignoring stored {key}={raw!r}, using default {fallback}")
        return fallback
    return math.floor(value)


def _read_offsets(raw: str | None) -> tuple[int, ...]:
    if not raw:
        return DEFAULT_OFFSETS_DAYS

    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning(f"Ignoring unparsable {KEY_REMINDER_OFFSETS}={raw!r}")
        return DEFAULT_OFFSETS_DAYS

    if not isinstance(parsed, list) or not all(_is_finite_number(x) for x in parsed):
        logger.warning(f"Ignoring invalid {KEY_REMINDER_OFFSETS}={raw!r}")
        return DEFAULT_OFFSETS_DAYS

    if not all(_is_whole_number(x) for x in parsed):
        logger.warning(f"Ignoring fractional {KEY_REMINDER_OFFSETS}={raw!r}")
        return DEFAULT_OFFSETS_DAYS

    return tuple(int(x) for x in parsed if 0 <= x <= MAX_OFFSET_DAYS)


def _is_finite_number(x) -> bool:
    if isinstance(x, bool):
        return False
    if isinstance(x, int):
        return True
    return isinstance(x, float) and math.isfinite(x)


def _is_whole_number(x) -> bool:
    # Large ints do not fit in a float, so only floats go through is_integer
    return isinstance(x, int) or x.is_integer()


def _is_valid_offset(x) -> bool:
    return _is_finite_number(x) and _is_whole_number(x) and 0 <= x <= MAX_OFFSET_DAYS
