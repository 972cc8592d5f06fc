"""Calendar math anchored to UTC midnight.

Calendar dates are plain `date` objects: no time-of-day, no timezone.
Instants are timezone-aware `datetime` objects. The only place one turns
into the other is `at_local_time`, which attaches the user's wall-clock
reminder time to a calendar day in the device's zone.
"""
import re
from datetime import date, datetime, timedelta, timezone, tzinfo

from dateutil import tz

from overstayr.exceptions import InvalidDate, InvalidRange

_CALENDAR_DATE_RE = re.compile(r"^([0-9]{4})-([0-9]{2})-([0-9]{2})$")


def parse_calendar_date(value: str) -> date:
    """Parse a strict YYYY-MM-DD string.

    Rejects anything that would roll over into another day (2023-02-30,
    2026-13-01, ...) instead of silently normalising it.
    """
    if not isinstance(value, str):
        raise InvalidDate(f"Expected a YYYY-MM-DD string, got {type(value).__name__}")

    match = _CALENDAR_DATE_RE.match(value.strip())
    if not match:
        raise InvalidDate(f"Invalid date {value!r}: use format YYYY-MM-DD (example: 2026-01-14)")

    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise InvalidDate(f"Invalid date {value!r}: {exc}") from exc


def add_calendar_days(day: date, days: int) -> date:
    """Add whole days (may be negative) to a calendar date."""
    try:
        return _to_calendar_date(day) + timedelta(days=days)
    except OverflowError as exc:
        raise InvalidRange(f"{day.isoformat()} plus {days} day(s) is outside the supported calendar") from exc


def days_between(start: date | datetime, end: date | datetime) -> int:
    """Signed number of calendar days from `start` to `end`.

    Aware datetimes are moved to UTC before their date is taken; naive
    datetimes are read component-wise. Time-of-day never affects the result.
    """
    return (_to_calendar_date(end) - _to_calendar_date(start)).days


def local_timezone(name: str | None = None) -> tzinfo:
    """Resolve a configured IANA zone, or the device's zone when unset."""
    if not name:
        return tz.tzlocal()

    zone = tz.gettz(name)
    if zone is None:
        raise InvalidRange(f"Unknown timezone: {name}")
    return zone


def at_local_time(day: date, hour: int, minute: int, zone: tzinfo) -> datetime:
    """Build the local instant for `hour:minute` on calendar `day` in `zone`.

    Wall times skipped by a DST transition are moved forward to the first
    valid instant.
    """
    if not 0 <= hour <= 23:
        raise InvalidRange(f"Hour must be between 0 and 23, got {hour}")
    if not 0 <= minute <= 59:
        raise InvalidRange(f"Minute must be between 0 and 59, got {minute}")

    local = datetime(day.year, day.month, day.day, hour, minute, tzinfo=zone)
    return tz.resolve_imaginary(local)


def ensure_aware(moment: datetime, zone: tzinfo) -> datetime:
    """Interpret a naive datetime as wall-clock time in `zone`."""
    if moment.tzinfo is None or moment.utcoffset() is None:
        return moment.replace(tzinfo=zone)
    return moment


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_calendar_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        if value.tzinfo is not None and value.utcoffset() is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value
