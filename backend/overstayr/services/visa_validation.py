"""Validation of user input before any side effect happens."""
import uuid
from datetime import date, datetime

from overstayr.exceptions import InvalidRange
from overstayr.schemas.settings import MAX_OFFSET_DAYS
from overstayr.schemas.visa import VisaCreate, VisaRecord
from overstayr.services.calendar_math import add_calendar_days, parse_calendar_date, utc_now

MIN_DURATION_DAYS = 1
MAX_DURATION_DAYS = 365


def normalize_country_code(value: str) -> str:
    code = value.strip().upper()
    if len(code) != 2 or not (code.isascii() and code.isalpha()):
        raise InvalidRange("Invalid country code: use a 2-letter code like VN, TH, JP.")
    return code


def parse_duration_days(value: int | str) -> int:
    if isinstance(value, str):
        value = value.strip()
        if not (value.isascii() and value.isdigit()):
            raise InvalidRange("Invalid duration: must be a whole number of days between 1 and 365.")
        value = int(value)

    if isinstance(value, bool) or not MIN_DURATION_DAYS <= value <= MAX_DURATION_DAYS:
        raise InvalidRange("Invalid duration: must be between 1 and 365 days.")
    return value


def parse_time_component(value: int | float | str, name: str, maximum: int) -> int:
    """Parse an hour (0-23) or minute (0-59) entered by the user."""
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError as e:
            raise InvalidRange(f"Invalid {name}: use 0-{maximum}.") from e

    if isinstance(value, bool) or value != value or not 0 <= value <= maximum:
        raise InvalidRange(f"Invalid {name}: use 0-{maximum}.")
    if not float(value).is_integer():
        raise InvalidRange(f"Invalid {name}: must be a whole number.")
    return int(value)


def build_visa_record(data: VisaCreate, created_at: datetime | None = None) -> VisaRecord:
    """Validate a create request and turn it into a new, unsaved record.

    Raises InvalidRange or InvalidDate; nothing is stored or scheduled here.
    """
    country_code = normalize_country_code(data.country_code)

    label = data.label.strip()
    if not label:
        raise InvalidRange("Missing visa label: for example Tourist, Business, Student.")

    entry_date = parse_calendar_date(data.entry_date)
    duration_days = parse_duration_days(data.duration_days)
    _check_calendar_bounds(entry_date, duration_days)

    if created_at is None:
        created_at = utc_now()

    return VisaRecord(
        id=str(uuid.uuid4()),
        country_code=country_code,
        label=label,
        entry_date=entry_date,
        duration_days=duration_days,
        created_at=created_at.isoformat(),
        notification_ids=[],
    )


def _check_calendar_bounds(entry_date: date, duration_days: int) -> None:
    # One spare day on each side of the expiry and earliest reminder day,
    # so shifting either into UTC cannot overflow.
    try:
        add_calendar_days(entry_date, duration_days + 1)
        add_calendar_days(entry_date, -(MAX_OFFSET_DAYS + 1))
    except InvalidRange as e:
        raise InvalidRange(f"Entry date {entry_date.isoformat()} is too far from the present to track.") from e
