"""Countdown status and urgency ordering for visas."""
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from overstayr.services.calendar_math import add_calendar_days, days_between

URGENT_MAX_DAYS = 6
WARNING_MAX_DAYS = 14


class Band(str, Enum):
    EXPIRED = "expired"
    URGENT = "urgent"
    WARNING = "warning"
    SAFE = "safe"


BAND_RANK = {
    Band.EXPIRED: 0,
    Band.URGENT: 1,
    Band.WARNING: 2,
    Band.SAFE: 3,
}


@dataclass(frozen=True)
class CountdownStatus:
    expiry_date: date
    days_remaining: int
    band: Band


def classify(days_remaining: int) -> Band:
    """Map remaining days to a band (boundaries inclusive)."""
    if days_remaining < 0:
        return Band.EXPIRED
    if days_remaining <= URGENT_MAX_DAYS:
        return Band.URGENT
    if days_remaining <= WARNING_MAX_DAYS:
        return Band.WARNING
    return Band.SAFE


def compute_expiry(entry_date: date, duration_days: int) -> date:
    return add_calendar_days(entry_date, duration_days)


def compute_status(entry_date: date, duration_days: int, now: date | datetime) -> CountdownStatus:
    """Derive expiry, signed days remaining and band as of `now`.

    Never stored: recomputed on every read so it always matches the moment.
    """
    expiry = compute_expiry(entry_date, duration_days)
    days_remaining = days_between(now, expiry)
    return CountdownStatus(expiry_date=expiry, days_remaining=days_remaining, band=classify(days_remaining))


def urgency_key(status: CountdownStatus) -> tuple[int, int]:
    return BAND_RANK[status.band], status.days_remaining


def sort_by_urgency(items: Iterable, status_of=lambda item: item) -> list:
    """Most urgent first: band rank, then days remaining.

    `sorted` is stable, so items that tie on both keep their input order.
    """
    return sorted(items, key=lambda item: urgency_key(status_of(item)))


def summarize(statuses: Iterable[CountdownStatus]) -> dict:
    """Quick stats for a list header: total and count per band."""
    summary = {"total": 0}
    summary.update({band.value: 0 for band in Band})
    for status in statuses:
        summary["total"] += 1
        summary[status.band.value] += 1
    return summary
