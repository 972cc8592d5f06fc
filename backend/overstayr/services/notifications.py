"""Local notification schedulers.

`NotificationScheduler` is the port the reminder scheduler talks to. Two
implementations live here: one persisting reminders to the
`scheduled_reminders` table, and an in-memory one that records every call.
"""
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from overstayr.exceptions import SchedulingFailure
from overstayr.models.reminder import ScheduledReminder
from overstayr.services.calendar_math import utc_now

logger = logging.getLogger(__name__)


class NotificationScheduler(Protocol):
    """What the app needs from the platform's local notification service."""

    supported: bool

    async def request_permission(self) -> bool:
        """Ask for (or report) permission to show notifications."""

    async def schedule(self, title: str, body: str, fire_at: datetime) -> str | None:
        """Schedule one notification. Returns its handle, or None if refused."""

    async def cancel(self, handle: str) -> None:
        """Cancel a scheduled notification. No error if already fired or cancelled."""


class DatabaseNotificationScheduler:
    """Keeps pending reminders in the database until they are due."""

    def __init__(self, db: Session, supported: bool = True, permission_granted: bool = True):
        self.db = db
        self.supported = supported
        self.permission_granted = permission_granted

    async def request_permission(self) -> bool:
        return self.supported and self.permission_granted

    async def schedule(self, title: str, body: str, fire_at: datetime) -> str | None:
        if not self.supported:
            return None
        if fire_at <= utc_now():
            # Never schedule in the past
            return None

        reminder = ScheduledReminder(
            title=title,
            body=body,
            scheduled_for=fire_at.astimezone(timezone.utc).isoformat(),
        )
        try:
            self.db.add(reminder)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise SchedulingFailure(f"Could not store reminder: {e}") from e

        logger.debug(f"Scheduled reminder {reminder.id} for {reminder.scheduled_for}")
        return reminder.id

    async def cancel(self, handle: str) -> None:
        if not self.supported:
            return

        reminder = self.db.get(ScheduledReminder, handle)
        if not reminder or reminder.cancelled_at:
            return

        reminder.cancelled_at = utc_now().isoformat()
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise SchedulingFailure(f"Could not cancel reminder {handle}: {e}") from e


def get_pending_reminders(db: Session, now: datetime | None = None) -> list[ScheduledReminder]:
    """Reminders that are neither cancelled nor past their fire time."""
    if now is None:
        now = utc_now()
    cutoff = now.astimezone(timezone.utc).isoformat()
    return (
        db.query(ScheduledReminder)
        .filter(
            ScheduledReminder.cancelled_at.is_(None),
            ScheduledReminder.scheduled_for > cutoff,
        )
        .order_by(ScheduledReminder.scheduled_for)
        .all()
    )


@dataclass
class ScheduledCall:
    handle: str
    title: str
    body: str
    fire_at: datetime


@dataclass
class InMemoryNotificationScheduler:
    """Records schedule/cancel calls instead of touching a real service.

    `refuse_at` / `fail_at` hold 0-based indexes of schedule calls to refuse
    (return None) or fail (raise); `fail_cancel` makes every cancel raise.
    """

    supported: bool = True
    permission_granted: bool = True
    refuse_at: set[int] = field(default_factory=set)
    fail_at: set[int] = field(default_factory=set)
    fail_cancel: bool = False

    permission_requests: int = 0
    scheduled: list[ScheduledCall] = field(default_factory=list)
    cancelled: list[str] = field(default_factory=list)
    _calls: itertools.count = field(default_factory=itertools.count, repr=False)

    async def request_permission(self) -> bool:
        self.permission_requests += 1
        return self.permission_granted

    async def schedule(self, title: str, body: str, fire_at: datetime) -> str | None:
        index = next(self._calls)
        if index in self.fail_at:
            raise SchedulingFailure(f"schedule call {index} failed")
        if index in self.refuse_at:
            return None

        handle = f"notif-{index}"
        self.scheduled.append(ScheduledCall(handle=handle, title=title, body=body, fire_at=fire_at))
        return handle

    async def cancel(self, handle: str) -> None:
        self.cancelled.append(handle)
        if self.fail_cancel:
            raise SchedulingFailure(f"cancel {handle} failed")

    @property
    def live_handles(self) -> list[str]:
        cancelled = set(self.cancelled) if not self.fail_cancel else set()
        return [call.handle for call in self.scheduled if call.handle not in cancelled]
