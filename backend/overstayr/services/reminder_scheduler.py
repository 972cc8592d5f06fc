"""Create and delete visas together with their scheduled reminders.

Scheduling is best effort: a refused or failed reminder never stops a visa
from being saved, and a failed cancellation never stops a visa from being
deleted. What happened to each reminder is returned as data so callers can
log or display it.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from enum import Enum

from sqlalchemy.orm import Session

from overstayr.exceptions import PermissionDenied, PersistenceFailure
from overstayr.schemas.settings import ReminderSettings
from overstayr.schemas.visa import VisaRecord
from overstayr.services import visa_store
from overstayr.services.calendar_math import utc_now
from overstayr.services.notifications import NotificationScheduler
from overstayr.services.reminder_planner import ReminderPlanItem, plan_reminders

logger = logging.getLogger(__name__)


class OutcomeStatus(str, Enum):
    SCHEDULED = "scheduled"
    REFUSED = "refused"
    FAILED = "failed"


class SkipReason(str, Enum):
    UNSUPPORTED = "unsupported"
    DISABLED = "disabled"
    PERMISSION_DENIED = "permission_denied"


@dataclass(frozen=True)
class ScheduleOutcome:
    item: ReminderPlanItem
    status: OutcomeStatus
    handle: str | None = None
    error: str | None = None

    @property
    def scheduled(self) -> bool:
        return self.status is OutcomeStatus.SCHEDULED


@dataclass(frozen=True)
class CancelOutcome:
    handle: str
    cancelled: bool
    error: str | None = None


@dataclass
class CreateVisaResult:
    visa: VisaRecord
    outcomes: list[ScheduleOutcome] = field(default_factory=list)
    skipped_reason: SkipReason | None = None


@dataclass
class DeleteVisaResult:
    visa_id: str
    deleted: bool
    cancellations: list[CancelOutcome] = field(default_factory=list)


async def create_visa(
    db: Session,
    visa: VisaRecord,
    scheduler: NotificationScheduler,
    reminder_settings: ReminderSettings,
    now: datetime | None = None,
    zone: tzinfo | None = None,
) -> CreateVisaResult:
    """Schedule the visa's reminders, then persist it with their handles.

    Raises PersistenceFailure if the visa cannot be saved; in that case any
    reminders scheduled for it are cancelled first so none are orphaned.
    """
    if now is None:
        now = utc_now()

    result = CreateVisaResult(visa=visa)
    if not scheduler.supported:
        result.skipped_reason = SkipReason.UNSUPPORTED
    elif not reminder_settings.enabled:
        result.skipped_reason = SkipReason.DISABLED
    else:
        try:
            result.outcomes = await _schedule_reminders(visa, scheduler, reminder_settings, now, zone)
        except PermissionDenied:
            logger.info(f"Notification permission denied; saving visa {visa.id} without reminders")
            result.skipped_reason = SkipReason.PERMISSION_DENIED

    handles = [o.handle for o in result.outcomes if o.scheduled]
    visa.notification_ids = handles

    try:
        visa_store.save_visa(db, visa)
    except PersistenceFailure:
        if handles:
            logger.warning(f"Saving visa {visa.id} failed; cancelling {len(handles)} reminder(s)")
            await cancel_reminders(scheduler, handles)
        raise

    logger.info(
        f"Created visa {visa.id} ({visa.country_code}) with "
        f"{len(handles)}/{len(result.outcomes)} reminder(s) scheduled"
    )
    return result


async def delete_visa(db: Session, visa_id: str, scheduler: NotificationScheduler) -> DeleteVisaResult:
    """Cancel every reminder the visa owns, then remove it.

    The record is removed only after all cancellation attempts have
    completed, whatever their outcome.
    """
    visa = visa_store.get_visa(db, visa_id)
    if visa is None:
        return DeleteVisaResult(visa_id=visa_id, deleted=False)

    cancellations = await cancel_reminders(scheduler, visa.notification_ids)
    deleted = visa_store.delete_visa(db, visa_id)

    failed = sum(1 for c in cancellations if not c.cancelled)
    if failed:
        logger.warning(f"Deleted visa {visa_id}; {failed} reminder(s) could not be cancelled")
    return DeleteVisaResult(visa_id=visa_id, deleted=deleted, cancellations=cancellations)


async def delete_all_visas(db: Session, scheduler: NotificationScheduler) -> list[DeleteVisaResult]:
    results = []
    for visa in visa_store.get_visas(db):
        results.append(await delete_visa(db, visa.id, scheduler))
    visa_store.clear_visas(db)
    return results


async def cancel_reminders(scheduler: NotificationScheduler, handles: list[str]) -> list[CancelOutcome]:
    """Cancel handles concurrently; one outcome per handle, in order."""
    if not handles:
        return []
    return list(await asyncio.gather(*(_cancel_one(scheduler, h) for h in handles)))


async def _schedule_reminders(
    visa: VisaRecord,
    scheduler: NotificationScheduler,
    reminder_settings: ReminderSettings,
    now: datetime,
    zone: tzinfo | None,
) -> list[ScheduleOutcome]:
    try:
        granted = await scheduler.request_permission()
    except Exception as e:
        logger.warning(f"Notification permission request failed: {e}")
        raise PermissionDenied(f"Notification permission request failed: {e}") from e
    if not granted:
        raise PermissionDenied("Notification permission was not granted")

    plan = plan_reminders(visa, reminder_settings, now, zone)
    dropped = len(reminder_settings.offsets_days) - len(plan)
    if dropped:
        logger.debug(f"Visa {visa.id}: {dropped} reminder(s) already in the past, not scheduled")

    return list(await asyncio.gather(*(_schedule_one(scheduler, item) for item in plan)))


async def _schedule_one(scheduler: NotificationScheduler, item: ReminderPlanItem) -> ScheduleOutcome:
    try:
        handle = await scheduler.schedule(item.title, item.message, item.fire_at)
    except Exception as e:
        logger.warning(f"Failed to schedule reminder for {item.fire_at.isoformat()}: {e}")
        return ScheduleOutcome(item=item, status=OutcomeStatus.FAILED, error=str(e))

    if handle is None:
        logger.info(f"Reminder for {item.fire_at.isoformat()} was refused")
        return ScheduleOutcome(item=item, status=OutcomeStatus.REFUSED)
    return ScheduleOutcome(item=item, status=OutcomeStatus.SCHEDULED, handle=handle)


async def _cancel_one(scheduler: NotificationScheduler, handle: str) -> CancelOutcome:
    try:
        await scheduler.cancel(handle)
    except Exception as e:
        logger.warning(f"Failed to cancel reminder {handle}: {e}")
        return CancelOutcome(handle=handle, cancelled=False, error=str(e))
    return CancelOutcome(handle=handle, cancelled=True)
