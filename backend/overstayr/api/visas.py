"""Visa API endpoints."""
from datetime import datetime, tzinfo

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from overstayr.api.deps import get_db, get_delivery_zone, get_notification_scheduler, get_now
from overstayr.exceptions import InvalidDate, InvalidRange, PersistenceFailure
from overstayr.schemas.visa import (
    CancelOutcomeResponse,
    ReminderPlanEntry,
    ScheduleOutcomeResponse,
    VisaCreate,
    VisaCreateResponse,
    VisaDeleteResponse,
    VisaListResponse,
    VisaRecord,
    VisaStatusItem,
)
from overstayr.services import reminder_scheduler, settings_store, visa_store
from overstayr.services.notifications import NotificationScheduler
from overstayr.services.reminder_planner import plan_reminders
from overstayr.services.visa_status import CountdownStatus, compute_status, sort_by_urgency, summarize
from overstayr.services.visa_validation import build_visa_record

router = APIRouter(prefix="/visas", tags=["visas"])


def _status_item(visa: VisaRecord, countdown: CountdownStatus) -> VisaStatusItem:
    return VisaStatusItem(
        id=visa.id,
        country_code=visa.country_code,
        label=visa.label,
        entry_date=visa.entry_date,
        duration_days=visa.duration_days,
        created_at=visa.created_at,
        expiry_date=countdown.expiry_date,
        days_remaining=countdown.days_remaining,
        status=countdown.band.value,
        reminder_count=len(visa.notification_ids),
    )


def _countdown(visa: VisaRecord, now: datetime) -> CountdownStatus:
    return compute_status(visa.entry_date, visa.duration_days, now)


def _persistence_error(e: PersistenceFailure) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Save failed: {e}",
    )


def _get_visa_or_404(db: Session, visa_id: str) -> VisaRecord:
    try:
        visa = visa_store.get_visa(db, visa_id)
    except PersistenceFailure as e:
        raise _persistence_error(e) from e
    if not visa:
        raise HTTPException(status_code=404, detail="Visa not found")
    return visa


@router.get("", response_model=VisaListResponse)
def list_visas(
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """All visas with their countdown, most urgent first."""
    try:
        visas = visa_store.get_visas(db)
    except PersistenceFailure as e:
        raise _persistence_error(e) from e

    ranked = sort_by_urgency(
        [(v, _countdown(v, now)) for v in visas],
        status_of=lambda pair: pair[1],
    )
    return VisaListResponse(
        visas=[_status_item(visa, countdown) for visa, countdown in ranked],
        summary=summarize(countdown for _, countdown in ranked),
    )


@router.post("", response_model=VisaCreateResponse, status_code=status.HTTP_201_CREATED)
async def add_visa(
    visa_data: VisaCreate,
    db: Session = Depends(get_db),
    scheduler: NotificationScheduler = Depends(get_notification_scheduler),
    now: datetime = Depends(get_now),
    zone: tzinfo = Depends(get_delivery_zone),
):
    """Add a visa and schedule its reminders."""
    try:
        visa = build_visa_record(visa_data, created_at=now)
    except (InvalidDate, InvalidRange) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    try:
        reminder_settings = settings_store.get_reminder_settings(db)
        result = await reminder_scheduler.create_visa(db, visa, scheduler, reminder_settings, now=now, zone=zone)
    except PersistenceFailure as e:
        raise _persistence_error(e) from e

    return VisaCreateResponse(
        visa=_status_item(result.visa, _countdown(result.visa, now)),
        reminders=[
            ScheduleOutcomeResponse(
                offset_days=o.item.offset_days,
                fire_at=o.item.fire_at,
                status=o.status.value,
                handle=o.handle,
                error=o.error,
            )
            for o in result.outcomes
        ],
        reminders_skipped_reason=result.skipped_reason.value if result.skipped_reason else None,
    )


@router.get("/{visa_id}", response_model=VisaStatusItem)
def get_visa(
    visa_id: str,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    visa = _get_visa_or_404(db, visa_id)
    return _status_item(visa, _countdown(visa, now))


@router.get("/{visa_id}/plan", response_model=list[ReminderPlanEntry])
def preview_reminder_plan(
    visa_id: str,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    zone: tzinfo = Depends(get_delivery_zone),
):
    """Reminders the current settings would schedule for this visa (nothing is scheduled)."""
    visa = _get_visa_or_404(db, visa_id)
    try:
        reminder_settings = settings_store.get_reminder_settings(db)
    except PersistenceFailure as e:
        raise _persistence_error(e) from e

    return [
        ReminderPlanEntry(
            offset_days=item.offset_days,
            fire_at=item.fire_at,
            title=item.title,
            message=item.message,
        )
        for item in plan_reminders(visa, reminder_settings, now, zone)
    ]


@router.delete("/{visa_id}", response_model=VisaDeleteResponse)
async def remove_visa(
    visa_id: str,
    db: Session = Depends(get_db),
    scheduler: NotificationScheduler = Depends(get_notification_scheduler),
):
    """Delete a visa and cancel its reminders."""
    try:
        result = await reminder_scheduler.delete_visa(db, visa_id, scheduler)
    except PersistenceFailure as e:
        raise _persistence_error(e) from e

    if not result.deleted:
        raise HTTPException(status_code=404, detail="Visa not found")

    return VisaDeleteResponse(
        deleted=True,
        cancellations=[
            CancelOutcomeResponse(handle=c.handle, cancelled=c.cancelled, error=c.error)
            for c in result.cancellations
        ],
    )


@router.delete("", response_model=VisaDeleteResponse)
async def remove_all_visas(
    db: Session = Depends(get_db),
    scheduler: NotificationScheduler = Depends(get_notification_scheduler),
):
    """Delete every visa, cancelling all of their reminders first."""
    try:
        results = await reminder_scheduler.delete_all_visas(db, scheduler)
    except PersistenceFailure as e:
        raise _persistence_error(e) from e

    return VisaDeleteResponse(
        deleted=bool(results),
        cancellations=[
            CancelOutcomeResponse(handle=c.handle, cancelled=c.cancelled, error=c.error)
            for result in results
            for c in result.cancellations
        ],
    )
