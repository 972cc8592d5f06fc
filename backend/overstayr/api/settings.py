"""Settings API endpoints: reminder configuration and onboarding."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from overstayr.api.deps import get_db, get_notification_scheduler
from overstayr.exceptions import InvalidRange, PersistenceFailure
from overstayr.schemas.settings import (
    OnboardingResponse,
    ReminderEnabledResponse,
    ReminderEnabledUpdate,
    ReminderOffsetsUpdate,
    ReminderSettings,
    ReminderTimeUpdate,
)
from overstayr.services import settings_store
from overstayr.services.notifications import NotificationScheduler
from overstayr.services.visa_validation import parse_time_component

router = APIRouter(prefix="/settings", tags=["settings"])


def _persistence_error(e: PersistenceFailure) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Save failed: {e}",
    )


@router.get("/reminders", response_model=ReminderSettings)
def get_reminder_settings(db: Session = Depends(get_db)):
    try:
        return settings_store.get_reminder_settings(db)
    except PersistenceFailure as e:
        raise _persistence_error(e) from e


@router.put("/reminders/enabled", response_model=ReminderEnabledResponse)
async def update_reminders_enabled(
    update: ReminderEnabledUpdate,
    db: Session = Depends(get_db),
    scheduler: NotificationScheduler = Depends(get_notification_scheduler),
):
    """Turn reminders on or off for visas added from now on.

    Turning them on also asks for notification permission. Existing visas
    keep the reminders they were created with.
    """
    try:
        settings_store.set_reminder_enabled(db, update.enabled)
        reminder_settings = settings_store.get_reminder_settings(db)
    except PersistenceFailure as e:
        raise _persistence_error(e) from e

    permission_granted = None
    if update.enabled and scheduler.supported:
        permission_granted = await scheduler.request_permission()

    return ReminderEnabledResponse(settings=reminder_settings, permission_granted=permission_granted)


@router.put("/reminders/time", response_model=ReminderSettings)
def update_reminder_time(update: ReminderTimeUpdate, db: Session = Depends(get_db)):
    """Set the local time of day reminders fire at."""
    try:
        hour = parse_time_component(update.hour, "hour", 23)
        minute = parse_time_component(update.minute, "minute", 59)
    except InvalidRange as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    try:
        settings_store.set_reminder_time(db, hour, minute)
        return settings_store.get_reminder_settings(db)
    except PersistenceFailure as e:
        raise _persistence_error(e) from e


@router.put("/reminders/offsets", response_model=ReminderSettings)
def update_reminder_offsets(update: ReminderOffsetsUpdate, db: Session = Depends(get_db)):
    """Set how many days before expiry to remind (invalid entries are dropped)."""
    try:
        settings_store.set_reminder_offsets(db, update.offsets_days)
        return settings_store.get_reminder_settings(db)
    except PersistenceFailure as e:
        raise _persistence_error(e) from e


@router.post("/reminders/reset", response_model=ReminderSettings)
def reset_reminder_settings(db: Session = Depends(get_db)):
    try:
        settings_store.reset_all_settings(db)
        return settings_store.get_reminder_settings(db)
    except PersistenceFailure as e:
        raise _persistence_error(e) from e


@router.get("/onboarding", response_model=OnboardingResponse)
def get_onboarding(db: Session = Depends(get_db)):
    try:
        return OnboardingResponse(done=settings_store.is_onboarding_done(db))
    except PersistenceFailure as e:
        raise _persistence_error(e) from e


@router.post("/onboarding", response_model=OnboardingResponse)
def finish_onboarding(db: Session = Depends(get_db)):
    try:
        settings_store.set_onboarding_done(db)
    except PersistenceFailure as e:
        raise _persistence_error(e) from e
    return OnboardingResponse(done=True)


@router.delete("/onboarding", response_model=OnboardingResponse)
def reset_onboarding(db: Session = Depends(get_db)):
    try:
        settings_store.clear_onboarding_done(db)
    except PersistenceFailure as e:
        raise _persistence_error(e) from e
    return OnboardingResponse(done=False)
