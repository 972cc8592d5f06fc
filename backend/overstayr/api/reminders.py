"""Reminder API endpoints."""
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from overstayr.api.deps import get_db, get_notification_scheduler, get_now
from overstayr.schemas.reminder import PendingReminderResponse
from overstayr.schemas.settings import PermissionResponse
from overstayr.services.notifications import NotificationScheduler, get_pending_reminders

router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.get("", response_model=list[PendingReminderResponse])
def list_pending_reminders(
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Reminders still waiting to fire, soonest first."""
    return get_pending_reminders(db, now)


@router.post("/permission", response_model=PermissionResponse)
async def check_permission(scheduler: NotificationScheduler = Depends(get_notification_scheduler)):
    """Ask for notification permission and report the answer."""
    granted = await scheduler.request_permission() if scheduler.supported else False
    return PermissionResponse(supported=scheduler.supported, granted=granted)
