"""Shared API dependencies."""
from datetime import datetime, tzinfo

from fastapi import Depends
from sqlalchemy.orm import Session

from overstayr.config import get_settings
from overstayr.database import get_db
from overstayr.services.calendar_math import local_timezone, utc_now
from overstayr.services.notifications import (
    DatabaseNotificationScheduler,
    InMemoryNotificationScheduler,
    NotificationScheduler,
)

__all__ = ["get_db", "get_delivery_zone", "get_notification_scheduler", "get_now"]

_memory_scheduler: InMemoryNotificationScheduler | None = None


def get_now() -> datetime:
    """Current instant; overridden in tests to pin the clock."""
    return utc_now()


def get_delivery_zone() -> tzinfo:
    """Zone reminders are delivered in: configured TIMEZONE or the device's own."""
    return local_timezone(get_settings().timezone)


def get_notification_scheduler(db: Session = Depends(get_db)) -> NotificationScheduler:
    """Notification backend selected by NOTIFICATION_BACKEND."""
    global _memory_scheduler
    settings = get_settings()

    if settings.notification_backend == "memory":
        if _memory_scheduler is None:
            _memory_scheduler = InMemoryNotificationScheduler(
                supported=settings.notifications_supported,
                permission_granted=settings.notifications_permission_granted,
            )
        return _memory_scheduler

    return DatabaseNotificationScheduler(
        db,
        supported=settings.notifications_supported,
        permission_granted=settings.notifications_permission_granted,
    )
