"""SQLAlchemy models package."""
from overstayr.models.kv import KeyValueEntry
from overstayr.models.reminder import ScheduledReminder

__all__ = [
    "KeyValueEntry",
    "ScheduledReminder",
]
