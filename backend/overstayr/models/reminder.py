"""Scheduled reminder model for the database-backed notification scheduler."""
import uuid
from datetime import datetime

from sqlalchemy import Column, Index, String, Text

from overstayr.database import Base


class ScheduledReminder(Base):
    """A local notification waiting to fire at `scheduled_for`."""

    __tablename__ = "scheduled_reminders"
    __table_args__ = (
        Index("ix_scheduled_reminders_pending", "cancelled_at", "scheduled_for"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Content
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)

    # Scheduling
    scheduled_for = Column(String(32), nullable=False)  # ISO-8601 with UTC offset
    cancelled_at = Column(String(32))

    # Timestamps
    created_at = Column(String(26), default=lambda: datetime.utcnow().isoformat())
