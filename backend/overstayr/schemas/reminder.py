"""Pending reminder schemas."""
from pydantic import BaseModel


class PendingReminderResponse(BaseModel):
    id: str
    title: str
    body: str
    scheduled_for: str
    created_at: str

    class Config:
        from_attributes = True
