"""Key-value storage model."""
from datetime import datetime

from sqlalchemy import Column, String, Text

from overstayr.database import Base


class KeyValueEntry(Base):
    """A single key -> string value pair (settings flags, serialized visa list)."""

    __tablename__ = "kv_store"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(String(26), default=lambda: datetime.utcnow().isoformat(), onupdate=lambda: datetime.utcnow().isoformat())
