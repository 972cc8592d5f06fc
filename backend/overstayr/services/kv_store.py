"""Key-value storage on top of the kv_store table.

Values are strings; callers own their serialization. Every read-modify-write
of a key must hold `key_lock(key)` so that concurrent requests cannot lose
each other's updates.
"""
import logging
import threading
from collections import defaultdict
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from overstayr.exceptions import PersistenceFailure
from overstayr.models.kv import KeyValueEntry

logger = logging.getLogger(__name__)

_locks: defaultdict[str, threading.Lock] = defaultdict(threading.Lock)
_locks_guard = threading.Lock()


@contextmanager
def key_lock(key: str):
    """Serialize read-modify-write cycles on a single key."""
    with _locks_guard:
        lock = _locks[key]
    with lock:
        yield


def get_item(db: Session, key: str) -> str | None:
    try:
        entry = db.get(KeyValueEntry, key)
    except SQLAlchemyError as e:
        logger.error(f"Failed to read {key!r}: {e}")
        raise PersistenceFailure(f"Could not read {key!r}") from e
    return entry.value if entry else None


def set_item(db: Session, key: str, value: str) -> None:
    try:
        entry = db.get(KeyValueEntry, key)
        if entry:
            entry.value = value
        else:
            db.add(KeyValueEntry(key=key, value=value))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to write {key!r}: {e}")
        raise PersistenceFailure(f"Could not write {key!r}") from e


def remove_item(db: Session, key: str) -> None:
    try:
        entry = db.get(KeyValueEntry, key)
        if entry:
            db.delete(entry)
            db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to remove {key!r}: {e}")
        raise PersistenceFailure(f"Could not remove {key!r}") from e
