"""Visa repository: every record lives in one JSON list under the `visas` key."""
import json
import logging

from pydantic import ValidationError
from sqlalchemy.orm import Session

from overstayr.exceptions import PersistenceFailure
from overstayr.schemas.visa import VisaRecord
from overstayr.services import kv_store

logger = logging.getLogger(__name__)

KEY_VISAS = "visas"


def get_visas(db: Session) -> list[VisaRecord]:
    """Read the full list of stored visas, in insertion order."""
    raw = kv_store.get_item(db, KEY_VISAS)
    if not raw:
        return []

    try:
        data = json.loads(raw)
        return [VisaRecord.model_validate(item) for item in data]
    except (ValueError, TypeError, ValidationError) as e:
        logger.error(f"Stored visa list is corrupt: {e}")
        raise PersistenceFailure("Stored visa list could not be read") from e


def get_visa(db: Session, visa_id: str) -> VisaRecord | None:
    for visa in get_visas(db):
        if visa.id == visa_id:
            return visa
    return None


def save_visa(db: Session, visa: VisaRecord) -> None:
    """Append a visa and rewrite the stored list."""
    with kv_store.key_lock(KEY_VISAS):
        visas = get_visas(db)
        visas.append(visa)
        _write_visas(db, visas)


def delete_visa(db: Session, visa_id: str) -> bool:
    """Remove a visa by id. Returns False when nothing matched."""
    with kv_store.key_lock(KEY_VISAS):
        visas = get_visas(db)
        remaining = [v for v in visas if v.id != visa_id]
        if len(remaining) == len(visas):
            return False
        _write_visas(db, remaining)
        return True


def clear_visas(db: Session) -> None:
    with kv_store.key_lock(KEY_VISAS):
        kv_store.remove_item(db, KEY_VISAS)


def _write_visas(db: Session, visas: list[VisaRecord]) -> None:
    payload = json.dumps([v.model_dump(mode="json", by_alias=True) for v in visas])
    kv_store.set_item(db, KEY_VISAS, payload)
