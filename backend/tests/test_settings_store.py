import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")

from overstayr.database import Base
from overstayr.exceptions import PersistenceFailure
from overstayr.schemas.settings import ReminderSettings
from overstayr.services import kv_store, settings_store, visa_store
from overstayr.services.settings_store import (
    KEY_NOTIF_ENABLED,
    KEY_REMINDER_HOUR,
    KEY_REMINDER_MIN,
    KEY_REMINDER_OFFSETS,
)


def _session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)()


def test_missing_keys_fall_back_to_defaults():
    db = _session()

    settings = settings_store.get_reminder_settings(db)

    assert settings == ReminderSettings(enabled=True, hour=9, minute=0, offsets_days=(14, 7, 3, 0))


def test_stored_values_are_read_back():
    db = _session()
    settings_store.set_reminder_enabled(db, False)
    settings_store.set_reminder_time(db, 18, 30)
    settings_store.set_reminder_offsets(db, [30, 1])

    settings = settings_store.get_reminder_settings(db)

    assert settings.enabled is False
    assert (settings.hour, settings.minute) == (18, 30)
    assert settings.offsets_days == (30, 1)


@pytest.mark.parametrize(
    ("hour", "minute", "expected"),
    [
        ("abc", "15", (9, 15)),
        ("25", "0", (9, 0)),
        ("-1", "61", (9, 0)),
        ("NaN", "Infinity", (9, 0)),
        ("7.9", "5", (7, 5)),
    ],
)
def test_bad_stored_time_falls_back_to_default(hour, minute, expected):
    db = _session()
    kv_store.set_item(db, KEY_REMINDER_HOUR, hour)
    kv_store.set_item(db, KEY_REMINDER_MIN, minute)

    settings = settings_store.get_reminder_settings(db)

    assert (settings.hour, settings.minute) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("not json", (14, 7, 3, 0)),
        ('{"a": 1}', (14, 7, 3, 0)),
        ('[7, "x"]', (14, 7, 3, 0)),
        ("[7, 1.5]", (14, 7, 3, 0)),
        ("[7, true]", (14, 7, 3, 0)),
        ("[400, 7, -1, 0]", (7, 0)),
        ("[7, 7, 3]", (7, 7, 3)),
        ("[]", ()),
        ("[" + "1" * 400 + "]", ()),
        ("[7, " + "9" * 400 + ", 0]", (7, 0)),
    ],
)
def test_stored_offsets_are_sanitized(raw, expected):
    db = _session()
    kv_store.set_item(db, KEY_REMINDER_OFFSETS, raw)

    assert settings_store.get_reminder_settings(db).offsets_days == expected


def test_enabled_flag_only_true_for_one():
    db = _session()
    kv_store.set_item(db, KEY_NOTIF_ENABLED, "yes")

    assert settings_store.get_reminder_settings(db).enabled is False


def test_set_reminder_time_clamps():
    db = _session()
    settings_store.set_reminder_time(db, 30, -5)

    settings = settings_store.get_reminder_settings(db)

    assert (settings.hour, settings.minute) == (23, 0)
    assert settings_store.clamp_int(float("nan"), 0, 23, 9) == 9
    assert settings_store.clamp_int(12.7, 0, 23, 9) == 12


def test_set_reminder_offsets_drops_invalid_entries():
    db = _session()

    clean = settings_store.set_reminder_offsets(db, [14, 366, -1, 2.5, 7.0, 0, 10**400])

    assert clean == [14, 7, 0]
    assert kv_store.get_item(db, KEY_REMINDER_OFFSETS) == "[14, 7, 0]"


def test_reset_all_settings_keeps_onboarding_flag():
    db = _session()
    settings_store.set_onboarding_done(db)
    settings_store.set_reminder_time(db, 6, 15)
    settings_store.set_reminder_enabled(db, False)

    settings_store.reset_all_settings(db)

    assert settings_store.get_reminder_settings(db) == ReminderSettings()
    assert settings_store.is_onboarding_done(db)


def test_onboarding_flag():
    db = _session()
    assert not settings_store.is_onboarding_done(db)

    settings_store.set_onboarding_done(db)
    assert settings_store.is_onboarding_done(db)

    settings_store.clear_onboarding_done(db)
    assert not settings_store.is_onboarding_done(db)


def test_corrupt_visa_list_is_a_persistence_failure():
    db = _session()
    kv_store.set_item(db, visa_store.KEY_VISAS, "[{\"id\": 1}]")

    with pytest.raises(PersistenceFailure):
        visa_store.get_visas(db)


def test_storage_errors_surface_as_persistence_failure(monkeypatch):
    db = _session()

    def broken_commit():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "commit", broken_commit)

    with pytest.raises(PersistenceFailure):
        settings_store.set_reminder_enabled(db, True)
