import os
from datetime import datetime

from dateutil import tz
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")

from overstayr.api import deps
from overstayr.api.reminders import router as reminders_router
from overstayr.api.settings import router as settings_router
from overstayr.api.visas import router as visas_router
from overstayr.database import Base
from overstayr.services.notifications import InMemoryNotificationScheduler

HCMC = tz.gettz("Asia/Ho_Chi_Minh")


def _build_test_client(now: datetime, scheduler=None):
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    app = FastAPI()
    app.include_router(visas_router, prefix="/api")
    app.include_router(settings_router, prefix="/api")
    app.include_router(reminders_router, prefix="/api")

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_now] = lambda: now
    app.dependency_overrides[deps.get_delivery_zone] = lambda: HCMC
    if scheduler is not None:
        app.dependency_overrides[deps.get_notification_scheduler] = lambda: scheduler
    return TestClient(app)


def _add_visa(client: TestClient, **overrides):
    payload = {"country_code": "vn", "label": "Tourist", "entry_date": "2026-01-01", "duration_days": 30}
    payload.update(overrides)
    return client.post("/api/visas", json=payload)


def test_add_visa_schedules_reminders():
    scheduler = InMemoryNotificationScheduler()
    client = _build_test_client(datetime(2026, 1, 1, 8, 0, tzinfo=HCMC), scheduler)

    response = _add_visa(client)

    assert response.status_code == 201
    data = response.json()
    assert data["visa"]["country_code"] == "VN"
    assert data["visa"]["expiry_date"] == "2026-01-31"
    assert data["visa"]["days_remaining"] == 30
    assert data["visa"]["status"] == "safe"
    assert data["visa"]["reminder_count"] == 4
    assert [r["offset_days"] for r in data["reminders"]] == [14, 7, 3, 0]
    assert {r["status"] for r in data["reminders"]} == {"scheduled"}
    assert data["reminders_skipped_reason"] is None
    assert len(scheduler.scheduled) == 4


def test_add_visa_rejects_invalid_input_without_side_effects():
    scheduler = InMemoryNotificationScheduler()
    client = _build_test_client(datetime(2026, 1, 1, tzinfo=HCMC), scheduler)

    bad_date = _add_visa(client, entry_date="2023-02-30")
    bad_country = _add_visa(client, country_code="VNM")
    bad_duration = _add_visa(client, duration_days=366)
    zero_duration = _add_visa(client, duration_days="0")
    blank_label = _add_visa(client, label="   ")

    for response in (bad_date, bad_country, bad_duration, zero_duration, blank_label):
        assert response.status_code == 400
    assert "YYYY-MM-DD" in bad_date.json()["detail"] or "2023-02-30" in bad_date.json()["detail"]
    assert scheduler.scheduled == []
    assert client.get("/api/visas").json()["visas"] == []


def test_list_visas_sorted_by_urgency():
    client = _build_test_client(datetime(2026, 1, 26, 12, 0, tzinfo=HCMC), InMemoryNotificationScheduler())
    _add_visa(client, country_code="JP", entry_date="2026-01-01", duration_days=90)  # safe
    _add_visa(client, country_code="VN", entry_date="2026-01-01", duration_days=30)  # 5 days, urgent
    _add_visa(client, country_code="TH", entry_date="2025-12-01", duration_days=30)  # expired
    _add_visa(client, country_code="KH", entry_date="2026-01-01", duration_days=30)  # ties with VN

    data = client.get("/api/visas").json()

    assert [v["country_code"] for v in data["visas"]] == ["TH", "VN", "KH", "JP"]
    assert [v["status"] for v in data["visas"]] == ["expired", "urgent", "urgent", "safe"]
    assert data["visas"][1]["days_remaining"] == 5
    assert data["summary"] == {"total": 4, "expired": 1, "urgent": 2, "warning": 0, "safe": 1}


def test_delete_visa_cancels_its_reminders():
    scheduler = InMemoryNotificationScheduler()
    client = _build_test_client(datetime(2026, 1, 1, tzinfo=HCMC), scheduler)
    client.put("/api/settings/reminders/offsets", json={"offsets_days": [7, 3, 0]})
    visa_id = _add_visa(client).json()["visa"]["id"]
    scheduler.fail_cancel = True

    response = client.delete(f"/api/visas/{visa_id}")

    assert response.status_code == 200
    assert [c["cancelled"] for c in response.json()["cancellations"]] == [False, False, False]
    assert len(scheduler.cancelled) == 3
    assert client.get(f"/api/visas/{visa_id}").status_code == 404
    assert client.delete(f"/api/visas/{visa_id}").status_code == 404


def test_disabled_reminders_still_save_visa():
    scheduler = InMemoryNotificationScheduler()
    client = _build_test_client(datetime(2026, 1, 1, tzinfo=HCMC), scheduler)
    client.put("/api/settings/reminders/enabled", json={"enabled": False})

    data = _add_visa(client).json()

    assert data["reminders"] == []
    assert data["reminders_skipped_reason"] == "disabled"
    assert data["visa"]["reminder_count"] == 0


def test_preview_plan_uses_current_settings():
    client = _build_test_client(datetime(2026, 1, 1, tzinfo=HCMC), InMemoryNotificationScheduler())
    visa_id = _add_visa(client).json()["visa"]["id"]
    client.put("/api/settings/reminders/time", json={"hour": 20, "minute": 15})
    client.put("/api/settings/reminders/offsets", json={"offsets_days": [1]})

    plan = client.get(f"/api/visas/{visa_id}/plan").json()

    assert len(plan) == 1
    assert plan[0]["message"] == "Your VN visa expires in 1 day(s)."
    assert datetime.fromisoformat(plan[0]["fire_at"]) == datetime(2026, 1, 30, 20, 15, tzinfo=HCMC)


def test_reminder_time_validation():
    client = _build_test_client(datetime(2026, 1, 1, tzinfo=HCMC), InMemoryNotificationScheduler())

    assert client.put("/api/settings/reminders/time", json={"hour": 24, "minute": 0}).status_code == 400
    assert client.put("/api/settings/reminders/time", json={"hour": "9", "minute": "x"}).status_code == 400

    response = client.put("/api/settings/reminders/time", json={"hour": "7", "minute": 45})
    assert response.status_code == 200
    assert (response.json()["hour"], response.json()["minute"]) == (7, 45)


def test_enabling_reminders_reports_permission():
    scheduler = InMemoryNotificationScheduler(permission_granted=False)
    client = _build_test_client(datetime(2026, 1, 1, tzinfo=HCMC), scheduler)

    response = client.put("/api/settings/reminders/enabled", json={"enabled": True})

    assert response.json()["permission_granted"] is False
    assert response.json()["settings"]["enabled"] is True


def test_onboarding_endpoints():
    client = _build_test_client(datetime(2026, 1, 1, tzinfo=HCMC), InMemoryNotificationScheduler())

    assert client.get("/api/settings/onboarding").json() == {"done": False}
    assert client.post("/api/settings/onboarding").json() == {"done": True}
    assert client.get("/api/settings/onboarding").json() == {"done": True}
    assert client.delete("/api/settings/onboarding").json() == {"done": False}


def test_database_scheduler_tracks_pending_reminders():
    # Real clock here: the database scheduler refuses instants in the past
    now = datetime.now(HCMC)
    client = _build_test_client(now)
    entry_date = now.date().isoformat()

    created = _add_visa(client, entry_date=entry_date, duration_days=60).json()
    pending = client.get("/api/reminders").json()

    assert created["visa"]["reminder_count"] == 4
    assert len(pending) == 4
    assert pending[-1]["body"] == "Your VN visa expires today."

    client.delete("/api/visas")

    assert client.get("/api/reminders").json() == []
    assert client.get("/api/visas").json()["visas"] == []


def test_add_visa_rejects_entry_dates_at_the_calendar_edges():
    scheduler = InMemoryNotificationScheduler()
    client = _build_test_client(datetime(2026, 1, 1, tzinfo=HCMC), scheduler)
    client.put("/api/settings/reminders/enabled", json={"enabled": False})

    late = _add_visa(client, entry_date="9999-12-31", duration_days=30)
    early = _add_visa(client, entry_date="0001-01-01", duration_days=30)

    assert late.status_code == 400
    assert early.status_code == 400
    assert client.get("/api/visas").json()["visas"] == []
