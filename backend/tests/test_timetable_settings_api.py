from datetime import datetime, timedelta, timezone

from attendo.models.user import UserRole
from attendo.services.preflight import run_preflight


def test_settings_default_when_never_saved(client, auth_headers):
    response = client.get("/api/timetable-settings", headers=auth_headers())

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == 1
    assert body["generation_deadline_enabled"] is False
    assert body["timetable_generation_deadline"] is None
    assert body["default_sessions_per_week"] == 2
    assert body["default_min_classes_per_day"] == 1


def test_settings_update_is_partial(client, auth_headers):
    headers = auth_headers()

    first = client.put("/api/timetable-settings", json={"default_sessions_per_week": 3}, headers=headers)
    assert first.status_code == 200
    second = client.put("/api/timetable-settings", json={"enforce_room_department_affinity": True}, headers=headers)
    assert second.status_code == 200

    body = client.get("/api/timetable-settings", headers=headers).json()
    assert body["default_sessions_per_week"] == 3
    assert body["enforce_room_department_affinity"] is True


def test_enabling_deadline_requires_a_date(client, auth_headers):
    response = client.put(
        "/api/timetable-settings",
        json={"generation_deadline_enabled": True, "timetable_generation_deadline": None},
        headers=auth_headers(),
    )

    assert response.status_code == 422


def test_settings_require_timetable_admin(client, auth_headers):
    headers = auth_headers(UserRole.trainer)

    assert client.get("/api/timetable-settings", headers=headers).status_code == 403
    assert client.put("/api/timetable-settings", json={}, headers=headers).status_code == 403


def test_deadline_with_offset_is_stored_as_utc_instant(client, auth_headers):
    headers = auth_headers()

    response = client.put(
        "/api/timetable-settings",
        json={"generation_deadline_enabled": True, "timetable_generation_deadline": "2030-01-01T02:00:00+05:30"},
        headers=headers,
    )
    assert response.status_code == 200

    body = client.get("/api/timetable-settings", headers=headers).json()
    stored = datetime.fromisoformat(body["timetable_generation_deadline"].replace("Z", "+00:00"))
    assert stored == datetime(2030, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=5, minutes=30)))
    assert stored.utcoffset() == timedelta(0)
    assert (stored.year, stored.month, stored.day, stored.hour, stored.minute) == (2029, 12, 31, 20, 30)


def test_offset_deadline_blocks_until_its_real_instant(db_session, seed_school, client, auth_headers):
    seeded = seed_school()
    headers = auth_headers()
    client.put(
        "/api/timetable-settings",
        json={"generation_deadline_enabled": True, "timetable_generation_deadline": "2030-01-01T02:00:00+05:30"},
        headers=headers,
    )

    report = run_preflight(db_session, seeded.term_id, now=datetime(2029, 12, 31, 20, 31, tzinfo=timezone.utc))
    assert not report.generation_deadline.blocked

    report = run_preflight(db_session, seeded.term_id, now=datetime(2029, 12, 31, 20, 29, tzinfo=timezone.utc))
    assert report.generation_deadline.blocked
    assert "December 31, 2029" in report.generation_deadline.message
