# tests/api/test_settings.py
import json

from fastapi.testclient import TestClient

from school_attendance import main


def test_settings_listed_as_key_value(client, student_headers):
    settings = client.get("/api/settings", headers=student_headers).json()
    periods = next(s for s in settings if s["key"] == "attendance_periods")
    assert json.loads(periods["value"])[0] == {"id": 1, "name": "第1节"}


def test_admin_updates_settings(client, admin_headers):
    payload = {"settings": {
        "attendance_auto_mark_time": "16:30",
        "dashboard_stats_config": {"show_leave_types": True},
    }}
    response = client.post("/api/settings", json=payload, headers=admin_headers)
    assert response.status_code == 200
    values = {s["key"]: s["value"] for s in response.json()}
    assert values["attendance_auto_mark_time"] == "16:30"
    assert json.loads(values["dashboard_stats_config"]) == {"show_leave_types": True}


def test_teacher_cannot_update_settings(client, teacher_headers):
    response = client.post("/api/settings", json={"settings": {"x": "y"}}, headers=teacher_headers)
    assert response.status_code == 403


def test_class_periods(client, teacher_headers):
    periods = client.get("/api/class-periods", headers=teacher_headers).json()
    assert len(periods) == 8
    assert periods[7] == {"id": 8, "name": "第8节"}


def test_time_slot_crud(client, admin_headers, teacher_headers):
    created = client.post("/api/time-slots", json={"name": "晚自习", "period_ids": [9, 10], "sort_order": 3},
                          headers=admin_headers)
    assert created.status_code == 201
    slot_id = created.json()["id"]

    names = [s["name"] for s in client.get("/api/time-slots", headers=teacher_headers).json()]
    assert names == ["上午", "下午", "晚自习"]

    updated = client.put(f"/api/time-slots/{slot_id}", json={"name": "晚修", "period_ids": [9]},
                         headers=admin_headers)
    assert updated.json()["name"] == "晚修"
    assert client.delete(f"/api/time-slots/{slot_id}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/time-slots/{slot_id}", headers=admin_headers).status_code == 404


def test_cleanup_period_strips_slot_references(client, admin_headers, seed):
    response = client.post("/api/settings/cleanup-period", json={"period_id": 4}, headers=admin_headers)
    assert response.json()["updated"] == 1
    slots = {s["name"]: s["period_ids"] for s in client.get("/api/time-slots", headers=admin_headers).json()}
    assert slots["上午"] == [1, 2, 3]
    assert slots["下午"] == [5, 6, 7, 8]


def test_only_one_current_semester(client, admin_headers):
    created = client.post("/api/semesters", json={
        "name": "2026春季学期", "start_date": "2026-02-23", "is_current": True,
    }, headers=admin_headers)
    assert created.status_code == 201
    semesters = client.get("/api/semesters", headers=admin_headers).json()
    assert [s["name"] for s in semesters if s["is_current"]] == ["2026春季学期"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_startup_configures_logging(client, monkeypatch):
    calls = []
    monkeypatch.setattr(main, "setup_logging", lambda: calls.append(True))
    with TestClient(main.app) as started:
        assert started.get("/health").status_code == 200
    assert calls == [True]


def test_unknown_route_uses_error_shape(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}
