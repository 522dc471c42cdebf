# tests/api/test_attendance.py
from datetime import datetime

from school_attendance.db.models.attendance import AttendanceRecord
from school_attendance.db.models.leave_request import LeaveRequest

DAY = "2025-10-15"


def _bulk(client, headers, records, period_id=None, day=DAY):
    return client.post(
        "/api/attendance/bulk",
        json={"date": day, "period_id": period_id, "records": records},
        headers=headers,
    )


def _student_attendance(overview, student_id):
    for school_class in overview:
        for student in school_class["students"]:
            if student["id"] == student_id:
                return student["attendance"]
    return None


def test_bulk_marks_whole_day(client, teacher_headers, seed):
    records = [{"student_id": seed["alice"], "status": "present"}, {"student_id": seed["bob"], "status": "present"}]
    response = _bulk(client, teacher_headers, records)
    assert response.status_code == 200
    assert response.json()["count"] == 2

    overview = client.get("/api/attendance/overview", params={"date": DAY}, headers=teacher_headers).json()
    assert [c["id"] for c in overview] == [seed["class_a"]]
    alice = _student_attendance(overview, seed["alice"])
    assert len(alice) == 1
    assert alice[0]["period_id"] is None
    assert alice[0]["status"] == "present"


def test_bulk_upserts_same_period(client, teacher_headers, seed):
    _bulk(client, teacher_headers, [{"student_id": seed["alice"], "status": "present"}], period_id=3)
    _bulk(client, teacher_headers, [{"student_id": seed["alice"], "status": "late",
                                     "leave_type_id": seed["leave_types"]["late"],
                                     "details": {"time": "08:10"}}], period_id=3)

    overview = client.get("/api/attendance/overview", params={"date": DAY}, headers=teacher_headers).json()
    alice = _student_attendance(overview, seed["alice"])
    assert len(alice) == 1
    assert alice[0]["status"] == "late"
    assert alice[0]["details"] == {"time": "08:10"}


def test_option_records_are_kept_apart(client, teacher_headers, seed):
    sick = seed["leave_types"]["sick_leave"]
    for option in ("morning_half", "afternoon_half", "morning_half"):
        _bulk(client, teacher_headers, [{"student_id": seed["alice"], "status": "leave",
                                         "leave_type_id": sick, "details": {"option": option}}])

    overview = client.get("/api/attendance/overview", params={"date": DAY}, headers=teacher_headers).json()
    options = sorted(r["details"]["option"] for r in _student_attendance(overview, seed["alice"]))
    assert options == ["afternoon_half", "morning_half"]


def test_full_day_sick_leave_replaces_other_records(client, teacher_headers, seed):
    _bulk(client, teacher_headers, [{"student_id": seed["alice"], "status": "present"}], period_id=1)
    _bulk(client, teacher_headers, [{"student_id": seed["alice"], "status": "present"}], period_id=2)
    _bulk(client, teacher_headers, [{"student_id": seed["alice"], "status": "leave",
                                     "leave_type_id": seed["leave_types"]["sick_leave"],
                                     "details": {"option": "full_day"}}])

    overview = client.get("/api/attendance/overview", params={"date": DAY}, headers=teacher_headers).json()
    alice = _student_attendance(overview, seed["alice"])
    assert len(alice) == 1
    assert alice[0]["details"]["option"] == "full_day"


def test_bulk_rejects_foreign_student(client, teacher_headers, seed):
    response = _bulk(client, teacher_headers, [{"student_id": seed["carol"], "status": "present"}])
    assert response.status_code == 403
    assert response.json()["error"] == "无权操作该班级"


def test_bulk_rejects_unknown_status(client, teacher_headers, seed):
    response = _bulk(client, teacher_headers, [{"student_id": seed["alice"], "status": "sleeping"}])
    assert response.status_code == 422
    assert "error" in response.json()


def test_delete_record_by_period(client, teacher_headers, seed):
    _bulk(client, teacher_headers, [{"student_id": seed["alice"], "status": "absent",
                                     "details": {"periods": [2, 3]}}], period_id=2)
    response = client.delete(
        "/api/attendance/records",
        params={"student_id": seed["alice"], "date": DAY, "period_id": 2},
        headers=teacher_headers,
    )
    assert response.status_code == 200
    assert response.json()["deleted"] == 1

    overview = client.get("/api/attendance/overview", params={"date": DAY}, headers=teacher_headers).json()
    assert _student_attendance(overview, seed["alice"]) == []


def test_delete_record_by_option(client, teacher_headers, seed):
    sick = seed["leave_types"]["sick_leave"]
    for option in ("morning_half", "afternoon_half"):
        _bulk(client, teacher_headers, [{"student_id": seed["alice"], "status": "leave",
                                         "leave_type_id": sick, "details": {"option": option}}])
    response = client.delete(
        "/api/attendance/records",
        params={"student_id": seed["alice"], "date": DAY, "option": "morning_half"},
        headers=teacher_headers,
    )
    assert response.json()["deleted"] == 1


def test_delete_record_by_status_keeps_whole_day_leave(client, teacher_headers, seed):
    sick = seed["leave_types"]["sick_leave"]
    _bulk(client, teacher_headers, [{"student_id": seed["alice"], "status": "absent"}])
    _bulk(client, teacher_headers, [{"student_id": seed["alice"], "status": "leave",
                                     "leave_type_id": sick, "details": {"option": "morning_half"}}])
    response = client.delete(
        "/api/attendance/records",
        params={"student_id": seed["alice"], "date": DAY, "status": "absent"},
        headers=teacher_headers,
    )
    assert response.json()["deleted"] == 1

    overview = client.get("/api/attendance/overview", params={"date": DAY}, headers=teacher_headers).json()
    remaining = _student_attendance(overview, seed["alice"])
    assert [(r["status"], r["leave_type_id"]) for r in remaining] == [("leave", sick)]


def test_day_status(client, teacher_headers, student_headers, seed):
    empty = client.get("/api/attendance/day-status", params={"student_id": seed["alice"], "date": DAY},
                       headers=student_headers).json()
    assert empty["type"] == "no_record"

    _bulk(client, teacher_headers, [{"student_id": seed["alice"], "status": "late"}], period_id=1)
    status = client.get("/api/attendance/day-status", params={"student_id": seed["alice"], "date": DAY},
                        headers=student_headers).json()
    assert status["type"] == "periods"
    assert status["default_status"] == "present"
    assert [r["period_id"] for r in status["records"]] == [1]


def test_student_cannot_read_classmate(client, student_headers, seed):
    response = client.get("/api/attendance/day-status", params={"student_id": seed["bob"], "date": DAY},
                          headers=student_headers)
    assert response.status_code == 403


def test_statistics_rate(client, teacher_headers, seed):
    for period_id, status in ((1, "present"), (2, "late"), (3, "absent"), (4, "present")):
        _bulk(client, teacher_headers, [{"student_id": seed["alice"], "status": status}], period_id=period_id)
    stats = client.get(
        "/api/attendance/statistics",
        params={"student_id": seed["alice"], "start": DAY, "end": DAY},
        headers=teacher_headers,
    ).json()
    assert stats["total_periods"] == 4
    assert stats["present"] == 2
    assert stats["late"] == 1
    assert stats["absent"] == 1
    assert stats["attendance_rate"] == 75.0


def test_dashboard_counts_distinct_students(client, teacher_headers, seed):
    today = datetime.now().date().isoformat()
    _bulk(client, teacher_headers, [{"student_id": seed["alice"], "status": "absent"}], period_id=1, day=today)
    _bulk(client, teacher_headers, [{"student_id": seed["alice"], "status": "absent"}], period_id=2, day=today)
    _bulk(client, teacher_headers, [{"student_id": seed["bob"], "status": "leave",
                                     "leave_type_id": seed["leave_types"]["official"]}], day=today)

    stats = client.get("/api/attendance/stats", params={"scope": "today"}, headers=teacher_headers).json()
    assert stats["total_students"] == 2
    assert stats["status_counts"]["absent"] == 1
    assert stats["status_counts"]["leave"] == 1
    official = next(lt for lt in stats["leave_types"] if lt["slug"] == "official")
    assert official["count"] == 1

    details = client.get("/api/attendance/details", params={"scope": "today", "status": "absent"},
                         headers=teacher_headers).json()
    assert [d["student_id"] for d in details] == [seed["alice"]]
    assert len(details[0]["records"]) == 2


def test_dashboard_rejects_unknown_scope(client, teacher_headers):
    response = client.get("/api/attendance/stats", params={"scope": "decade"}, headers=teacher_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Unknown scope: decade"


def test_auto_mark_for_explicit_date(client, admin_headers, seed, db):
    _bulk(client, admin_headers, [{"student_id": seed["alice"], "status": "absent"}])
    db.add(LeaveRequest(
        student_id=seed["bob"], class_id=seed["class_a"], leave_type_id=seed["leave_types"]["official"],
        start_date=datetime(2025, 10, 14).date(), end_date=datetime(2025, 10, 16).date(), status="approved",
    ))
    db.commit()

    response = client.post("/api/attendance/auto-mark", json={"date": DAY}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"ran": True, "date": DAY, "present": 1, "leave": 1}

    again = client.post("/api/attendance/auto-mark", json={"date": DAY}, headers=admin_headers).json()
    assert again["present"] == 0 and again["leave"] == 0

    auto_rows = db.query(AttendanceRecord).filter(AttendanceRecord.source_type == "auto").all()
    assert {(r.student_id, r.status) for r in auto_rows} == {(seed["bob"], "leave"), (seed["carol"], "present")}


def test_auto_mark_requires_configured_time(client, admin_headers):
    response = client.post("/api/attendance/auto-mark", json={}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Auto-mark time not configured"


def test_auto_mark_is_admin_only(client, teacher_headers):
    response = client.post("/api/attendance/auto-mark", json={"date": DAY}, headers=teacher_headers)
    assert response.status_code == 403
