# tests/client/test_client_settings.py
import httpx
import pytest

from school_attendance.client.api import ApiError, AttendanceClient, extract_error_message, parse_settings
from school_attendance.core.periods import Period, TimeSlot


@pytest.fixture()
def api(api_http):
    api = AttendanceClient(http=api_http)
    api.login("teacher", "secret123")
    return api


def test_login_installs_bearer_auth(api):
    assert api.me()["username"] == "teacher"


def test_login_failure_raises_api_error(api_http):
    api = AttendanceClient(http=api_http)
    with pytest.raises(ApiError) as exc_info:
        api.login("teacher", "wrong")
    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "用户名或密码错误"


def test_requires_base_url_or_http():
    with pytest.raises(ValueError):
        AttendanceClient()


def test_settings_are_decoded(api):
    settings = api.get_settings()
    assert isinstance(settings["attendance_periods"], list)
    assert api.get_periods()[0] == Period(1, "第1节")


def test_time_slots(api):
    slots = api.get_time_slots()
    assert slots[0] == TimeSlot(id=slots[0].id, name="上午", period_ids=(1, 2, 3, 4))


def test_delete_record(api, seed):
    api.bulk_update("2025-10-15", None, [{"student_id": seed["alice"], "status": "present"}])
    assert api.delete_record(seed["alice"], "2025-10-15")["deleted"] == 1


def test_api_error_carries_server_message(api, seed):
    with pytest.raises(ApiError) as exc_info:
        api.bulk_update("2025-10-15", None, [{"student_id": seed["carol"], "status": "present"}])
    assert exc_info.value.status_code == 403
    assert exc_info.value.message == "无权操作该班级"


def test_error_message_precedence():
    assert extract_error_message({"error": "a", "message": "b"}) == "a"
    assert extract_error_message({"message": "b"}) == "b"
    assert extract_error_message({}) == "请求失败"
    assert extract_error_message(None, fallback="出错了") == "出错了"
    assert extract_error_message(httpx.Response(500, text="boom")) == "请求失败"
    assert extract_error_message(httpx.Response(400, json={"error": "坏请求"})) == "坏请求"


def test_parse_settings_tolerates_bad_json():
    parsed = parse_settings([
        {"key": "attendance_periods", "value": "{oops"},
        {"key": "dashboard_stats_config", "value": '{"a": 1}'},
        {"key": "attendance_auto_mark_time", "value": "16:30"},
    ])
    assert parsed == {"attendance_periods": None, "dashboard_stats_config": {"a": 1}, "attendance_auto_mark_time": "16:30"}
