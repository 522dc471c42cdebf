# tests/client/test_bulk_workflow.py
import logging
from datetime import date

import pytest

from school_attendance.client.api import ApiError, AttendanceClient
from school_attendance.client.bulk import (
    BulkAttendanceWorkflow,
    WorkflowError,
    WorkflowState,
    find_student,
    plan_submission,
)

DAY = date(2025, 10, 15)


@pytest.fixture()
def api(api_http):
    api = AttendanceClient(http=api_http)
    api.login("teacher", "secret123")
    return api


@pytest.fixture()
def workflow(api):
    workflow = BulkAttendanceWorkflow(api, DAY)
    workflow.load()
    return workflow


@pytest.fixture()
def leave_types(api):
    return {lt["slug"]: lt for lt in api.get_leave_types()}


def _attendance(api, student_id):
    return find_student(api.get_overview(DAY), student_id)["attendance"]


def test_plan_time_input_defaults():
    assert plan_submission("late", {"time": "08:10"}).period_ids == [1]
    assert plan_submission("early_leave", {"time": "16:00"}).period_ids == [8]
    assert plan_submission("leave", {"time": "10:00"}).period_ids == [1]
    assert plan_submission("late", {"time": "08:10", "period": 3}).period_ids == [3]


def test_plan_periods_are_merged():
    plan = plan_submission("absent", {"periods": [4, 2, 3]})
    assert plan.period_ids == [4]
    assert plan.merged
    assert plan_submission("leave", {"period_ids": [5, 6]}).period_ids == [5]


def test_plan_defaults_to_whole_day():
    assert plan_submission("present", None).period_ids == [None]
    assert plan_submission("leave", {"option": "morning_half"}).period_ids == [None]


def test_load_lists_class_students(workflow, seed):
    assert {s["id"] for s in workflow.students} == {seed["alice"], seed["bob"]}
    assert len(workflow.periods) == 8
    assert workflow.state == WorkflowState.idle


def test_selection_states(workflow, seed):
    workflow.toggle(seed["alice"])
    assert workflow.state == WorkflowState.selection
    workflow.toggle(seed["alice"])
    assert workflow.state == WorkflowState.idle

    workflow.select_all()
    assert workflow.selected == {seed["alice"], seed["bob"]}
    workflow.select_all()
    assert workflow.selected == set()


def test_present_submits_immediately(workflow, api, seed):
    workflow.select([seed["alice"], seed["bob"]])
    saved = workflow.choose_action("present")
    assert len(saved) == 2
    assert workflow.state == WorkflowState.idle
    assert workflow.selected == set()
    assert _attendance(api, seed["bob"])[0]["status"] == "present"


def test_type_without_input_submits_as_leave(workflow, api, seed, leave_types):
    workflow.select([seed["alice"]])
    workflow.choose_action(leave_type=leave_types["official"])
    record = _attendance(api, seed["alice"])[0]
    assert record["status"] == "leave"
    assert record["leave_type_id"] == leave_types["official"]["id"]


def test_late_waits_for_time_input(workflow, api, seed, leave_types):
    workflow.select([seed["alice"]])
    assert workflow.choose_action(leave_type=leave_types["late"]) is None
    assert workflow.state == WorkflowState.action_pending

    workflow.provide_input({"time": "08:10"})
    record = _attendance(api, seed["alice"])[0]
    assert record["status"] == "late"
    assert record["period_id"] == 1
    assert record["details"]["time"] == "08:10"
    assert workflow.state == WorkflowState.idle


def test_early_leave_defaults_to_last_period(workflow, api, seed, leave_types):
    workflow.select([seed["bob"]])
    workflow.choose_action(leave_type=leave_types["early_leave"])
    workflow.provide_input({"time": "16:00"})
    assert _attendance(api, seed["bob"])[0]["period_id"] == 8


def test_absent_periods_replace_previous_absence(workflow, api, seed, leave_types):
    workflow.select([seed["alice"]])
    workflow.choose_action(leave_type=leave_types["absent"])
    workflow.provide_input({"periods": [2, 3]})
    first = _attendance(api, seed["alice"])
    assert len(first) == 1
    assert first[0]["period_id"] == 2
    assert first[0]["details"]["period_numbers"] == [2, 3]

    workflow.select([seed["alice"]])
    workflow.choose_action(leave_type=leave_types["absent"])
    assert workflow.input_defaults == {"periods": [2, 3]}
    workflow.provide_input({"periods": [5]})

    records = _attendance(api, seed["alice"])
    assert [(r["status"], r["period_id"]) for r in records] == [("absent", 5)]
    assert records[0]["details"]["periods"] == [5]


def test_absent_merge_keeps_whole_day_leave(workflow, api, seed, leave_types):
    alice = seed["alice"]
    sick = leave_types["sick_leave"]["id"]
    api.bulk_update(DAY, None, [{"student_id": alice, "status": "absent",
                                 "leave_type_id": leave_types["absent"]["id"]}])
    api.bulk_update(DAY, None, [{"student_id": alice, "status": "leave", "leave_type_id": sick,
                                 "details": {"option": "morning_half"}}])
    workflow.load()

    workflow.select([alice])
    workflow.choose_action(leave_type=leave_types["absent"])
    workflow.provide_input({"periods": [5, 6]})

    records = sorted(_attendance(api, alice), key=lambda r: r["status"])
    assert [(r["status"], r["period_id"]) for r in records] == [("absent", 5), ("leave", None)]
    assert records[1]["leave_type_id"] == sick
    assert records[1]["details"] == {"option": "morning_half"}


def test_absent_merge_failure_after_deletes(workflow, api, seed, leave_types):
    workflow.select([seed["alice"]])
    workflow.choose_action(leave_type=leave_types["absent"])
    workflow.provide_input({"periods": [2, 3]})
    assert len(_attendance(api, seed["alice"])) == 1

    # carol is outside the teacher's classes, so the merged post is refused
    workflow.select([seed["alice"], seed["carol"]])
    workflow.choose_action(leave_type=leave_types["absent"])
    with pytest.raises(WorkflowError) as exc_info:
        workflow.provide_input({"periods": [5]})

    assert str(exc_info.value) == "更新失败: 无权操作该班级"
    assert workflow.state == WorkflowState.selection
    assert workflow.last_error == "无权操作该班级"
    assert workflow.selected == {seed["alice"], seed["carol"]}
    assert _attendance(api, seed["alice"]) == []


def test_failed_delete_is_logged_and_skipped(workflow, api, seed, leave_types, monkeypatch, caplog):
    workflow.select([seed["alice"]])
    workflow.choose_action(leave_type=leave_types["absent"])
    workflow.provide_input({"periods": [2, 3]})

    def failing_delete(*args, **kwargs):
        raise ApiError("删除失败", status_code=500)

    monkeypatch.setattr(api, "delete_record", failing_delete)
    workflow.select([seed["alice"]])
    workflow.choose_action(leave_type=leave_types["absent"])
    with caplog.at_level(logging.WARNING, logger="school_attendance.client.bulk"):
        workflow.provide_input({"periods": [5]})

    assert "删除失败" in caplog.text
    assert workflow.state == WorkflowState.idle
    records = _attendance(api, seed["alice"])
    assert sorted(r["period_id"] for r in records) == [2, 5]


def test_cancel_action_returns_to_selection(workflow, seed, leave_types):
    workflow.select([seed["alice"]])
    workflow.choose_action(leave_type=leave_types["late"])
    workflow.cancel_action()
    assert workflow.state == WorkflowState.selection
    assert workflow.pending is None
    with pytest.raises(WorkflowError):
        workflow.provide_input({"time": "08:00"})


def test_action_needs_selection(workflow):
    with pytest.raises(WorkflowError):
        workflow.choose_action("present")


def test_failure_keeps_selection(workflow, seed):
    workflow.select([seed["carol"]])
    with pytest.raises(WorkflowError) as exc_info:
        workflow.choose_action("present")
    assert str(exc_info.value) == "更新失败: 无权操作该班级"
    assert workflow.state == WorkflowState.selection
    assert workflow.selected == {seed["carol"]}
    assert workflow.last_error == "无权操作该班级"
