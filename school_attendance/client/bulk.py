# school_attendance/client/bulk.py
"""
Bulk attendance workflow for one day.

Staff select students from the day overview, pick an action (present or
a leave type) and, for actions that need it, provide input such as a time
or a set of periods. Submission is a sequence of ordered API calls with no
rollback: a failure midway leaves the earlier calls applied.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from school_attendance.client.api import ApiError
from school_attendance.core.config import settings

logger = logging.getLogger(__name__)

# Leave type slugs recorded under their own status instead of "leave"
STATUS_SLUGS = ("late", "absent", "early_leave")


class WorkflowState(str, enum.Enum):
    idle = "idle"
    selection = "selection"
    action_pending = "action_pending"
    submitting = "submitting"
    error = "error"


class WorkflowError(Exception):
    pass


@dataclass
class SubmissionPlan:
    period_ids: List[Optional[int]]
    # One combined request instead of one per period
    merged: bool = False


def plan_submission(status: str, details: Optional[dict]) -> SubmissionPlan:
    """Work out which ``period_id`` values the bulk requests are sent with."""
    if details:
        if details.get("time"):
            if details.get("period"):
                return SubmissionPlan([details["period"]])
            if status == "late":
                return SubmissionPlan([settings.LATE_DEFAULT_PERIOD])
            if status == "early_leave":
                return SubmissionPlan([settings.EARLY_LEAVE_DEFAULT_PERIOD])
            return SubmissionPlan([settings.LATE_DEFAULT_PERIOD])
        if details.get("periods"):
            return SubmissionPlan([details["periods"][0]], merged=True)
        if details.get("period_ids"):
            return SubmissionPlan([details["period_ids"][0]], merged=True)
    # Whole day; duration options are expanded server-side
    return SubmissionPlan([None])


def status_for(leave_type: Optional[dict]) -> str:
    if leave_type is None:
        return "present"
    slug = leave_type.get("slug")
    return slug if slug in STATUS_SLUGS else "leave"


def needs_input(leave_type: Optional[dict]) -> bool:
    if leave_type is None:
        return False
    return bool(leave_type.get("input_type")) and leave_type.get("input_type") != "none"


def find_student(overview: list, student_id: int) -> Optional[dict]:
    for school_class in overview or []:
        for student in school_class.get("students") or []:
            if student.get("id") == student_id:
                return student
    return None


def absent_records(student: Optional[dict]) -> list:
    if not student:
        return []
    return [r for r in student.get("attendance") or [] if r.get("status") == "absent"]


class BulkAttendanceWorkflow:
    def __init__(self, client, day: date):
        self.client = client
        self.day = day
        self.state = WorkflowState.idle
        self.students: list = []
        self.overview: list = []
        self.periods: list = []
        self.selected: set = set()
        self.pending: Optional[dict] = None
        self.input_defaults: dict = {}
        self.last_error: Optional[str] = None

    def load(self):
        self.overview = self.client.get_overview(self.day)
        self.students = [s for c in self.overview for s in c.get("students") or []]
        if not self.periods:
            self.periods = self.client.get_periods()
        return self.students

    def _after_selection_change(self):
        if self.state in (WorkflowState.idle, WorkflowState.selection):
            self.state = WorkflowState.selection if self.selected else WorkflowState.idle

    def select(self, ids):
        self.selected = set(ids)
        self._after_selection_change()

    def toggle(self, student_id: int):
        if student_id in self.selected:
            self.selected.discard(student_id)
        else:
            self.selected.add(student_id)
        self._after_selection_change()

    def select_all(self):
        """Select every loaded student, or clear the selection when all are selected."""
        ids = {s["id"] for s in self.students}
        self.select(set() if ids and self.selected == ids else ids)

    def choose_action(self, status: str = "present", leave_type: Optional[dict] = None):
        """
        Start an action for the selected students.

        Returns the saved records when the action submits immediately, or
        None when it waits for ``provide_input``.
        """
        if not self.selected:
            raise WorkflowError("请先选择学生")
        if leave_type is not None:
            status = status_for(leave_type)
        leave_type_id = leave_type.get("id") if leave_type else None

        if not needs_input(leave_type):
            return self._submit(status, leave_type_id, None)

        self.pending = {"status": status, "leave_type": leave_type}
        self.input_defaults = self._prefill(status)
        self.state = WorkflowState.action_pending
        return None

    def _prefill(self, status: str) -> dict:
        if status != "absent":
            return {}
        first = sorted(self.selected)[0]
        try:
            overview = self.client.get_overview(self.day)
        except ApiError as e:
            logger.warning(f"Could not prefill absent periods: {e.message}")
            return {}
        existing = []
        for row in absent_records(find_student(overview, first)):
            for period in (row.get("details") or {}).get("periods") or []:
                if period not in existing:
                    existing.append(period)
        return {"periods": existing} if existing else {}

    def cancel_action(self):
        self.pending = None
        self.input_defaults = {}
        self.state = WorkflowState.selection if self.selected else WorkflowState.idle

    def provide_input(self, details: dict):
        if self.state != WorkflowState.action_pending or not self.pending:
            raise WorkflowError("没有待处理的操作")
        details = dict(details or {})
        if isinstance(details.get("periods"), list):
            ids = [p.id for p in self.periods]
            details["period_numbers"] = [ids.index(p) + 1 if p in ids else 0 for p in details["periods"]]
        return self._submit(self.pending["status"], self.pending["leave_type"].get("id"), details)

    def _delete_prior_absences(self):
        try:
            overview = self.client.get_overview(self.day)
        except ApiError as e:
            logger.warning(f"Could not fetch records before merging absences: {e.message}")
            return
        for student_id in sorted(self.selected):
            for row in absent_records(find_student(overview, student_id)):
                try:
                    self.client.delete_record(student_id, self.day, period_id=row.get("period_id"), status="absent")
                except ApiError as e:
                    logger.warning(f"Failed to delete absent record {row.get('id')}: {e.message}")

    def _submit(self, status: str, leave_type_id: Optional[int], details: Optional[dict]):
        records = [
            {"student_id": sid, "status": status, "leave_type_id": leave_type_id, "details": details}
            for sid in sorted(self.selected)
        ]
        plan = plan_submission(status, details)
        self.state = WorkflowState.submitting
        saved = []
        try:
            if plan.merged and status == "absent":
                self._delete_prior_absences()
            for period_id in plan.period_ids:
                result = self.client.bulk_update(self.day, period_id, records)
                saved.extend(result.get("records") or [])
        except ApiError as e:
            self.state = WorkflowState.error
            self.last_error = e.message
            logger.error(f"Bulk update on {self.day} failed: {e.message}")
            self.state = WorkflowState.selection
            raise WorkflowError(f"更新失败: {e.message}") from e

        logger.info(f"Bulk {status} applied to {len(records)} students on {self.day}")
        self.pending = None
        self.input_defaults = {}
        self.last_error = None
        self.selected = set()
        self.state = WorkflowState.idle
        self.load()
        return saved
