"""HTTP client for the attendance service and the workflows built on it."""
from school_attendance.client.api import ApiError, AttendanceClient, BearerAuth, extract_error_message
from school_attendance.client.bulk import BulkAttendanceWorkflow, WorkflowError, WorkflowState, plan_submission
from school_attendance.client.export import ExportError, ExportRequest, download, merge_roll_call_types

__all__ = [
    "ApiError", "AttendanceClient", "BearerAuth", "extract_error_message",
    "BulkAttendanceWorkflow", "WorkflowError", "WorkflowState", "plan_submission",
    "ExportError", "ExportRequest", "download", "merge_roll_call_types",
]
