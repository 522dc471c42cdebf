from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Literal

AttendanceStatus = Literal["present", "absent", "late", "leave", "early_leave", "excused"]


class AttendanceBase(BaseModel):
    date: date
    period_id: Optional[int] = None
    status: AttendanceStatus
    leave_type_id: Optional[int] = None
    details: Optional[Dict[str, Any]] = None
    note: Optional[str] = None


class AttendanceCreate(AttendanceBase):
    student_id: int


class AttendanceOut(AttendanceBase):
    id: int
    student_id: int
    class_id: int
    source_type: str
    source_id: Optional[int] = None
    is_self_applied: bool = False
    approval_status: Optional[str] = None
    approver_id: Optional[int] = None
    approved_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BulkRecord(BaseModel):
    student_id: int
    status: AttendanceStatus
    leave_type_id: Optional[int] = None
    details: Optional[Dict[str, Any]] = None
    note: Optional[str] = None


class BulkAttendanceRequest(BaseModel):
    date: date
    period_id: Optional[int] = None
    records: List[BulkRecord]


class AutoMarkRequest(BaseModel):
    day: Optional[date] = Field(None, alias="date")
    force: bool = False


class AttendanceStatistics(BaseModel):
    total_periods: int
    present: int
    late: int
    absent: int
    excused: int
    early_leave: int
    leave: int
    attendance_rate: float
