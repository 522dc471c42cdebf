# school_attendance/db/__init__.py
# Importing the package registers every model on Base.metadata

from school_attendance.db.base import Base
from school_attendance.db.models import (
    User, SchoolClass, Student, LeaveType, AttendanceRecord, TimeSlot,
    Semester, SystemSetting, LeaveRequest, RollCallType, RollCall, RollCallRecord,
)

__all__ = [
    "Base", "User", "SchoolClass", "Student", "LeaveType", "AttendanceRecord",
    "TimeSlot", "Semester", "SystemSetting", "LeaveRequest",
    "RollCallType", "RollCall", "RollCallRecord",
]
