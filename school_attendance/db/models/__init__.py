from school_attendance.db.base import Base
from school_attendance.db.models.user import User
from school_attendance.db.models.school_class import SchoolClass
from school_attendance.db.models.student import Student
from school_attendance.db.models.leave_type import LeaveType
from school_attendance.db.models.attendance import AttendanceRecord
from school_attendance.db.models.time_slot import TimeSlot
from school_attendance.db.models.semester import Semester
from school_attendance.db.models.system_setting import SystemSetting
from school_attendance.db.models.leave_request import LeaveRequest
from school_attendance.db.models.roll_call import RollCallType, RollCall, RollCallRecord

__all__ = [
    "Base", "User", "SchoolClass", "Student", "LeaveType", "AttendanceRecord",
    "TimeSlot", "Semester", "SystemSetting", "LeaveRequest",
    "RollCallType", "RollCall", "RollCallRecord",
]
