# school_attendance/db/models/attendance.py
from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from school_attendance.db.base import Base

ATTENDANCE_STATUSES = ("present", "absent", "late", "leave", "early_leave", "excused")
SOURCE_TYPES = ("manual", "leave_request", "roll_call", "auto")


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)

    # None means the record covers the whole day
    period_id = Column(Integer, nullable=True)

    status = Column(String, nullable=False)
    leave_type_id = Column(Integer, ForeignKey("leave_types.id"), nullable=True)

    # Free-form payload: time, option, period_ids, time_slot_id, display_label...
    details = Column(JSON, nullable=True)
    note = Column(Text, nullable=True)

    source_type = Column(String, default="manual", nullable=False)
    source_id = Column(Integer, nullable=True)
    is_self_applied = Column(Boolean, default=False, nullable=False)

    approval_status = Column(String, nullable=True)  # pending / approved / rejected
    approver_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    student = relationship("Student")
    leave_type = relationship("LeaveType")
