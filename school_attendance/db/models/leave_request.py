# school_attendance/db/models/leave_request.py
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from school_attendance.db.base import Base


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    leave_type_id = Column(Integer, ForeignKey("leave_types.id"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    time_slot_id = Column(Integer, ForeignKey("time_slots.id"), nullable=True)
    # Empty / null means the whole day
    period_ids = Column(JSON, nullable=True)
    details = Column(JSON, nullable=True)
    reason = Column(Text, nullable=True)
    images = Column(JSON, nullable=True)

    status = Column(String, default="pending", nullable=False)  # pending → approved / rejected
    approver_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    student = relationship("Student")
    leave_type = relationship("LeaveType")
