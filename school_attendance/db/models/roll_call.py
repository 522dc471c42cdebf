# school_attendance/db/models/roll_call.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from school_attendance.db.base import Base


class RollCallType(Base):
    __tablename__ = "roll_call_types"

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    # Absentees are written as leave records of this type
    leave_type_id = Column(Integer, ForeignKey("leave_types.id"), nullable=True)
    period_ids = Column(JSON, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)


class RollCall(Base):
    __tablename__ = "roll_calls"

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    roll_call_type_id = Column(Integer, ForeignKey("roll_call_types.id"), nullable=False)
    roll_call_time = Column(DateTime, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    status = Column(String, default="in_progress", nullable=False)  # in_progress → completed / cancelled
    total_students = Column(Integer, default=0, nullable=False)
    present_count = Column(Integer, default=0, nullable=False)
    on_leave_count = Column(Integer, default=0, nullable=False)
    notes = Column(Text, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    roll_call_type = relationship("RollCallType")
    school_class = relationship("SchoolClass")
    records = relationship(
        "RollCallRecord",
        back_populates="roll_call",
        cascade="all, delete-orphan",
        order_by="RollCallRecord.id",
    )


class RollCallRecord(Base):
    __tablename__ = "roll_call_records"

    id = Column(Integer, primary_key=True, index=True)
    roll_call_id = Column(Integer, ForeignKey("roll_calls.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False)
    status = Column(String, default="pending", nullable=False)  # pending / present / absent / on_leave
    leave_type_id = Column(Integer, ForeignKey("leave_types.id"), nullable=True)
    leave_detail = Column(String, nullable=True)
    leave_status = Column(String, nullable=True)
    marked_at = Column(DateTime, nullable=True)
    marked_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    roll_call = relationship("RollCall", back_populates="records")
    student = relationship("Student")
