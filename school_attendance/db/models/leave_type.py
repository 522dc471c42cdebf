# school_attendance/db/models/leave_type.py
from sqlalchemy import Column, Integer, String, Boolean, Text, JSON
from school_attendance.db.base import Base

INPUT_TYPES = ("none", "time", "period_select", "duration_select", "text")


class LeaveType(Base):
    __tablename__ = "leave_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    student_requestable = Column(Boolean, default=False, nullable=False)
    color = Column(String, nullable=True)

    input_type = Column(String, default="none", nullable=False)
    # {"options": [{"key": "morning_half", "label": "上午"}, ...]}
    input_config = Column(JSON, nullable=True)

    @property
    def options(self):
        return (self.input_config or {}).get("options") or []
