# school_attendance/db/models/time_slot.py
from sqlalchemy import Column, Integer, String, Boolean, JSON
from school_attendance.db.base import Base


class TimeSlot(Base):
    __tablename__ = "time_slots"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    time_start = Column(String, nullable=True)  # "HH:MM:SS"
    time_end = Column(String, nullable=True)
    period_ids = Column(JSON, nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
