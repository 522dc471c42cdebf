# school_attendance/db/models/semester.py
from sqlalchemy import Column, Integer, String, Boolean, Date, JSON
from school_attendance.db.base import Base


class Semester(Base):
    __tablename__ = "semesters"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    total_weeks = Column(Integer, default=20, nullable=False)
    holidays = Column(JSON, nullable=True)  # ["2025-10-01", ...]
    is_current = Column(Boolean, default=False, nullable=False)
