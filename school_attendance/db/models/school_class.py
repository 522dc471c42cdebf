# school_attendance/db/models/school_class.py
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from school_attendance.db.base import Base


class SchoolClass(Base):
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    is_graduated = Column(Boolean, default=False, nullable=False)

    teacher = relationship("User", back_populates="classes")
    students = relationship("Student", back_populates="school_class", order_by="Student.student_no")
