# school_attendance/db/models/student.py
from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from school_attendance.db.base import Base


class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    student_no = Column(String, nullable=False, index=True)
    gender = Column(String, nullable=True)  # male / female

    user = relationship("User", back_populates="student")
    school_class = relationship("SchoolClass", back_populates="students")

    @property
    def name(self):
        return self.user.name if self.user else None
