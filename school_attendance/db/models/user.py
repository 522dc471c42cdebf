from sqlalchemy import Column, Integer, String, Enum
from sqlalchemy.orm import relationship
from school_attendance.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(Enum("admin", "teacher", "student", name="user_role"), nullable=False)
    name = Column(String, nullable=False)

    student = relationship("Student", back_populates="user", uselist=False)
    classes = relationship("SchoolClass", back_populates="teacher")
