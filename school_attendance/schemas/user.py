from pydantic import BaseModel
from typing import Optional


class UserCreate(BaseModel):
    username: str
    password: str
    name: str
    role: str  # "teacher" or "student"; admins are seeded


class UserLogin(BaseModel):
    username: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str


class UserOut(BaseModel):
    id: int
    username: str
    name: str
    role: str

    class Config:
        from_attributes = True


class ClassCreate(BaseModel):
    name: str
    teacher_id: Optional[int] = None


class ClassOut(BaseModel):
    id: int
    name: str
    teacher_id: Optional[int] = None
    is_graduated: bool = False

    class Config:
        from_attributes = True


class StudentCreate(BaseModel):
    username: str
    password: str
    name: str
    class_id: int
    student_no: str
    gender: Optional[str] = None


class StudentOut(BaseModel):
    id: int
    user_id: int
    class_id: int
    student_no: str
    gender: Optional[str] = None
    name: Optional[str] = None

    class Config:
        from_attributes = True
