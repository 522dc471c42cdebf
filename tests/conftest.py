# tests/conftest.py
import json
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from school_attendance.api.deps import get_db
from school_attendance.core.security import create_access_token, get_password_hash
from school_attendance.db import (
    Base, LeaveType, SchoolClass, Semester, Student, SystemSetting, TimeSlot, User,
)
from school_attendance.main import app

PASSWORD = "secret123"

PERIODS = [{"id": i, "name": f"第{i}节"} for i in range(1, 9)]

HALF_DAY_OPTIONS = {
    "options": [
        {"key": "morning_half", "label": "上午"},
        {"key": "afternoon_half", "label": "下午"},
        {"key": "full_day", "label": "全天"},
    ]
}


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def _user(db, username, role, name):
    user = User(username=username, hashed_password=get_password_hash(PASSWORD), role=role, name=name)
    db.add(user)
    db.flush()
    return user


def _student(db, username, name, school_class, student_no):
    user = _user(db, username, "student", name)
    student = Student(user_id=user.id, class_id=school_class.id, student_no=student_no, gender="male")
    db.add(student)
    db.flush()
    return student


@pytest.fixture()
def seed(db):
    """Admin, two teachers with a class each, three students and the reference data."""
    admin = _user(db, "admin", "admin", "管理员")
    teacher = _user(db, "teacher", "teacher", "王老师")
    other_teacher = _user(db, "teacher2", "teacher", "李老师")

    class_a = SchoolClass(name="高一(1)班", teacher_id=teacher.id)
    class_b = SchoolClass(name="高一(2)班", teacher_id=other_teacher.id)
    db.add_all([class_a, class_b])
    db.flush()

    alice = _student(db, "alice", "张三", class_a, "2024001")
    bob = _student(db, "bob", "李四", class_a, "2024002")
    carol = _student(db, "carol", "王五", class_b, "2024101")

    leave_types = {
        "sick_leave": LeaveType(name="病假", slug="sick_leave", student_requestable=True,
                                input_type="duration_select", input_config=HALF_DAY_OPTIONS),
        "personal_leave": LeaveType(name="事假", slug="personal_leave", student_requestable=True,
                                    input_type="period_select"),
        "absent": LeaveType(name="旷课", slug="absent", input_type="period_select"),
        "late": LeaveType(name="迟到", slug="late", input_type="time"),
        "early_leave": LeaveType(name="早退", slug="early_leave", input_type="time"),
        "official": LeaveType(name="公假", slug="official", input_type="none"),
    }
    db.add_all(leave_types.values())

    morning = TimeSlot(name="上午", time_start="08:00:00", time_end="12:00:00", period_ids=[1, 2, 3, 4], sort_order=1)
    afternoon = TimeSlot(name="下午", time_start="14:00:00", time_end="18:00:00", period_ids=[5, 6, 7, 8], sort_order=2)
    db.add_all([morning, afternoon])

    db.add(SystemSetting(key="attendance_periods", value=json.dumps(PERIODS, ensure_ascii=False)))
    db.add(Semester(name="2025秋季学期", start_date=date(2025, 9, 1), total_weeks=20, is_current=True))
    db.commit()

    return {
        "admin": admin.id,
        "teacher": teacher.id,
        "other_teacher": other_teacher.id,
        "class_a": class_a.id,
        "class_b": class_b.id,
        "alice": alice.id,
        "bob": bob.id,
        "carol": carol.id,
        "leave_types": {slug: lt.id for slug, lt in leave_types.items()},
        "morning": morning.id,
        "afternoon": afternoon.id,
    }


@pytest.fixture()
def client(session_factory, seed):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(username: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': username})}"}


@pytest.fixture()
def admin_headers():
    return auth_headers("admin")


@pytest.fixture()
def teacher_headers():
    return auth_headers("teacher")


@pytest.fixture()
def other_teacher_headers():
    return auth_headers("teacher2")


@pytest.fixture()
def student_headers():
    return auth_headers("alice")


@pytest.fixture()
def api_http(client):
    """An httpx client rooted at the API prefix, as the Python client expects."""
    return TestClient(app, base_url="http://testserver/api")
