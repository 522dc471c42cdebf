from sqlalchemy.orm import Session
from school_attendance.db.models.user import User
from school_attendance.db.models.student import Student
from school_attendance.core.security import get_password_hash


def get_user_by_username(db: Session, username: str):
    return db.query(User).filter(User.username == username).first()


def create_user(db: Session, user_data):
    db_user = User(
        username=user_data.username,
        hashed_password=get_password_hash(user_data.password),
        name=user_data.name,
        role=user_data.role,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def create_student(db: Session, student_data):
    """Create the login account and the student row in one commit."""
    user = User(
        username=student_data.username,
        hashed_password=get_password_hash(student_data.password),
        name=student_data.name,
        role="student",
    )
    db.add(user)
    db.flush()

    student = Student(
        user_id=user.id,
        class_id=student_data.class_id,
        student_no=student_data.student_no,
        gender=student_data.gender,
    )
    db.add(student)
    db.commit()
    db.refresh(student)
    return student


def get_students_by_class(db: Session, class_id: int):
    return (
        db.query(Student)
        .filter(Student.class_id == class_id)
        .order_by(Student.student_no)
        .all()
    )
