# school_attendance/api/classes.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from school_attendance.api.deps import get_db, require_admin, require_staff
from school_attendance.crud import user as crud_user
from school_attendance.db.models.school_class import SchoolClass
from school_attendance.schemas.user import ClassCreate, ClassOut, StudentCreate, StudentOut
from school_attendance.services import attendance as attendance_service

router = APIRouter()


@router.get("/classes", response_model=List[ClassOut])
def list_classes(db: Session = Depends(get_db), current_user=Depends(require_staff)):
    class_ids = attendance_service.authorized_class_ids(db, current_user)
    if not class_ids:
        return []
    return db.query(SchoolClass).filter(SchoolClass.id.in_(class_ids)).order_by(SchoolClass.id).all()


@router.post("/classes", response_model=ClassOut, status_code=201)
def create_class(class_in: ClassCreate, db: Session = Depends(get_db), current_user=Depends(require_admin)):
    school_class = SchoolClass(name=class_in.name, teacher_id=class_in.teacher_id)
    db.add(school_class)
    db.commit()
    db.refresh(school_class)
    return school_class


@router.get("/classes/{class_id}/students", response_model=List[StudentOut])
def class_students(class_id: int, db: Session = Depends(get_db), current_user=Depends(require_staff)):
    attendance_service.ensure_class_access(db, current_user, class_id)
    return crud_user.get_students_by_class(db, class_id)


@router.post("/students", response_model=StudentOut, status_code=201)
def create_student(student_in: StudentCreate, db: Session = Depends(get_db), current_user=Depends(require_staff)):
    attendance_service.ensure_class_access(db, current_user, student_in.class_id)
    if crud_user.get_user_by_username(db, student_in.username):
        raise HTTPException(status_code=400, detail="用户名已被注册")
    return crud_user.create_student(db, student_in)
