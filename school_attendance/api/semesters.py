# school_attendance/api/semesters.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from school_attendance.api.deps import get_db, get_current_user, require_admin
from school_attendance.db.models.semester import Semester
from school_attendance.schemas.settings import SemesterCreate, SemesterOut

router = APIRouter()


def _get_semester(db: Session, semester_id: int) -> Semester:
    semester = db.query(Semester).filter(Semester.id == semester_id).first()
    if not semester:
        raise HTTPException(status_code=404, detail="学期不存在")
    return semester


def _make_current(db: Session, semester: Semester):
    # Only one semester is current at a time
    db.query(Semester).filter(Semester.id != semester.id).update({Semester.is_current: False})


@router.get("", response_model=List[SemesterOut])
def list_semesters(db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    return db.query(Semester).order_by(Semester.start_date.desc()).all()


@router.post("", response_model=SemesterOut, status_code=201)
def create_semester(payload: SemesterCreate, db: Session = Depends(get_db), current_user=Depends(require_admin)):
    semester = Semester(**payload.model_dump())
    db.add(semester)
    db.flush()
    if semester.is_current:
        _make_current(db, semester)
    db.commit()
    db.refresh(semester)
    return semester


@router.put("/{semester_id}", response_model=SemesterOut)
def update_semester(
    semester_id: int,
    payload: SemesterCreate,
    db: Session = Depends(get_db),
    current_user=Depends(require_admin),
):
    semester = _get_semester(db, semester_id)
    for field, value in payload.model_dump().items():
        setattr(semester, field, value)
    if semester.is_current:
        _make_current(db, semester)
    db.commit()
    db.refresh(semester)
    return semester


@router.delete("/{semester_id}")
def delete_semester(semester_id: int, db: Session = Depends(get_db), current_user=Depends(require_admin)):
    db.delete(_get_semester(db, semester_id))
    db.commit()
    return {"message": "已删除"}
