# school_attendance/api/leave_types.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from school_attendance.api.deps import get_db, get_current_user, require_admin
from school_attendance.db.models.attendance import AttendanceRecord
from school_attendance.db.models.leave_type import LeaveType, INPUT_TYPES
from school_attendance.schemas.leave import LeaveTypeCreate, LeaveTypeOut, LeaveTypeUpdate

router = APIRouter()


def _get_leave_type(db: Session, leave_type_id: int) -> LeaveType:
    leave_type = db.query(LeaveType).filter(LeaveType.id == leave_type_id).first()
    if not leave_type:
        raise HTTPException(status_code=404, detail="请假类型不存在")
    return leave_type


@router.get("", response_model=List[LeaveTypeOut])
def list_leave_types(db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    query = db.query(LeaveType)
    if current_user.role == "student":
        query = query.filter(LeaveType.is_active.is_(True), LeaveType.student_requestable.is_(True))
    return query.order_by(LeaveType.id).all()


@router.post("", response_model=LeaveTypeOut, status_code=201)
def create_leave_type(payload: LeaveTypeCreate, db: Session = Depends(get_db), current_user=Depends(require_admin)):
    if payload.input_type not in INPUT_TYPES:
        raise HTTPException(status_code=400, detail=f"不支持的输入类型: {payload.input_type}")
    if db.query(LeaveType).filter(LeaveType.slug == payload.slug).first():
        raise HTTPException(status_code=400, detail="标识已存在")
    leave_type = LeaveType(**payload.model_dump())
    db.add(leave_type)
    db.commit()
    db.refresh(leave_type)
    return leave_type


@router.put("/{leave_type_id}", response_model=LeaveTypeOut)
def update_leave_type(
    leave_type_id: int,
    payload: LeaveTypeUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(require_admin),
):
    leave_type = _get_leave_type(db, leave_type_id)
    changes = payload.model_dump(exclude_unset=True)
    if "input_type" in changes and changes["input_type"] not in INPUT_TYPES:
        raise HTTPException(status_code=400, detail=f"不支持的输入类型: {changes['input_type']}")
    for field, value in changes.items():
        setattr(leave_type, field, value)
    db.commit()
    db.refresh(leave_type)
    return leave_type


@router.delete("/{leave_type_id}")
def delete_leave_type(leave_type_id: int, db: Session = Depends(get_db), current_user=Depends(require_admin)):
    leave_type = _get_leave_type(db, leave_type_id)
    in_use = db.query(AttendanceRecord.id).filter(AttendanceRecord.leave_type_id == leave_type.id).first()
    if in_use:
        raise HTTPException(status_code=400, detail="该类型已有考勤记录，无法删除")
    db.delete(leave_type)
    db.commit()
    return {"message": "已删除"}
