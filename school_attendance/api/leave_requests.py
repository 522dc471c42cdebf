# school_attendance/api/leave_requests.py
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from school_attendance.api.deps import get_db, get_current_user, require_staff
from school_attendance.crud import settings as crud_settings
from school_attendance.schemas.leave import LeaveRequestCreate, LeaveRequestOut, LeaveRequestReject
from school_attendance.services import leave as leave_service

router = APIRouter()


@router.get("", response_model=List[LeaveRequestOut])
def list_requests(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return leave_service.list_requests(db, current_user, status)


@router.post("", response_model=LeaveRequestOut, status_code=201)
def submit_request(
    payload: LeaveRequestCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    periods = crud_settings.load_periods(db)
    time_slots = crud_settings.load_time_slots(db)
    return leave_service.submit(db, current_user, payload, periods, time_slots)


@router.post("/{request_id}/approve", response_model=LeaveRequestOut)
def approve_request(request_id: int, db: Session = Depends(get_db), current_user=Depends(require_staff)):
    return leave_service.approve(db, current_user, request_id)


@router.post("/{request_id}/reject", response_model=LeaveRequestOut)
def reject_request(
    request_id: int,
    payload: Optional[LeaveRequestReject] = None,
    db: Session = Depends(get_db),
    current_user=Depends(require_staff),
):
    return leave_service.reject(db, current_user, request_id, payload.reason if payload else None)


@router.delete("/{request_id}")
def cancel_request(request_id: int, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    leave_service.cancel(db, current_user, request_id)
    return {"message": "已撤销"}
