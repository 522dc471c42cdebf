# school_attendance/api/calendar.py
from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from school_attendance.api.deps import get_db, get_current_user
from school_attendance.core.calendar import build_calendar_grid
from school_attendance.schemas.attendance import AttendanceOut
from school_attendance.schemas.leave import LeaveRequestOut
from school_attendance.services import attendance as attendance_service

router = APIRouter()


@router.get("")
def calendar(
    start: date,
    end: date,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    feed = attendance_service.calendar_feed(db, current_user, start, end)
    return {
        "attendance": [AttendanceOut.model_validate(r) for r in feed["attendance"]],
        "leaves": [LeaveRequestOut.model_validate(r) for r in feed["leaves"]],
    }


@router.get("/grid")
def calendar_grid(
    reference: Optional[date] = None,
    view: str = "month",
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    semester = attendance_service.current_semester(db)
    try:
        grid = build_calendar_grid(reference or date.today(), view=view, semester=semester)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    result = asdict(grid)
    result["semester"] = semester.name if semester else None
    return result
