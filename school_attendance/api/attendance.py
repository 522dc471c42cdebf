from datetime import date
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from school_attendance.api.deps import get_db, get_current_user, require_admin, require_staff
from school_attendance.schemas.attendance import (
    AttendanceCreate,
    AttendanceOut,
    AttendanceStatistics,
    AutoMarkRequest,
    BulkAttendanceRequest,
)
from school_attendance.services import attendance as attendance_service
from school_attendance.services import export as export_service

router = APIRouter()


def _check_student_access(db: Session, user, student_id: int):
    if user.role == "student":
        if not user.student or user.student.id != student_id:
            raise HTTPException(status_code=403, detail="只能查看自己的考勤")
        return
    student = attendance_service.get_student(db, student_id)
    attendance_service.ensure_class_access(db, user, student.class_id)


@router.get("", response_model=List[AttendanceOut])
def list_attendance(
    start: Optional[date] = None,
    end: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return attendance_service.list_records(db, current_user, start, end)


@router.post("", response_model=AttendanceOut)
def create_attendance(
    record_in: AttendanceCreate,
    db: Session = Depends(get_db),
    current_user=Depends(require_staff),
):
    student = attendance_service.get_student(db, record_in.student_id)
    attendance_service.ensure_class_access(db, current_user, student.class_id)
    return attendance_service.record(
        db, student, record_in.date, record_in.period_id, record_in.status,
        leave_type_id=record_in.leave_type_id,
        details=record_in.details,
        note=record_in.note,
    )


@router.post("/bulk")
def bulk_update(
    payload: BulkAttendanceRequest,
    db: Session = Depends(get_db),
    current_user=Depends(require_staff),
):
    records = attendance_service.bulk_mark(db, current_user, payload.date, payload.period_id, payload.records)
    return {"message": "更新成功", "count": len(records), "records": records}


@router.delete("/records")
def delete_records(
    student_id: int,
    date: date,
    period_id: Optional[int] = None,
    option: Optional[str] = None,
    source_type: Optional[str] = None,
    source_id: Optional[int] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user=Depends(require_staff),
):
    _check_student_access(db, current_user, student_id)
    deleted = attendance_service.delete_records(
        db, student_id, date,
        period_id=period_id,
        option=option,
        source_type=source_type,
        source_id=source_id,
        status=status,
    )
    return {"message": "已删除", "deleted": deleted}


@router.get("/overview")
def overview(date: date, db: Session = Depends(get_db), current_user=Depends(require_staff)):
    return attendance_service.overview(db, current_user, date)


@router.get("/day-status")
def day_status(
    student_id: int,
    date: date,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    _check_student_access(db, current_user, student_id)
    return attendance_service.day_status(db, student_id, date)


@router.get("/statistics", response_model=AttendanceStatistics)
def statistics(
    student_id: int,
    start: date,
    end: date,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    _check_student_access(db, current_user, student_id)
    return attendance_service.statistics(db, student_id, start, end)


@router.get("/stats")
def dashboard_stats(
    scope: str = "today",
    db: Session = Depends(get_db),
    current_user=Depends(require_staff),
):
    return attendance_service.dashboard_stats(db, current_user, scope)


@router.get("/details")
def status_details(
    status: str,
    scope: str = "today",
    leave_type_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user=Depends(require_staff),
):
    return attendance_service.status_details(db, current_user, scope, status, leave_type_id)


@router.post("/auto-mark")
def auto_mark(
    payload: AutoMarkRequest,
    db: Session = Depends(get_db),
    current_user=Depends(require_admin),
):
    if payload.day:
        counts = attendance_service.auto_mark(db, payload.day)
        return {"ran": True, "date": payload.day.isoformat(), **counts}
    return attendance_service.run_auto_mark(db, force=payload.force)


@router.get("/export/options")
def export_options(db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    return export_service.export_options(db, current_user)


@router.get("/export")
def export(
    scope: str = "today",
    semester_id: Optional[int] = None,
    class_ids: Optional[List[int]] = Query(None),
    student_range: str = "all",
    export_format: str = "count",
    leave_type_ids: Optional[List[int]] = Query(None),
    include_roll_call: bool = True,
    roll_call_type_ids: Optional[List[int]] = Query(None),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    filename, content = export_service.build_export(
        db, current_user,
        scope=scope,
        semester_id=semester_id,
        class_ids=class_ids,
        student_range=student_range,
        export_format=export_format,
        leave_type_ids=leave_type_ids,
        include_roll_call=include_roll_call,
        roll_call_type_ids=roll_call_type_ids,
    )
    quoted = quote(filename)
    return Response(
        content=content,
        media_type=export_service.XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f"attachment; filename=\"{quoted}\"; filename*=UTF-8''{quoted}",
            "Cache-Control": "max-age=0",
        },
    )
