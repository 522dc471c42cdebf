# school_attendance/services/leave.py
import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from school_attendance.core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from school_attendance.core.periods import describe_periods, expand_time_slot
from school_attendance.db.models.attendance import AttendanceRecord
from school_attendance.db.models.leave_request import LeaveRequest
from school_attendance.db.models.leave_type import LeaveType
from school_attendance.services import attendance as attendance_service

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ("pending", "approved")


def _date_range(start, end):
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def _as_ids(values):
    return sorted({int(v) for v in values or []})


def find_conflicts(db: Session, student_id: int, start, end, period_ids=None, exclude_id=None) -> list:
    """
    Pending or approved requests of the student overlapping ``start..end``.

    A whole-day request on either side always conflicts; otherwise the
    period sets must intersect.
    """
    query = db.query(LeaveRequest).filter(
        LeaveRequest.student_id == student_id,
        LeaveRequest.status.in_(ACTIVE_STATUSES),
        LeaveRequest.start_date <= end,
        LeaveRequest.end_date >= start,
    )
    if exclude_id:
        query = query.filter(LeaveRequest.id != exclude_id)

    wanted = set(_as_ids(period_ids))
    conflicts = []
    for existing in query.all():
        existing_ids = set(_as_ids(existing.period_ids))
        if not wanted or not existing_ids or wanted & existing_ids:
            conflicts.append(existing)
    return conflicts


def _conflict_payload(conflicts):
    return [
        {
            "id": c.id,
            "start_date": c.start_date.isoformat(),
            "end_date": c.end_date.isoformat(),
            "period_ids": c.period_ids or [],
            "status": c.status,
        }
        for c in conflicts
    ]


def _resolve_student(db: Session, user, student_id):
    if user.role == "student":
        if not user.student:
            raise PermissionDeniedError("User is not a student")
        return user.student
    if student_id is None:
        raise ValidationError("student_id is required")
    student = attendance_service.get_student(db, student_id)
    attendance_service.ensure_class_access(db, user, student.class_id)
    return student


def submit(db: Session, user, payload, periods, time_slots) -> LeaveRequest:
    student = _resolve_student(db, user, payload.student_id)

    leave_type = db.query(LeaveType).filter(LeaveType.id == payload.leave_type_id).first()
    if not leave_type or not leave_type.is_active:
        raise ValidationError("请假类型不存在或已停用")
    if user.role == "student" and not leave_type.student_requestable:
        raise ValidationError("该请假类型不允许学生申请")

    details = dict(payload.details or {})
    period_ids = _as_ids(payload.sessions)

    if payload.time_slot_id:
        slot = next((s for s in time_slots if s.id == payload.time_slot_id), None)
        if slot is None:
            raise ValidationError("时段不存在")
        if not period_ids:
            period_ids = _as_ids(expand_time_slot(slot.id, time_slots))
        details["time_slot_id"] = slot.id
        details["time_slot_name"] = slot.name

    if period_ids:
        details["period_ids"] = period_ids
        details["option_periods"] = len(period_ids)
        details["display_label"] = describe_periods(period_ids, periods, time_slots)

    conflicts = find_conflicts(db, student.id, payload.start_date, payload.end_date, period_ids)
    if conflicts:
        raise ConflictError("Conflict detected with existing requests.", conflicts=_conflict_payload(conflicts))

    leave_request = LeaveRequest(
        student_id=student.id,
        class_id=student.class_id,
        leave_type_id=leave_type.id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        time_slot_id=payload.time_slot_id,
        period_ids=period_ids or None,
        details=details or None,
        reason=payload.reason,
        images=payload.images or None,
        status="pending",
    )
    db.add(leave_request)
    db.commit()
    db.refresh(leave_request)
    logger.info(f"Leave request {leave_request.id} submitted for student {student.id}")
    return leave_request


def get_request(db: Session, request_id: int) -> LeaveRequest:
    leave_request = db.query(LeaveRequest).filter(LeaveRequest.id == request_id).first()
    if not leave_request:
        raise NotFoundError("请假申请不存在")
    return leave_request


def _ensure_reviewer(db: Session, user, leave_request: LeaveRequest):
    if user.role not in ("admin", "teacher"):
        raise PermissionDeniedError("无权审批")
    attendance_service.ensure_class_access(db, user, leave_request.class_id)


def approve(db: Session, user, request_id: int) -> LeaveRequest:
    """Approve a pending request and write its ``excused`` attendance records."""
    leave_request = get_request(db, request_id)
    _ensure_reviewer(db, user, leave_request)
    if leave_request.status != "pending":
        raise InvalidStateError("只能审批待处理的申请")

    now = datetime.utcnow()
    leave_request.status = "approved"
    leave_request.approver_id = user.id
    leave_request.approved_at = now

    student = leave_request.student
    details = dict(leave_request.details or {})
    details["leave_request_id"] = leave_request.id
    period_ids = leave_request.period_ids or [None]

    written = 0
    for day in _date_range(leave_request.start_date, leave_request.end_date):
        for period_id in period_ids:
            row = attendance_service.record(
                db, student, day, period_id, "excused",
                leave_type_id=leave_request.leave_type_id,
                details=details,
                note=leave_request.reason,
                source_type="leave_request",
                source_id=leave_request.id,
                commit=False,
            )
            row.is_self_applied = True
            row.approval_status = "approved"
            row.approver_id = user.id
            row.approved_at = now
            written += 1

    db.commit()
    db.refresh(leave_request)
    logger.info(f"Leave request {leave_request.id} approved by user {user.id}, {written} records written")
    return leave_request


def reject(db: Session, user, request_id: int, reason=None) -> LeaveRequest:
    leave_request = get_request(db, request_id)
    _ensure_reviewer(db, user, leave_request)
    if leave_request.status != "pending":
        raise InvalidStateError("只能驳回待处理的申请")

    leave_request.status = "rejected"
    leave_request.approver_id = user.id
    leave_request.approved_at = datetime.utcnow()
    leave_request.rejection_reason = reason
    db.commit()
    db.refresh(leave_request)
    logger.info(f"Leave request {leave_request.id} rejected by user {user.id}")
    return leave_request


def cancel(db: Session, user, request_id: int):
    """Withdraw a request together with any records its approval wrote."""
    leave_request = get_request(db, request_id)
    if user.role == "student":
        if not user.student or leave_request.student_id != user.student.id:
            raise PermissionDeniedError("只能撤销自己的申请")
        if leave_request.status != "pending":
            raise InvalidStateError("只能撤销待审批的申请")
    else:
        attendance_service.ensure_class_access(db, user, leave_request.class_id)

    removed = db.query(AttendanceRecord).filter(
        AttendanceRecord.source_type == "leave_request",
        AttendanceRecord.source_id == leave_request.id,
    ).delete(synchronize_session=False)
    db.delete(leave_request)
    db.commit()
    logger.info(f"Leave request {request_id} cancelled by user {user.id}, {removed} records removed")


def list_requests(db: Session, user, status=None) -> list:
    query = db.query(LeaveRequest)
    if user.role == "student":
        if not user.student:
            return []
        query = query.filter(LeaveRequest.student_id == user.student.id)
    elif user.role == "teacher":
        query = query.filter(LeaveRequest.class_id.in_(attendance_service.authorized_class_ids(db, user)))
    if status:
        query = query.filter(LeaveRequest.status == status)
    return query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).all()
