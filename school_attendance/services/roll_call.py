# school_attendance/services/roll_call.py
"""
Roll calls: live attendance sessions for one class and roll-call type.

Lifecycle is ``in_progress -> completed | cancelled`` and a cancelled roll
call may be restored to ``in_progress``. Completing writes every absentee
as a ``leave`` attendance record of the type's leave type.
"""
import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from school_attendance.core.exceptions import InvalidStateError, NotFoundError, PermissionDeniedError
from school_attendance.db.models.attendance import AttendanceRecord
from school_attendance.db.models.roll_call import RollCall, RollCallRecord, RollCallType
from school_attendance.db.models.student import Student
from school_attendance.db.models.time_slot import TimeSlot
from school_attendance.services import attendance as attendance_service

logger = logging.getLogger(__name__)

STATUS_TYPE_NAMES = {
    "absent": "旷课",
    "late": "迟到",
    "early_leave": "早退",
}


def _int_ids(values):
    result = []
    for value in values or []:
        try:
            result.append(int(value))
        except (TypeError, ValueError):
            continue
    return result


def display_label(details: dict, input_config: Optional[dict]) -> str:
    """Label of a leave record as shown next to a roll-call entry."""
    if details.get("display_label"):
        return details["display_label"]
    if details.get("text"):
        label = details["text"]
        if isinstance(details.get("period_names"), list) and details["period_names"]:
            label += "-" + "、".join(details["period_names"])
        return label
    if details.get("time_slot_name"):
        return details["time_slot_name"]
    if details.get("option_label"):
        return details["option_label"]
    option = details.get("option")
    if option and isinstance(option, str):
        for item in (input_config or {}).get("options") or []:
            if item.get("key") == option:
                return item.get("label") or option
        return option
    return "全天"


def _option_label(details: dict, input_config: Optional[dict]) -> str:
    option = details["option"]
    label = details.get("option_label")
    if not label:
        for item in (input_config or {}).get("options") or []:
            if item.get("key") == option:
                label = item.get("label") or option
                break
    return label or option


def _matches_type_name(option_label: str, type_name: str) -> bool:
    normalized_option = option_label.replace("操", "")
    normalized_type = type_name.replace("点名", "").replace("操", "")
    return normalized_option == normalized_type or option_label in type_name


def leave_info(db: Session, student: Student, when: datetime, roll_call_type: Optional[RollCallType]) -> Optional[dict]:
    """
    The student's existing attendance mark that covers this roll call, if any.

    Roll-call-sourced records are ignored. Leave and excused records count
    only when approved or teacher-marked; the newest record wins.
    """
    type_period_ids = _int_ids(roll_call_type.period_ids if roll_call_type else None)
    type_name = roll_call_type.name if roll_call_type else ""

    records = db.query(AttendanceRecord).filter(
        AttendanceRecord.student_id == student.id,
        AttendanceRecord.date == when.date(),
        AttendanceRecord.status.in_(("leave", "excused", "absent", "late", "early_leave")),
        AttendanceRecord.source_type != "roll_call",
        or_(
            AttendanceRecord.status.in_(("absent", "late", "early_leave")),
            AttendanceRecord.approval_status.is_(None),
            AttendanceRecord.approval_status == "approved",
        ),
    ).order_by(AttendanceRecord.updated_at.desc(), AttendanceRecord.id.desc()).all()

    for row in records:
        details = row.details or {}
        leave_type = row.leave_type
        type_label = leave_type.name if leave_type else STATUS_TYPE_NAMES.get(row.status, "请假")
        input_config = leave_type.input_config if leave_type else None

        if isinstance(details.get("period_ids"), list) and details["period_ids"]:
            record_period_ids = _int_ids(details["period_ids"])
        elif isinstance(details.get("periods"), list) and details["periods"]:
            record_period_ids = _int_ids(details["periods"])
        elif row.period_id:
            record_period_ids = [row.period_id]
        else:
            record_period_ids = []

        info = {
            "leave_type_id": row.leave_type_id,
            "detail": f"{type_label}({display_label(details, input_config)})",
            "status": row.status,
        }

        if row.status in ("late", "early_leave"):
            if type_period_ids and set(record_period_ids) & set(type_period_ids):
                return info
            continue

        if type_period_ids and record_period_ids:
            if set(record_period_ids) & set(type_period_ids):
                return info
            continue

        option = details.get("option")
        if option and isinstance(option, str):
            label = _option_label(details, input_config)
            if _matches_type_name(label, type_name):
                return {**info, "detail": f"{type_label}({label})"}
            continue

        slot_id = details.get("time_slot_id")
        if slot_id:
            slot = db.query(TimeSlot).filter(TimeSlot.id == slot_id).first()
            if slot:
                slot_info = {**info, "detail": f"{type_label}({slot.name})"}
                if type_period_ids:
                    if set(_int_ids(slot.period_ids)) & set(type_period_ids):
                        return slot_info
                elif slot.time_start and slot.time_end:
                    moment = when.strftime("%H:%M:%S")
                    if slot.time_start <= moment <= slot.time_end:
                        return slot_info
                continue

        if not record_period_ids:
            return info

    return None


def get_roll_call(db: Session, roll_call_id: int) -> RollCall:
    roll_call = db.query(RollCall).filter(RollCall.id == roll_call_id).first()
    if not roll_call:
        raise NotFoundError("点名不存在")
    return roll_call


def ensure_access(db: Session, user, roll_call: RollCall):
    if user.role == "admin":
        return
    if user.role == "teacher" and roll_call.class_id in attendance_service.authorized_class_ids(db, user):
        return
    raise PermissionDeniedError("Unauthorized")


def _refresh_counts(roll_call: RollCall):
    roll_call.present_count = sum(1 for r in roll_call.records if r.status == "present")
    roll_call.on_leave_count = sum(1 for r in roll_call.records if r.status == "on_leave")


def list_types(db: Session, user, class_id: Optional[int] = None) -> list:
    query = db.query(RollCallType).filter(RollCallType.is_active.is_(True))
    if user.role != "admin":
        query = query.filter(RollCallType.class_id.in_(attendance_service.authorized_class_ids(db, user)))
    if class_id:
        query = query.filter(RollCallType.class_id == class_id)
    return query.order_by(RollCallType.sort_order, RollCallType.id).all()


def create_type(db: Session, user, payload) -> RollCallType:
    attendance_service.ensure_class_access(db, user, payload.class_id)
    roll_call_type = RollCallType(**payload.model_dump())
    db.add(roll_call_type)
    db.commit()
    db.refresh(roll_call_type)
    return roll_call_type


def _type_for_class(db: Session, roll_call_type: RollCallType, class_id: int) -> RollCallType:
    """Same-named type of another class, created on demand."""
    if roll_call_type.class_id == class_id:
        return roll_call_type
    existing = db.query(RollCallType).filter(
        RollCallType.class_id == class_id,
        RollCallType.name == roll_call_type.name,
    ).first()
    if existing:
        return existing
    copy = RollCallType(
        class_id=class_id,
        name=roll_call_type.name,
        description=roll_call_type.description,
        leave_type_id=roll_call_type.leave_type_id,
        period_ids=roll_call_type.period_ids,
        is_active=True,
    )
    db.add(copy)
    db.flush()
    return copy


def create(db: Session, user, type_id: int, roll_call_time: datetime, notes=None, class_ids=None) -> list:
    """Start one roll call per class, pre-setting students already on leave."""
    roll_call_type = db.query(RollCallType).filter(RollCallType.id == type_id).first()
    if not roll_call_type:
        raise NotFoundError("点名类型不存在")

    if user.role == "admin":
        class_ids = class_ids or [roll_call_type.class_id]
    elif user.role == "teacher":
        attendance_service.ensure_class_access(db, user, roll_call_type.class_id)
        class_ids = [roll_call_type.class_id]
    else:
        raise PermissionDeniedError("Unauthorized")

    created = []
    for class_id in class_ids:
        class_type = _type_for_class(db, roll_call_type, class_id)
        students = db.query(Student).filter(Student.class_id == class_id).order_by(Student.student_no).all()

        roll_call = RollCall(
            class_id=class_id,
            roll_call_type_id=class_type.id,
            roll_call_time=roll_call_time,
            created_by=user.id,
            status="in_progress",
            total_students=len(students),
            notes=notes,
        )
        db.add(roll_call)
        db.flush()

        for student in students:
            info = leave_info(db, student, roll_call_time, class_type)
            roll_call.records.append(RollCallRecord(
                student_id=student.id,
                status="on_leave" if info else "pending",
                leave_type_id=info["leave_type_id"] if info else None,
                leave_detail=info["detail"] if info else None,
                leave_status=info["status"] if info else None,
            ))
        _refresh_counts(roll_call)
        created.append(roll_call)

    db.commit()
    for roll_call in created:
        db.refresh(roll_call)
    logger.info(f"User {user.id} started {len(created)} roll call(s) of type {type_id}")
    return created


def refresh(db: Session, roll_call: RollCall) -> RollCall:
    """Pick up attendance marks made after the roll call started."""
    for record in roll_call.records:
        if record.status == "on_leave" or record.student is None:
            continue
        info = leave_info(db, record.student, roll_call.roll_call_time, roll_call.roll_call_type)
        if info:
            record.status = "on_leave"
            record.leave_type_id = info["leave_type_id"]
            record.leave_detail = info["detail"]
            record.leave_status = info["status"]

    on_leave = sum(1 for r in roll_call.records if r.status == "on_leave")
    if roll_call.on_leave_count != on_leave:
        roll_call.on_leave_count = on_leave
    db.commit()
    db.refresh(roll_call)
    return roll_call


def detail(db: Session, user, roll_call_id: int) -> dict:
    roll_call = get_roll_call(db, roll_call_id)
    ensure_access(db, user, roll_call)
    refresh(db, roll_call)
    return {"roll_call": roll_call, "can_modify_records": True}


def mark(db: Session, user, roll_call: RollCall, student_ids, is_present: bool) -> int:
    ensure_access(db, user, roll_call)
    if roll_call.status != "in_progress":
        raise InvalidStateError("Roll call is not in progress")

    wanted = set(student_ids)
    now = datetime.utcnow()
    for record in roll_call.records:
        if record.student_id not in wanted or record.status == "on_leave":
            continue
        record.status = "present" if is_present else "pending"
        record.marked_at = now if is_present else None
        record.marked_by = user.id if is_present else None

    _refresh_counts(roll_call)
    db.commit()
    return roll_call.present_count


def _absence_details(roll_call: RollCall, roll_call_type: RollCallType, record: RollCallRecord) -> dict:
    return {
        "roll_call_type": roll_call_type.name,
        "roll_call_time": roll_call.roll_call_time.strftime("%H:%M"),
        "original_status": "absent",
        "roll_call_record_id": record.id,
    }


def _write_absence(db: Session, roll_call: RollCall, record: RollCallRecord):
    """Record one absentee as ``leave`` per configured period, or for the whole day."""
    roll_call_type = roll_call.roll_call_type
    student = record.student
    day = roll_call.roll_call_time.date()
    period_ids = _int_ids(roll_call_type.period_ids)
    base = _absence_details(roll_call, roll_call_type, record)

    if not period_ids:
        existing = db.query(AttendanceRecord).filter(
            AttendanceRecord.student_id == student.id,
            AttendanceRecord.date == day,
            AttendanceRecord.period_id.is_(None),
            AttendanceRecord.source_type == "roll_call",
            AttendanceRecord.source_id == roll_call.id,
        ).first()
        if existing:
            existing.status = "leave"
            existing.leave_type_id = roll_call_type.leave_type_id
            existing.details = base
        else:
            db.add(AttendanceRecord(
                student_id=student.id,
                class_id=roll_call.class_id,
                date=day,
                period_id=None,
                status="leave",
                leave_type_id=roll_call_type.leave_type_id,
                details=base,
                source_type="roll_call",
                source_id=roll_call.id,
            ))
        return

    for index, period_id in enumerate(period_ids):
        row = attendance_service.record(
            db, student, day, period_id, "leave",
            leave_type_id=roll_call_type.leave_type_id,
            details={**base, "period_index": index + 1, "total_periods": len(period_ids)},
            source_type="roll_call",
            source_id=roll_call.id,
            commit=False,
        )
        row.is_self_applied = False


def complete(db: Session, user, roll_call: RollCall, records=None) -> RollCall:
    ensure_access(db, user, roll_call)
    if roll_call.status != "in_progress":
        raise InvalidStateError("Roll call is not in progress")

    by_student = {r.student_id: r for r in roll_call.records}
    for item in records or []:
        record = by_student.get(item.student_id)
        if record is None or record.status == "on_leave":
            continue
        record.status = item.status
        record.marked_at = item.marked_at
        record.marked_by = user.id if item.status == "present" else None

    for record in roll_call.records:
        if record.status == "pending":
            record.status = "absent"
    db.flush()

    absentees = [r for r in roll_call.records if r.status == "absent"]
    for record in absentees:
        _write_absence(db, roll_call, record)

    _refresh_counts(roll_call)
    roll_call.status = "completed"
    roll_call.completed_at = datetime.utcnow()
    db.commit()
    db.refresh(roll_call)
    logger.info(f"Roll call {roll_call.id} completed by user {user.id}: {len(absentees)} absent")
    return roll_call


def cancel(db: Session, user, roll_call: RollCall) -> RollCall:
    ensure_access(db, user, roll_call)
    if roll_call.status != "in_progress":
        raise InvalidStateError("Only in-progress roll calls can be cancelled")
    roll_call.status = "cancelled"
    db.commit()
    logger.info(f"Roll call {roll_call.id} cancelled by user {user.id}")
    return roll_call


def restore(db: Session, user, roll_call: RollCall) -> RollCall:
    ensure_access(db, user, roll_call)
    if roll_call.status != "cancelled":
        raise InvalidStateError("只有已取消的点名才能被恢复")
    roll_call.status = "in_progress"
    db.commit()
    logger.info(f"Roll call {roll_call.id} restored by user {user.id}")
    return roll_call


def update_record(db: Session, user, roll_call: RollCall, record_id: int, status: str) -> RollCallRecord:
    """Change one entry; after completion the roll call's attendance rows follow."""
    ensure_access(db, user, roll_call)
    record = next((r for r in roll_call.records if r.id == record_id), None)
    if record is None:
        raise NotFoundError("点名记录不存在")

    record.status = status
    record.marked_at = datetime.utcnow()
    record.marked_by = user.id

    if roll_call.status == "completed":
        db.query(AttendanceRecord).filter(
            AttendanceRecord.source_type == "roll_call",
            AttendanceRecord.source_id == roll_call.id,
            AttendanceRecord.student_id == record.student_id,
        ).delete(synchronize_session=False)
        if status == "absent":
            _write_absence(db, roll_call, record)
        _refresh_counts(roll_call)

    db.commit()
    db.refresh(record)
    return record


def delete(db: Session, user, roll_call: RollCall):
    ensure_access(db, user, roll_call)
    db.query(AttendanceRecord).filter(
        AttendanceRecord.source_type == "roll_call",
        AttendanceRecord.source_id == roll_call.id,
    ).delete(synchronize_session=False)
    db.delete(roll_call)
    db.commit()
    logger.info(f"Roll call {roll_call.id} deleted by user {user.id}")


def list_roll_calls(db: Session, user, status=None, class_id=None, on_date: Optional[date] = None) -> list:
    query = db.query(RollCall)
    if user.role != "admin":
        query = query.filter(RollCall.class_id.in_(attendance_service.authorized_class_ids(db, user)))
    if status:
        query = query.filter(RollCall.status == status)
    if class_id:
        query = query.filter(RollCall.class_id == class_id)
    rows = query.order_by(RollCall.roll_call_time.desc(), RollCall.id.desc()).all()
    if on_date:
        rows = [r for r in rows if r.roll_call_time.date() == on_date]
    return rows


def stats(db: Session, user, scope: str = "today", today: Optional[date] = None, class_id=None) -> list:
    """Completed roll calls per type within ``scope`` with their absence totals."""
    if user.role not in ("admin", "teacher"):
        raise PermissionDeniedError("Unauthorized")
    class_ids = attendance_service.authorized_class_ids(db, user)
    if class_id:
        class_ids = [c for c in class_ids if c == class_id]
    if not class_ids:
        return []

    start, end = attendance_service.resolve_scope(db, scope, today)
    rows = db.query(RollCall).filter(
        RollCall.class_id.in_(class_ids),
        RollCall.status == "completed",
    ).all()

    grouped = {}
    for roll_call in rows:
        if not start <= roll_call.roll_call_time.date() <= end:
            continue
        entry = grouped.setdefault(roll_call.roll_call_type_id, {"count": 0, "absent_total": 0})
        entry["count"] += 1
        entry["absent_total"] += roll_call.total_students - roll_call.present_count - roll_call.on_leave_count

    types = {t.id: t for t in db.query(RollCallType).filter(RollCallType.id.in_(list(grouped))).all()}
    return [
        {
            "type_id": type_id,
            "type_name": types[type_id].name if type_id in types else "Unknown",
            "count": entry["count"],
            "absent_total": entry["absent_total"],
        }
        for type_id, entry in grouped.items()
    ]

