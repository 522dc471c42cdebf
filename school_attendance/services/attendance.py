# school_attendance/services/attendance.py
"""
Attendance records: upsert rules, per-day views, statistics and the
daily auto-mark job.

A record with ``period_id`` None covers the whole day. Records produced by
duration options ("上午", "下午") or multi-period selections stay whole-day
rows and are told apart by ``details.option`` / ``details.period_ids``.
"""
import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from school_attendance.core.calendar import scope_date_range
from school_attendance.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from school_attendance.core.periods import describe_periods
from school_attendance.crud import settings as crud_settings
from school_attendance.db.models.attendance import AttendanceRecord, ATTENDANCE_STATUSES
from school_attendance.db.models.leave_request import LeaveRequest
from school_attendance.db.models.leave_type import LeaveType
from school_attendance.db.models.school_class import SchoolClass
from school_attendance.db.models.semester import Semester
from school_attendance.db.models.student import Student
from school_attendance.schemas.attendance import AttendanceOut

logger = logging.getLogger(__name__)

FULL_DAY_OPTIONS = ("full_day", "全天")
# Only these leave types wipe the day's period records when taken for a full day
FULL_DAY_EXCLUSIVE_SLUGS = ("sick_leave", "personal_leave")

OPTION_LABELS = {
    "morning_half": "上午",
    "afternoon_half": "下午",
    "full_day": "全天",
}


def serialize_record(record: AttendanceRecord) -> dict:
    return AttendanceOut.model_validate(record).model_dump(mode="json")


def authorized_class_ids(db: Session, user) -> list:
    if user.role == "admin":
        rows = db.query(SchoolClass.id).filter(SchoolClass.is_graduated.is_(False)).all()
    elif user.role == "teacher":
        rows = db.query(SchoolClass.id).filter(SchoolClass.teacher_id == user.id).all()
    else:
        return []
    return [row[0] for row in rows]


def ensure_class_access(db: Session, user, class_id: int):
    if user.role == "admin":
        return
    if class_id not in authorized_class_ids(db, user):
        raise PermissionDeniedError("无权操作该班级")


def get_student(db: Session, student_id: int) -> Student:
    student = db.query(Student).filter(Student.id == student_id).first()
    if not student:
        raise NotFoundError("学生不存在")
    return student


def current_semester(db: Session) -> Optional[Semester]:
    return db.query(Semester).filter(Semester.is_current.is_(True)).first()


def _details_key(details):
    details = details or {}
    return details.get("option"), details.get("period_ids")


def _same_period_ids(left, right) -> bool:
    try:
        return sorted(int(v) for v in left or []) == sorted(int(v) for v in right or [])
    except (TypeError, ValueError):
        return False


def record(db: Session, student: Student, day: date, period_id: Optional[int], status: str,
           leave_type_id: Optional[int] = None, details: Optional[dict] = None,
           note: Optional[str] = None, source_type: str = "manual", source_id: Optional[int] = None,
           commit: bool = True) -> AttendanceRecord:
    """
    Create or update the attendance record of ``student`` for ``day``.

    Option / multi-period whole-day records are matched on
    ``(leave type, period_ids or option)``; everything else on
    ``(student, date, period_id)``.
    """
    if status not in ATTENDANCE_STATUSES:
        raise ValidationError(f"Unknown attendance status: {status}")

    option, period_ids = _details_key(details)
    existing = None

    if period_id is None and (option is not None or period_ids):
        candidates = db.query(AttendanceRecord).filter(
            AttendanceRecord.student_id == student.id,
            AttendanceRecord.date == day,
            AttendanceRecord.period_id.is_(None),
            AttendanceRecord.leave_type_id == leave_type_id,
        ).all()
        for candidate in candidates:
            other_option, other_period_ids = _details_key(candidate.details)
            if period_ids:
                if _same_period_ids(period_ids, other_period_ids):
                    existing = candidate
                    break
            elif other_option == option:
                existing = candidate
                break
    else:
        query = db.query(AttendanceRecord).filter(
            AttendanceRecord.student_id == student.id,
            AttendanceRecord.date == day,
        )
        if period_id is None:
            query = query.filter(AttendanceRecord.period_id.is_(None))
        else:
            query = query.filter(AttendanceRecord.period_id == period_id)
        existing = query.first()

    if existing:
        existing.status = status
        existing.leave_type_id = leave_type_id
        existing.details = details
        existing.note = note
        existing.source_type = source_type
        existing.source_id = source_id
        existing.class_id = student.class_id
        row = existing
    else:
        row = AttendanceRecord(
            student_id=student.id,
            class_id=student.class_id,
            date=day,
            period_id=period_id,
            status=status,
            leave_type_id=leave_type_id,
            details=details,
            note=note,
            source_type=source_type,
            source_id=source_id,
        )
        db.add(row)
    db.flush()

    if period_id is None and option in FULL_DAY_OPTIONS and leave_type_id:
        leave_type = db.query(LeaveType).filter(LeaveType.id == leave_type_id).first()
        if leave_type and leave_type.slug in FULL_DAY_EXCLUSIVE_SLUGS:
            removed = db.query(AttendanceRecord).filter(
                AttendanceRecord.student_id == student.id,
                AttendanceRecord.date == day,
                AttendanceRecord.id != row.id,
            ).delete(synchronize_session=False)
            logger.info(f"Full-day {leave_type.name} for student {student.id} on {day}, removed {removed} records")

    if commit:
        db.commit()
        db.refresh(row)
    return row


def bulk_mark(db: Session, user, day: date, period_id: Optional[int], records: list) -> list:
    saved = []
    for entry in records:
        student = get_student(db, entry.student_id)
        ensure_class_access(db, user, student.class_id)
        saved.append(record(
            db, student, day, period_id, entry.status,
            leave_type_id=entry.leave_type_id,
            details=entry.details,
            note=entry.note,
            commit=False,
        ))
    db.commit()
    logger.info(f"Bulk update by user {user.id}: {len(saved)} records on {day} (period {period_id})")
    return [serialize_record(row) for row in saved]


def delete_records(db: Session, student_id: int, day: date, period_id: Optional[int] = None,
                   option: Optional[str] = None, source_type: Optional[str] = None,
                   source_id: Optional[int] = None, status: Optional[str] = None) -> int:
    query = db.query(AttendanceRecord).filter(
        AttendanceRecord.student_id == student_id,
        AttendanceRecord.date == day,
    )
    if period_id is None:
        query = query.filter(AttendanceRecord.period_id.is_(None))
    else:
        query = query.filter(AttendanceRecord.period_id == period_id)
    if source_type:
        query = query.filter(AttendanceRecord.source_type == source_type)
    if status:
        query = query.filter(AttendanceRecord.status == status)
    if source_id is not None:
        query = query.filter(AttendanceRecord.source_id == source_id)

    rows = query.all()
    if option:
        rows = [r for r in rows if (r.details or {}).get("option") == option]
    for row in rows:
        db.delete(row)
    db.commit()
    return len(rows)


def list_records(db: Session, user, start: Optional[date] = None, end: Optional[date] = None):
    query = db.query(AttendanceRecord)
    if user.role == "student":
        if not user.student:
            return []
        query = query.filter(AttendanceRecord.student_id == user.student.id)
    elif user.role == "teacher":
        query = query.filter(AttendanceRecord.class_id.in_(authorized_class_ids(db, user)))
    if start and end:
        query = query.filter(AttendanceRecord.date.between(start, end))
    return query.order_by(AttendanceRecord.date, AttendanceRecord.id).all()


def overview(db: Session, user, day: date) -> list:
    """Authorized classes with each student's records on ``day``."""
    class_ids = authorized_class_ids(db, user)
    if not class_ids:
        return []
    classes = db.query(SchoolClass).filter(SchoolClass.id.in_(class_ids)).order_by(SchoolClass.id).all()

    records = db.query(AttendanceRecord).filter(
        AttendanceRecord.class_id.in_(class_ids),
        AttendanceRecord.date == day,
    ).order_by(AttendanceRecord.id).all()
    by_student = {}
    for row in records:
        by_student.setdefault(row.student_id, []).append(serialize_record(row))

    return [
        {
            "id": school_class.id,
            "name": school_class.name,
            "students": [
                {
                    "id": student.id,
                    "name": student.name,
                    "student_no": student.student_no,
                    "gender": student.gender,
                    "attendance": by_student.get(student.id, []),
                }
                for student in school_class.students
            ],
        }
        for school_class in classes
    ]


def day_status(db: Session, student_id: int, day: date) -> dict:
    records = db.query(AttendanceRecord).filter(
        AttendanceRecord.student_id == student_id,
        AttendanceRecord.date == day,
    ).all()
    if not records:
        return {"type": "no_record", "status": None, "records": []}

    # Whole-day rows first, then by period
    records.sort(key=lambda r: (r.period_id is not None, r.period_id or 0))
    if len(records) == 1 and records[0].period_id is None:
        return {
            "type": "full_day",
            "status": records[0].status,
            "records": [serialize_record(records[0])],
        }

    full_day = next((r for r in records if r.period_id is None), None)
    return {
        "type": "periods",
        "default_status": full_day.status if full_day else "present",
        "full_day_record": serialize_record(full_day) if full_day else None,
        "records": [serialize_record(r) for r in records if r.period_id is not None],
    }


def statistics(db: Session, student_id: int, start: date, end: date) -> dict:
    records = db.query(AttendanceRecord).filter(
        AttendanceRecord.student_id == student_id,
        AttendanceRecord.date.between(start, end),
        AttendanceRecord.period_id.isnot(None),
    ).all()

    stats = {"total_periods": len(records)}
    for status in ("present", "late", "absent", "excused", "early_leave", "leave"):
        stats[status] = sum(1 for r in records if r.status == status)

    if stats["total_periods"]:
        rate = (stats["present"] + stats["late"]) / stats["total_periods"] * 100
        stats["attendance_rate"] = round(rate, 2)
    else:
        stats["attendance_rate"] = 0
    return stats


def resolve_scope(db: Session, scope: str, today: Optional[date]):
    if scope not in ("today", "week", "month", "semester"):
        raise ValidationError(f"Unknown scope: {scope}")
    return scope_date_range(scope, today=today, semester=current_semester(db))


def dashboard_stats(db: Session, user, scope: str = "today", today: Optional[date] = None) -> dict:
    """Distinct students per status and per leave type within ``scope``."""
    start, end = resolve_scope(db, scope, today)
    class_ids = authorized_class_ids(db, user)

    total_students = 0
    records = []
    if class_ids:
        total_students = db.query(Student).filter(Student.class_id.in_(class_ids)).count()
        records = db.query(AttendanceRecord).filter(
            AttendanceRecord.class_id.in_(class_ids),
            AttendanceRecord.date.between(start, end),
        ).all()

    by_status = {status: set() for status in ATTENDANCE_STATUSES}
    by_leave_type = {}
    for row in records:
        by_status.setdefault(row.status, set()).add(row.student_id)
        if row.leave_type_id:
            by_leave_type.setdefault(row.leave_type_id, set()).add(row.student_id)

    leave_types = db.query(LeaveType).filter(LeaveType.is_active.is_(True)).order_by(LeaveType.id).all()
    return {
        "scope": scope,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "total_students": total_students,
        "status_counts": {status: len(ids) for status, ids in by_status.items()},
        "leave_types": [
            {
                "id": lt.id,
                "name": lt.name,
                "slug": lt.slug,
                "color": lt.color,
                "count": len(by_leave_type.get(lt.id, ())),
            }
            for lt in leave_types
        ],
    }


def _detail_text(row: AttendanceRecord, periods, time_slots) -> str:
    details = row.details or {}
    if details.get("display_label"):
        return details["display_label"]
    period_ids = details.get("period_ids") or details.get("periods")
    if period_ids:
        return describe_periods(period_ids, periods, time_slots)
    if details.get("time"):
        return details["time"]
    if details.get("option"):
        return details.get("option_label") or OPTION_LABELS.get(details["option"], details["option"])
    if row.period_id is not None:
        return describe_periods([row.period_id], periods, time_slots)
    return ""


def status_details(db: Session, user, scope: str, status: str, leave_type_id: Optional[int] = None,
                   today: Optional[date] = None) -> list:
    """Students with at least one ``status`` record in ``scope``, for the dashboard drill-down."""
    start, end = resolve_scope(db, scope, today)
    class_ids = authorized_class_ids(db, user)
    if not class_ids:
        return []

    query = db.query(AttendanceRecord).filter(
        AttendanceRecord.class_id.in_(class_ids),
        AttendanceRecord.date.between(start, end),
        AttendanceRecord.status == status,
    )
    if leave_type_id:
        query = query.filter(AttendanceRecord.leave_type_id == leave_type_id)

    grouped = {}
    for row in query.order_by(AttendanceRecord.date, AttendanceRecord.id).all():
        grouped.setdefault(row.student_id, []).append(row)
    if not grouped:
        return []

    periods = crud_settings.load_periods(db)
    time_slots = crud_settings.load_time_slots(db)
    students = db.query(Student).filter(Student.id.in_(list(grouped))).order_by(Student.student_no).all()

    result = []
    for student in students:
        rows = grouped[student.id]
        if scope == "today":
            detail = _detail_text(rows[0], periods, time_slots)
        else:
            detail = f"{len(rows)}次"
        result.append({
            "student_id": student.id,
            "student_no": student.student_no,
            "name": student.name or "-",
            "class": student.school_class.name if student.school_class else "-",
            "detail": detail,
            "records": [serialize_record(r) for r in rows],
        })
    return result


def calendar_feed(db: Session, user, start: date, end: date) -> dict:
    """A student's own records and overlapping leave requests in a date range."""
    if user.role != "student" or not user.student:
        raise PermissionDeniedError("仅学生可查看")
    student_id = user.student.id

    attendance = db.query(AttendanceRecord).filter(
        AttendanceRecord.student_id == student_id,
        AttendanceRecord.date.between(start, end),
    ).order_by(AttendanceRecord.date).all()
    leaves = db.query(LeaveRequest).filter(
        LeaveRequest.student_id == student_id,
        LeaveRequest.start_date <= end,
        LeaveRequest.end_date >= start,
    ).order_by(LeaveRequest.start_date).all()
    return {"attendance": attendance, "leaves": leaves}


def auto_mark(db: Session, day: date) -> dict:
    """
    Mark every student without a record on ``day``.

    Students covered by an approved leave request get ``leave``, the rest
    ``present``; both with ``source_type="auto"``. Re-running is a no-op.
    """
    counts = {"present": 0, "leave": 0}
    students = (
        db.query(Student)
        .join(SchoolClass, Student.class_id == SchoolClass.id)
        .filter(SchoolClass.is_graduated.is_(False))
        .all()
    )
    for student in students:
        exists = db.query(AttendanceRecord.id).filter(
            AttendanceRecord.student_id == student.id,
            AttendanceRecord.date == day,
        ).first()
        if exists:
            continue

        on_leave = db.query(LeaveRequest.id).filter(
            LeaveRequest.student_id == student.id,
            LeaveRequest.status == "approved",
            LeaveRequest.start_date <= day,
            LeaveRequest.end_date >= day,
        ).first()
        status = "leave" if on_leave else "present"
        db.add(AttendanceRecord(
            student_id=student.id,
            class_id=student.class_id,
            date=day,
            status=status,
            source_type="auto",
        ))
        counts[status] += 1

    db.commit()
    logger.info(f"Auto-attendance marking completed for {day}: {counts}")
    return counts


def run_auto_mark(db: Session, now: Optional[datetime] = None, force: bool = False) -> dict:
    """Run ``auto_mark`` for today once the configured HH:MM has passed."""
    now = now or datetime.now()
    configured = crud_settings.get_setting(db, crud_settings.AUTO_MARK_TIME_KEY)
    if not configured:
        raise ValidationError("Auto-mark time not configured")
    try:
        mark_time = datetime.strptime(configured, "%H:%M").time()
    except ValueError:
        raise ValidationError("Invalid time format in settings. Expected HH:MM.")

    if not force and now.time().replace(second=0, microsecond=0) < mark_time:
        return {"ran": False, "date": now.date().isoformat(), "configured": configured}

    counts = auto_mark(db, now.date())
    return {"ran": True, "date": now.date().isoformat(), **counts}
