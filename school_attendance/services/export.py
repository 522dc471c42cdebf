# school_attendance/services/export.py
"""
Attendance export to an .xlsx workbook.

One row per student with a column per leave-type option (or a plain count
column for types without options) and one absence column per roll-call
type, followed by a "总计" summary row.
"""
import io
import logging
from datetime import date
from typing import List, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import Session

from school_attendance.core.calendar import scope_date_range
from school_attendance.core.exceptions import PermissionDeniedError, ValidationError
from school_attendance.db.models.attendance import AttendanceRecord
from school_attendance.db.models.leave_type import LeaveType
from school_attendance.db.models.roll_call import RollCall, RollCallRecord, RollCallType
from school_attendance.db.models.school_class import SchoolClass
from school_attendance.db.models.semester import Semester
from school_attendance.db.models.student import Student
from school_attendance.services import attendance as attendance_service

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# Options counted in days rather than occurrences
TIME_OPTIONS = ("morning_half", "afternoon_half", "full_day")
BASE_COLUMNS = ("student_no", "name", "class")

THIN = Side(style="thin")
BORDER = Border(left=THIN, right=THIN, top=THIN, bottom=THIN)
HEADER_FILL = PatternFill(start_color="E0E0E0", end_color="E0E0E0", fill_type="solid")
SUMMARY_FILL = PatternFill(start_color="FFF0C0", end_color="FFF0C0", fill_type="solid")


def _ensure_exporter(user):
    if user.role not in ("admin", "teacher"):
        raise PermissionDeniedError("没有导出权限")


def _semester(db: Session, semester_id: Optional[int]):
    query = db.query(Semester)
    if semester_id:
        return query.filter(Semester.id == semester_id).first()
    return query.filter(Semester.is_current.is_(True)).first()


def build_columns(leave_types, roll_call_types) -> List[dict]:
    columns = [
        {"key": "student_no", "label": "学号"},
        {"key": "name", "label": "姓名"},
        {"key": "class", "label": "班级"},
    ]
    for leave_type in leave_types:
        if leave_type.options:
            for option in leave_type.options:
                key = option.get("key", "")
                columns.append({
                    "key": f"leave_{leave_type.id}_{key}",
                    "label": f"{leave_type.name}({option.get('label') or key})",
                    "type": "leave_option",
                    "leave_type_id": leave_type.id,
                    "option_key": key,
                })
        else:
            columns.append({
                "key": f"leave_{leave_type.id}_count",
                "label": f"{leave_type.name}(次)",
                "type": "leave_count",
                "leave_type_id": leave_type.id,
            })
    for roll_call_type in roll_call_types:
        columns.append({
            "key": f"rollcall_{roll_call_type.id}",
            "label": f"{roll_call_type.name}缺勤(次)",
            "type": "rollcall",
            "roll_call_type_id": roll_call_type.id,
        })
    return columns


def _dates(days) -> str:
    return ", ".join(f"{d.month}/{d.day}" for d in days)


def _count_value(records, option_key=None):
    count = len(records)
    if not count:
        return ""
    if option_key in ("morning_half", "afternoon_half"):
        return count * 0.5
    return count


def build_rows(students, records_by_student, leave_types, roll_call_types, export_format,
               absences_by_student=None) -> List[dict]:
    absences_by_student = absences_by_student or {}
    rows = []
    for student in students:
        row = {
            "student_no": student.student_no,
            "name": student.name or "未知",
            "class": student.school_class.name if student.school_class else "",
        }
        records = records_by_student.get(student.id, [])

        for leave_type in leave_types:
            typed = [r for r in records if r.leave_type_id == leave_type.id]
            if leave_type.options:
                for option in leave_type.options:
                    key = option.get("key", "")
                    matched = [r for r in typed if (r.details or {}).get("option") == key]
                    column = f"leave_{leave_type.id}_{key}"
                    if export_format == "detail":
                        row[column] = _dates(r.date for r in matched)
                    else:
                        row[column] = _count_value(matched, key)
            else:
                column = f"leave_{leave_type.id}_count"
                if export_format == "detail":
                    row[column] = _dates(r.date for r in typed)
                else:
                    row[column] = _count_value(typed)

        absences = absences_by_student.get(student.id, [])
        for roll_call_type in roll_call_types:
            matched = [when for type_id, when in absences if type_id == roll_call_type.id]
            column = f"rollcall_{roll_call_type.id}"
            if export_format == "detail":
                row[column] = _dates(when.date() for when in matched)
            else:
                row[column] = len(matched) or ""
        rows.append(row)
    return rows


def build_summary(rows, columns) -> dict:
    summary = {"student_no": "总计", "name": "", "class": ""}
    for column in columns:
        key = column["key"]
        if key in BASE_COLUMNS:
            continue
        total = 0
        for row in rows:
            value = row.get(key, "")
            if isinstance(value, (int, float)):
                total += value
            elif isinstance(value, str) and "/" in value:
                # Detail cells hold comma separated dates
                total += value.count(",") + 1
        summary[key] = total if total > 0 else ""
    return summary


def build_filename(class_names, scope, today: date, semester=None) -> str:
    if len(class_names) > 2:
        classes = f"{class_names[0]}等{len(class_names)}个班级"
    else:
        classes = "_".join(class_names)

    if scope == "week":
        scope_name = f"{today.year}年第{today.isocalendar()[1]:02d}周"
    elif scope == "month":
        scope_name = f"{today.year}年{today.month}月"
    elif scope == "semester":
        scope_name = semester.name if semester else f"{today.year}年"
    else:
        scope_name = today.isoformat()
    return f"考勤记录_{classes}_{scope_name}_{today.strftime('%Y%m%d')}.xlsx"


def write_workbook(columns, rows, summary) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "考勤记录"

    sheet.append([c["label"] for c in columns])
    for row in rows:
        sheet.append([row.get(c["key"], "") for c in columns])
    sheet.append([summary.get(c["key"], "") for c in columns])

    for cell in sheet[1]:
        cell.font = Font(bold=True)
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center")
        cell.border = BORDER
    for data_row in sheet.iter_rows(min_row=2, max_row=sheet.max_row - 1):
        for cell in data_row:
            cell.border = BORDER
    for cell in sheet[sheet.max_row]:
        cell.font = Font(bold=True)
        cell.fill = SUMMARY_FILL
        cell.border = BORDER

    for index, column in enumerate(columns, start=1):
        width = max([len(str(column["label"]))] + [len(str(r.get(column["key"], ""))) for r in rows])
        sheet.column_dimensions[get_column_letter(index)].width = min(width * 2 + 2, 50)

    output = io.BytesIO()
    workbook.save(output)
    return output.getvalue()


def build_export(db: Session, user, scope: str = "today", semester_id: Optional[int] = None,
                 class_ids: Optional[list] = None, student_range: str = "all",
                 export_format: str = "count", leave_type_ids: Optional[list] = None,
                 include_roll_call: bool = True, roll_call_type_ids: Optional[list] = None,
                 today: Optional[date] = None):
    """Return ``(filename, xlsx bytes)`` for the requested filters."""
    _ensure_exporter(user)
    today = today or date.today()

    authorized = attendance_service.authorized_class_ids(db, user)
    if class_ids:
        class_ids = [c for c in class_ids if c in authorized]
    else:
        class_ids = authorized
    if not class_ids:
        raise ValidationError("没有可导出的班级")

    semester = _semester(db, semester_id) if scope == "semester" else None
    start, end = scope_date_range(scope, today=today, semester=semester)

    students = (
        db.query(Student)
        .filter(Student.class_id.in_(class_ids))
        .order_by(Student.student_no)
        .all()
    )
    if not students:
        raise ValidationError("暂无学生数据")

    leave_query = db.query(LeaveType)
    if leave_type_ids:
        leave_query = leave_query.filter(LeaveType.id.in_(leave_type_ids))
    leave_types = leave_query.order_by(LeaveType.id).all()

    roll_call_types = []
    if include_roll_call:
        type_query = db.query(RollCallType)
        if roll_call_type_ids:
            type_query = type_query.filter(RollCallType.id.in_(roll_call_type_ids))
        roll_call_types = type_query.order_by(RollCallType.id).all()

    student_ids = [s.id for s in students]
    records_by_student = {}
    records = db.query(AttendanceRecord).filter(
        AttendanceRecord.student_id.in_(student_ids),
        AttendanceRecord.date.between(start, end),
    ).order_by(AttendanceRecord.date).all()
    for row in records:
        records_by_student.setdefault(row.student_id, []).append(row)

    if student_range == "with_records":
        if not records_by_student:
            raise ValidationError("暂无考勤数据")
        students = [s for s in students if s.id in records_by_student]
    if not students:
        raise ValidationError("暂无数据")

    absences_by_student = {}
    if roll_call_types:
        absent_rows = (
            db.query(RollCallRecord.student_id, RollCall.roll_call_type_id, RollCall.roll_call_time)
            .join(RollCall, RollCallRecord.roll_call_id == RollCall.id)
            .filter(RollCallRecord.student_id.in_(student_ids), RollCallRecord.status == "absent")
            .all()
        )
        for student_id, type_id, when in absent_rows:
            if start <= when.date() <= end:
                absences_by_student.setdefault(student_id, []).append((type_id, when))

    columns = build_columns(leave_types, roll_call_types)
    rows = build_rows(students, records_by_student, leave_types, roll_call_types, export_format, absences_by_student)
    summary = build_summary(rows, columns)
    content = write_workbook(columns, rows, summary)

    class_names = [
        c.name for c in db.query(SchoolClass).filter(SchoolClass.id.in_(class_ids)).order_by(SchoolClass.id).all()
    ]
    filename = build_filename(class_names, scope, today, semester)
    logger.info(f"User {user.id} exported {len(rows)} students to {filename}")
    return filename, content


def export_options(db: Session, user) -> dict:
    _ensure_exporter(user)
    class_ids = attendance_service.authorized_class_ids(db, user)
    classes = (
        db.query(SchoolClass).filter(SchoolClass.id.in_(class_ids)).order_by(SchoolClass.id).all()
        if class_ids else []
    )
    return {
        "classes": [{"id": c.id, "name": c.name} for c in classes],
        "leave_types": [
            {"id": lt.id, "name": lt.name, "slug": lt.slug}
            for lt in db.query(LeaveType).order_by(LeaveType.id).all()
        ],
        "roll_call_types": [
            {"id": rt.id, "name": rt.name}
            for rt in db.query(RollCallType).order_by(RollCallType.id).all()
        ],
    }
