# school_attendance/crud/settings.py
import json
import logging

from sqlalchemy.orm import Session

from school_attendance.core.periods import parse_periods, to_time_slots
from school_attendance.db.models.system_setting import SystemSetting
from school_attendance.db.models.time_slot import TimeSlot

logger = logging.getLogger(__name__)

PERIODS_KEY = "attendance_periods"
DASHBOARD_STATS_KEY = "dashboard_stats_config"
AUTO_MARK_TIME_KEY = "attendance_auto_mark_time"

# Values stored as JSON-encoded strings
JSON_KEYS = (PERIODS_KEY, DASHBOARD_STATS_KEY)


def list_settings(db: Session):
    return db.query(SystemSetting).order_by(SystemSetting.key).all()


def get_setting(db: Session, key: str, default=None):
    row = db.query(SystemSetting).filter(SystemSetting.key == key).first()
    return row.value if row else default


def set_setting(db: Session, key: str, value) -> SystemSetting:
    if not isinstance(value, str) and value is not None:
        value = json.dumps(value, ensure_ascii=False)
    row = db.query(SystemSetting).filter(SystemSetting.key == key).first()
    if row:
        row.value = value
    else:
        row = SystemSetting(key=key, value=value)
        db.add(row)
    return row


def update_settings(db: Session, values: dict):
    for key, value in values.items():
        set_setting(db, key, value)
    db.commit()
    logger.info(f"Updated settings: {', '.join(sorted(values))}")
    return list_settings(db)


def load_periods(db: Session):
    return parse_periods(get_setting(db, PERIODS_KEY))


def load_time_slots(db: Session, active_only: bool = True):
    query = db.query(TimeSlot)
    if active_only:
        query = query.filter(TimeSlot.is_active.is_(True))
    return to_time_slots(query.order_by(TimeSlot.sort_order, TimeSlot.id).all())
