# school_attendance/schemas/settings.py
from pydantic import BaseModel
from datetime import date
from typing import Any, Dict, List, Optional


class SettingOut(BaseModel):
    key: str
    value: Optional[str] = None

    class Config:
        from_attributes = True


class SettingsUpdate(BaseModel):
    # Non-string values are JSON-encoded before they are stored
    settings: Dict[str, Any]


class CleanupPeriodRequest(BaseModel):
    period_id: int


class TimeSlotBase(BaseModel):
    name: str
    time_start: Optional[str] = None
    time_end: Optional[str] = None
    period_ids: List[int] = []
    sort_order: int = 0
    is_active: bool = True


class TimeSlotCreate(TimeSlotBase):
    pass


class TimeSlotOut(TimeSlotBase):
    id: int

    class Config:
        from_attributes = True


class SemesterBase(BaseModel):
    name: str
    start_date: date
    total_weeks: int = 20
    holidays: Optional[List[str]] = None
    is_current: bool = False


class SemesterCreate(SemesterBase):
    pass


class SemesterOut(SemesterBase):
    id: int

    class Config:
        from_attributes = True
