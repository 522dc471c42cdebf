# school_attendance/schemas/roll_call.py
from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional, Literal


class RollCallTypeCreate(BaseModel):
    class_id: int
    name: str
    description: Optional[str] = None
    leave_type_id: Optional[int] = None
    period_ids: Optional[List[int]] = None
    is_active: bool = True
    sort_order: int = 0


class RollCallTypeOut(RollCallTypeCreate):
    id: int

    class Config:
        from_attributes = True


class RollCallCreate(BaseModel):
    roll_call_type_id: int
    roll_call_time: datetime
    notes: Optional[str] = None
    class_ids: Optional[List[int]] = None


class RollCallMark(BaseModel):
    student_ids: List[int]
    is_present: bool


class RollCallRecordIn(BaseModel):
    student_id: int
    status: Literal["present", "pending", "on_leave", "absent"]
    marked_at: Optional[datetime] = None


class RollCallComplete(BaseModel):
    records: Optional[List[RollCallRecordIn]] = None


class RollCallRecordUpdate(BaseModel):
    status: Literal["present", "absent", "on_leave"]


class RollCallRecordOut(BaseModel):
    id: int
    student_id: int
    status: str
    leave_type_id: Optional[int] = None
    leave_detail: Optional[str] = None
    leave_status: Optional[str] = None
    marked_at: Optional[datetime] = None
    marked_by: Optional[int] = None

    class Config:
        from_attributes = True


class RollCallOut(BaseModel):
    id: int
    class_id: int
    roll_call_type_id: int
    roll_call_time: datetime
    created_by: int
    status: str
    total_students: int
    present_count: int
    on_leave_count: int
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RollCallDetail(RollCallOut):
    records: List[RollCallRecordOut] = []
    can_modify_records: bool = False
