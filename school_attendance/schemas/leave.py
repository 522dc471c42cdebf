# school_attendance/schemas/leave.py
from pydantic import BaseModel, model_validator
from datetime import date, datetime
from typing import Any, Dict, List, Optional


class LeaveTypeBase(BaseModel):
    name: str
    slug: str
    description: Optional[str] = None
    is_active: bool = True
    student_requestable: bool = False
    color: Optional[str] = None
    input_type: str = "none"
    input_config: Optional[Dict[str, Any]] = None


class LeaveTypeCreate(LeaveTypeBase):
    pass


class LeaveTypeUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    student_requestable: Optional[bool] = None
    color: Optional[str] = None
    input_type: Optional[str] = None
    input_config: Optional[Dict[str, Any]] = None


class LeaveTypeOut(LeaveTypeBase):
    id: int

    class Config:
        from_attributes = True


class LeaveRequestCreate(BaseModel):
    leave_type_id: int
    start_date: date
    end_date: date
    time_slot_id: Optional[int] = None
    # Explicit sessions (period IDs); empty means whole day unless a slot is given
    sessions: Optional[List[int]] = None
    details: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None
    images: Optional[List[str]] = None
    # Admins and teachers may file on behalf of a student
    student_id: Optional[int] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class LeaveRequestReject(BaseModel):
    reason: Optional[str] = None


class LeaveRequestOut(BaseModel):
    id: int
    student_id: int
    class_id: int
    leave_type_id: int
    start_date: date
    end_date: date
    time_slot_id: Optional[int] = None
    period_ids: Optional[List[int]] = None
    details: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None
    images: Optional[List[str]] = None
    status: str
    approver_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    class Config:
        from_attributes = True
