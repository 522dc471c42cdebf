# school_attendance/api/roll_calls.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from school_attendance.api.deps import get_db, require_staff
from school_attendance.schemas.roll_call import (
    RollCallComplete,
    RollCallCreate,
    RollCallDetail,
    RollCallMark,
    RollCallOut,
    RollCallRecordOut,
    RollCallRecordUpdate,
    RollCallTypeCreate,
    RollCallTypeOut,
)
from school_attendance.services import roll_call as roll_call_service

router = APIRouter()


def _detail(roll_call, can_modify_records: bool = True) -> RollCallDetail:
    detail = RollCallDetail.model_validate(roll_call)
    detail.can_modify_records = can_modify_records
    return detail


@router.get("/roll-call-types", response_model=List[RollCallTypeOut])
def list_types(
    class_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user=Depends(require_staff),
):
    return roll_call_service.list_types(db, current_user, class_id)


@router.post("/roll-call-types", response_model=RollCallTypeOut, status_code=201)
def create_type(payload: RollCallTypeCreate, db: Session = Depends(get_db), current_user=Depends(require_staff)):
    return roll_call_service.create_type(db, current_user, payload)


@router.get("/roll-calls", response_model=List[RollCallOut])
def list_roll_calls(
    status: Optional[str] = None,
    class_id: Optional[int] = None,
    date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user=Depends(require_staff),
):
    return roll_call_service.list_roll_calls(db, current_user, status=status, class_id=class_id, on_date=date)


@router.get("/roll-calls/in-progress", response_model=List[RollCallOut])
def in_progress(db: Session = Depends(get_db), current_user=Depends(require_staff)):
    return roll_call_service.list_roll_calls(db, current_user, status="in_progress")


@router.get("/roll-calls/stats")
def stats(
    scope: str = "today",
    class_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user=Depends(require_staff),
):
    return roll_call_service.stats(db, current_user, scope, class_id=class_id)


@router.post("/roll-calls", status_code=201)
def create_roll_call(payload: RollCallCreate, db: Session = Depends(get_db), current_user=Depends(require_staff)):
    created = roll_call_service.create(
        db, current_user,
        payload.roll_call_type_id,
        payload.roll_call_time,
        notes=payload.notes,
        class_ids=payload.class_ids,
    )
    if len(created) == 1:
        return _detail(created[0])
    return {
        "message": f"成功为 {len(created)} 个班级创建点名",
        "roll_calls": [_detail(r) for r in created],
    }


@router.get("/roll-calls/{roll_call_id}", response_model=RollCallDetail)
def show(roll_call_id: int, db: Session = Depends(get_db), current_user=Depends(require_staff)):
    result = roll_call_service.detail(db, current_user, roll_call_id)
    return _detail(result["roll_call"], result["can_modify_records"])


@router.post("/roll-calls/{roll_call_id}/mark")
def mark(
    roll_call_id: int,
    payload: RollCallMark,
    db: Session = Depends(get_db),
    current_user=Depends(require_staff),
):
    roll_call = roll_call_service.get_roll_call(db, roll_call_id)
    present = roll_call_service.mark(db, current_user, roll_call, payload.student_ids, payload.is_present)
    return {"message": "Marked", "present_count": present}


@router.post("/roll-calls/{roll_call_id}/complete", response_model=RollCallDetail)
def complete(
    roll_call_id: int,
    payload: Optional[RollCallComplete] = None,
    db: Session = Depends(get_db),
    current_user=Depends(require_staff),
):
    roll_call = roll_call_service.get_roll_call(db, roll_call_id)
    records = payload.records if payload else None
    return _detail(roll_call_service.complete(db, current_user, roll_call, records))


@router.post("/roll-calls/{roll_call_id}/cancel")
def cancel(roll_call_id: int, db: Session = Depends(get_db), current_user=Depends(require_staff)):
    roll_call = roll_call_service.get_roll_call(db, roll_call_id)
    roll_call_service.cancel(db, current_user, roll_call)
    return {"message": "Cancelled"}


@router.post("/roll-calls/{roll_call_id}/restore")
def restore(roll_call_id: int, db: Session = Depends(get_db), current_user=Depends(require_staff)):
    roll_call = roll_call_service.get_roll_call(db, roll_call_id)
    roll_call_service.restore(db, current_user, roll_call)
    return {"message": "点名已恢复"}


@router.put("/roll-calls/{roll_call_id}/records/{record_id}", response_model=RollCallRecordOut)
def update_record(
    roll_call_id: int,
    record_id: int,
    payload: RollCallRecordUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(require_staff),
):
    roll_call = roll_call_service.get_roll_call(db, roll_call_id)
    return roll_call_service.update_record(db, current_user, roll_call, record_id, payload.status)


@router.delete("/roll-calls/{roll_call_id}")
def delete(roll_call_id: int, db: Session = Depends(get_db), current_user=Depends(require_staff)):
    roll_call = roll_call_service.get_roll_call(db, roll_call_id)
    roll_call_service.delete(db, current_user, roll_call)
    return {"message": "Roll call deleted successfully"}
