# school_attendance/api/settings.py
import logging
from dataclasses import asdict
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from school_attendance.api.deps import get_db, get_current_user, require_admin
from school_attendance.crud import settings as crud_settings
from school_attendance.db.models.time_slot import TimeSlot
from school_attendance.schemas.settings import (
    CleanupPeriodRequest,
    SettingOut,
    SettingsUpdate,
    TimeSlotCreate,
    TimeSlotOut,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/settings", response_model=List[SettingOut])
def read_settings(db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    return crud_settings.list_settings(db)


@router.post("/settings", response_model=List[SettingOut])
def update_settings(payload: SettingsUpdate, db: Session = Depends(get_db), current_user=Depends(require_admin)):
    return crud_settings.update_settings(db, payload.settings)


@router.post("/settings/cleanup-period")
def cleanup_period(payload: CleanupPeriodRequest, db: Session = Depends(get_db), current_user=Depends(require_admin)):
    """Drop a removed period ID from every time slot that still references it."""
    updated = 0
    for slot in db.query(TimeSlot).all():
        ids = [int(pid) for pid in slot.period_ids or []]
        if payload.period_id in ids:
            slot.period_ids = [pid for pid in ids if pid != payload.period_id]
            updated += 1
    db.commit()
    logger.info(f"Period {payload.period_id} removed from {updated} time slots")
    return {"message": f"Period ID {payload.period_id} removed from {updated} time slots", "updated": updated}


@router.get("/class-periods")
def class_periods(db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    return [asdict(p) for p in crud_settings.load_periods(db)]


@router.get("/time-slots", response_model=List[TimeSlotOut])
def list_time_slots(db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    return db.query(TimeSlot).order_by(TimeSlot.sort_order, TimeSlot.id).all()


@router.post("/time-slots", response_model=TimeSlotOut, status_code=201)
def create_time_slot(payload: TimeSlotCreate, db: Session = Depends(get_db), current_user=Depends(require_admin)):
    slot = TimeSlot(**payload.model_dump())
    db.add(slot)
    db.commit()
    db.refresh(slot)
    return slot


def _get_slot(db: Session, slot_id: int) -> TimeSlot:
    slot = db.query(TimeSlot).filter(TimeSlot.id == slot_id).first()
    if not slot:
        raise HTTPException(status_code=404, detail="时段不存在")
    return slot


@router.put("/time-slots/{slot_id}", response_model=TimeSlotOut)
def update_time_slot(
    slot_id: int,
    payload: TimeSlotCreate,
    db: Session = Depends(get_db),
    current_user=Depends(require_admin),
):
    slot = _get_slot(db, slot_id)
    for field, value in payload.model_dump().items():
        setattr(slot, field, value)
    db.commit()
    db.refresh(slot)
    return slot


@router.delete("/time-slots/{slot_id}")
def delete_time_slot(slot_id: int, db: Session = Depends(get_db), current_user=Depends(require_admin)):
    db.delete(_get_slot(db, slot_id))
    db.commit()
    return {"message": "已删除"}
