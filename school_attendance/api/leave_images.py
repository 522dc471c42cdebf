# school_attendance/api/leave_images.py
import uuid
from datetime import datetime
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel
from sqlalchemy.orm import Session

from school_attendance.api.deps import get_db, get_current_user
from school_attendance.core.config import settings
from school_attendance.crud import settings as crud_settings

router = APIRouter()

LEAVE_PREFIX = "leave/"


class ImagePath(BaseModel):
    path: str


def image_settings(db: Session) -> dict:
    return {
        "enabled": crud_settings.get_setting(db, "leave_image_upload_enabled", "true") == "true",
        "max_count": int(crud_settings.get_setting(db, "leave_image_max_count", "3")),
        "max_size_mb": int(crud_settings.get_setting(db, "leave_image_max_size_mb", "5")),
        "allowed_formats": crud_settings.get_setting(db, "leave_image_allowed_formats", "jpg,jpeg,png,gif,webp"),
    }


@router.get("/settings")
def read_image_settings(db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    return image_settings(db)


@router.post("/upload")
async def upload_image(
    image: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    config = image_settings(db)
    if not config["enabled"]:
        raise HTTPException(status_code=403, detail="图片上传功能已关闭")

    allowed = [ext.strip().lower() for ext in config["allowed_formats"].split(",") if ext.strip()]
    ext = image.filename.rsplit(".", 1)[-1].lower() if image.filename and "." in image.filename else ""
    if ext not in allowed:
        raise HTTPException(status_code=400, detail=f"只支持 {config['allowed_formats'].upper()} 格式")

    content = await image.read()
    if len(content) > config["max_size_mb"] * 1024 * 1024:
        raise HTTPException(status_code=400, detail=f"图片大小不能超过 {config['max_size_mb']}MB")

    now = datetime.now()
    relative = f"{LEAVE_PREFIX}{now:%Y}/{now:%m}/{uuid.uuid4().hex}.{ext}"
    target = Path(settings.UPLOAD_DIR) / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "wb") as f:
        f.write(content)
    return {"path": relative}


@router.delete("")
def delete_image(payload: ImagePath, current_user=Depends(get_current_user)):
    if not payload.path.startswith(LEAVE_PREFIX) or ".." in payload.path:
        raise HTTPException(status_code=400, detail="无效的路径")
    target = Path(settings.UPLOAD_DIR) / payload.path
    if target.exists():
        target.unlink()
    return {"message": "删除成功"}
