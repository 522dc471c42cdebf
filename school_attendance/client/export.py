# school_attendance/client/export.py
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from urllib.parse import unquote

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "考勤记录.xlsx"
EXPORT_ERROR = "导出失败"

FILENAME_STAR = re.compile(r"filename\*=(?:UTF-8'')?([^;\n]*)", re.IGNORECASE)
FILENAME = re.compile(r"filename=((['\"]).*?\2|[^;\n]*)", re.IGNORECASE)


class ExportError(Exception):
    pass


@dataclass
class ExportRequest:
    scope: str = "month"
    semester_id: Optional[int] = None
    class_ids: List[int] = field(default_factory=list)
    student_range: str = "all"
    export_format: str = "count"
    leave_type_ids: List[int] = field(default_factory=list)
    include_roll_call: bool = True
    roll_call_type_ids: List[int] = field(default_factory=list)

    def to_params(self) -> list:
        """Query parameters as ``(key, value)`` pairs; list values repeat the key."""
        params = [("scope", self.scope)]
        if self.semester_id:
            params.append(("semester_id", self.semester_id))
        params.extend(("class_ids", v) for v in self.class_ids)
        params.append(("student_range", self.student_range))
        params.append(("export_format", self.export_format))
        params.extend(("leave_type_ids", v) for v in self.leave_type_ids)
        params.append(("include_roll_call", "true" if self.include_roll_call else "false"))
        if self.include_roll_call:
            params.extend(("roll_call_type_ids", v) for v in self.roll_call_type_ids)
        return params


def merge_roll_call_types(types) -> List[dict]:
    """Group roll-call types by name, keeping first-seen order."""
    merged = {}
    for item in types or []:
        entry = merged.setdefault(item["name"], {"name": item["name"], "ids": []})
        entry["ids"].append(item["id"])
    return list(merged.values())


def is_merged_selected(selected, merged: dict) -> bool:
    return all(i in selected for i in merged["ids"])


def toggle_merged_type(selected, merged: dict, checked: bool) -> List[int]:
    if checked:
        result = list(selected)
        result.extend(i for i in merged["ids"] if i not in result)
        return result
    return [i for i in selected if i not in merged["ids"]]


def filename_from_disposition(header: Optional[str]) -> str:
    if not header:
        return DEFAULT_FILENAME
    match = FILENAME_STAR.search(header)
    if match and match.group(1).strip():
        return unquote(match.group(1).strip().strip("'\""))
    match = FILENAME.search(header)
    if match and match.group(1):
        return unquote(match.group(1).strip("'\""))
    return DEFAULT_FILENAME


def download(client, request: ExportRequest) -> Tuple[str, bytes]:
    """Fetch the workbook; returns ``(filename, content)``."""
    response = client.http.get("/attendance/export", params=request.to_params())
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        message = payload.get("error") or payload.get("message") or EXPORT_ERROR
        logger.error(f"Export failed ({response.status_code}): {message}")
        raise ExportError(message)
    if response.status_code >= 400:
        raise ExportError(EXPORT_ERROR)
    filename = filename_from_disposition(response.headers.get("content-disposition"))
    return filename, response.content
