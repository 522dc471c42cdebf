# school_attendance/client/api.py
import json
import logging
from datetime import date
from typing import Optional

import httpx

from school_attendance.core.periods import parse_periods, to_time_slots

logger = logging.getLogger(__name__)

DEFAULT_ERROR = "请求失败"
# Settings whose values are stored as JSON-encoded strings
JSON_SETTING_KEYS = ("attendance_periods", "dashboard_stats_config")


class ApiError(Exception):
    """Raised for any non-2xx response."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class BearerAuth(httpx.Auth):
    def __init__(self, token: str):
        self.token = token

    def auth_flow(self, request):
        request.headers["Authorization"] = f"Bearer {self.token}"
        yield request


def extract_error_message(payload, fallback: str = DEFAULT_ERROR) -> str:
    """Best-effort message: ``error`` first, then ``message``, then ``fallback``."""
    if isinstance(payload, httpx.Response):
        try:
            payload = payload.json()
        except ValueError:
            return fallback
    if isinstance(payload, dict):
        for key in ("error", "message"):
            value = payload.get(key)
            if value:
                return value if isinstance(value, str) else str(value)
    return fallback


def parse_settings(items) -> dict:
    """Flatten the ``[{key, value}]`` settings list, decoding structured values."""
    result = {}
    for item in items or []:
        key, value = item.get("key"), item.get("value")
        if key in JSON_SETTING_KEYS and isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                logger.warning(f"Setting {key} holds invalid JSON")
                value = None
        result[key] = value
    return result


def _iso(day) -> str:
    return day.isoformat() if isinstance(day, date) else str(day)


class AttendanceClient:
    """
    Thin wrapper over the REST API.

    ``http`` may be any ``httpx.Client`` whose base URL points at the API
    root (``.../api``); one is created from ``base_url`` otherwise.
    """

    def __init__(self, base_url: Optional[str] = None, http: Optional[httpx.Client] = None, timeout: float = 30.0):
        if http is None:
            if base_url is None:
                raise ValueError("base_url or http is required")
            http = httpx.Client(base_url=base_url, timeout=timeout)
        self.http = http

    def close(self):
        self.http.close()

    def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        response = self.http.request(method, path, **kwargs)
        if response.status_code >= 400:
            message = extract_error_message(response)
            logger.error(f"{method} {path} failed with {response.status_code}: {message}")
            try:
                payload = response.json()
            except ValueError:
                payload = None
            raise ApiError(message, status_code=response.status_code, payload=payload)
        return response

    def get_json(self, path: str, **params):
        params = {k: v for k, v in params.items() if v is not None}
        return self.request("GET", path, params=params).json()

    def login(self, username: str, password: str) -> str:
        data = self.request("POST", "/auth/login", json={"username": username, "password": password}).json()
        token = data["access_token"]
        self.http.auth = BearerAuth(token)
        return token

    def me(self) -> dict:
        return self.get_json("/auth/me")

    def get_settings(self) -> dict:
        return parse_settings(self.get_json("/settings"))

    def get_periods(self):
        return parse_periods(self.get_settings().get("attendance_periods"))

    def get_time_slots(self):
        return to_time_slots(self.get_json("/time-slots"))

    def get_leave_types(self) -> list:
        return self.get_json("/leave-types")

    def get_overview(self, day) -> list:
        return self.get_json("/attendance/overview", date=_iso(day))

    def bulk_update(self, day, period_id, records) -> dict:
        payload = {"date": _iso(day), "period_id": period_id, "records": records}
        return self.request("POST", "/attendance/bulk", json=payload).json()

    def delete_record(self, student_id: int, day, period_id=None, option=None, source_type=None, source_id=None,
                      status=None) -> dict:
        params = {
            "student_id": student_id,
            "date": _iso(day),
            "period_id": period_id,
            "option": option,
            "source_type": source_type,
            "source_id": source_id,
            "status": status,
        }
        params = {k: v for k, v in params.items() if v is not None}
        return self.request("DELETE", "/attendance/records", params=params).json()
