import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from school_attendance.api import (
    attendance,
    auth,
    calendar,
    classes,
    leave_images,
    leave_requests,
    leave_types,
    roll_calls,
    semesters,
    settings as settings_api,
)
from school_attendance.core.config import settings
from school_attendance.core.exceptions import ServiceError
from school_attendance.core.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("School attendance service started")
    yield


app = FastAPI(title="School Attendance", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message, **exc.payload})


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    detail = [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors]
    return JSONResponse(status_code=422, content={"error": message, "detail": detail})


app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(classes.router, prefix="/api", tags=["classes"])
app.include_router(attendance.router, prefix="/api/attendance", tags=["attendance"])
app.include_router(calendar.router, prefix="/api/calendar", tags=["calendar"])
app.include_router(leave_requests.router, prefix="/api/leave-requests", tags=["leave"])
app.include_router(leave_types.router, prefix="/api/leave-types", tags=["leave"])
app.include_router(leave_images.router, prefix="/api/leave-image", tags=["leave"])
app.include_router(settings_api.router, prefix="/api", tags=["settings"])
app.include_router(semesters.router, prefix="/api/semesters", tags=["settings"])
app.include_router(roll_calls.router, prefix="/api", tags=["roll-calls"])


@app.get("/health")
def health():
    return {"status": "ok"}
