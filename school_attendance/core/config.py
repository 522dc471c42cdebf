# school_attendance/core/config.py
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    SECRET_KEY: str = "your-super-secret-jwt-key-change-in-prod"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days

    DATABASE_URL: str = "sqlite:///./attendance.db"

    CORS_ORIGINS: list[str] = [
        "http://localhost",
        "http://127.0.0.1",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:8000",
    ]

    # Uploaded leave evidence lands under UPLOAD_DIR/leave/<year>/<month>/
    UPLOAD_DIR: str = "uploads"

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # Semester length used when a semester row has no total_weeks
    DEFAULT_TOTAL_WEEKS: int = 20

    # Period substituted when late / early leave is marked without one
    LATE_DEFAULT_PERIOD: int = 1
    EARLY_LEAVE_DEFAULT_PERIOD: int = 8

    class Config:
        env_file = ".env"

# Created once
settings = Settings()
