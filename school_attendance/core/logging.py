import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from school_attendance.core.config import settings

LOG_FORMAT = "%(asctime)s - [%(name)s] - %(levelname)s - %(message)s"


def setup_logging():
    """
    Configure the root logger for the service.

    Records go to stdout and to a size-rotated file under LOG_DIR
    (5 MB per file, five backups kept).
    """
    logger = logging.getLogger()
    logger.setLevel(settings.LOG_LEVEL)

    # Replace uvicorn's default handlers so every record uses one format
    if logger.hasHandlers():
        logger.handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(stdout_handler)

    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_dir / "app.log",
        maxBytes=5 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(file_handler)
