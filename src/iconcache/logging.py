from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FILE_NAME = "iconcache.log"
LOGGER_NAMESPACE = "iconcache"


class UtcFormatter(logging.Formatter):
    """Formatter that renders timestamps in UTC using ISO-8601."""

    converter = time.gmtime

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.isoformat(timespec="seconds")


def configure_logging(
    log_dir: Path,
    level: int = logging.INFO,
    max_bytes: int = 5 * 1024 * 1024,  # 5 MB default
    backup_count: int = 3,
) -> Logger:
    """
    Configure the cache logger with console and rotating file handlers.

    The background batch runs detached from any terminal, so the rotating
    file is the only place its output survives.

    Args:
        log_dir: Directory for log files
        level: Logging level (default: INFO)
        max_bytes: Maximum size per log file before rotation (default: 5 MB)
        backup_count: Number of backup files to keep (default: 3)

    Returns:
        Configured namespace logger
    """
    formatter = UtcFormatter(
        fmt="%(asctime)sZ %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    root_logger = logging.getLogger(LOGGER_NAMESPACE)
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    file_error: Optional[OSError] = None
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / LOG_FILE_NAME,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    except OSError as exc:
        file_error = exc
    else:
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # stderr, so stdout stays reserved for command output
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if file_error is not None:
        root_logger.warning("File logging disabled, cannot open %s: %s", log_dir, file_error)
    else:
        root_logger.debug("Logging configured. File: %s (max %d KB, %d backups)",
                          log_dir / LOG_FILE_NAME, max_bytes // 1024, backup_count)
    return root_logger


def get_logger(name: Optional[str] = None) -> Logger:
    """Return a child logger under the cache namespace."""
    base = logging.getLogger(LOGGER_NAMESPACE)
    if name:
        if name == LOGGER_NAMESPACE or name.startswith(LOGGER_NAMESPACE + "."):
            return logging.getLogger(name)
        return base.getChild(name)
    return base
