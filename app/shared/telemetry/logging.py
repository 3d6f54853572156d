"""Logging configuration for the application."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from app.core.config import get_settings

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
_LOG_FILE_BACKUPS = 5


def setup_logging() -> None:
    """Configure application-wide logging.

    Level comes from settings.log_level (DEBUG when settings.debug is True).
    Output goes to stdout; when settings.log_file_enabled is True, also to
    rotating error.log and combined.log files under settings.log_file_path.
    """
    settings = get_settings()
    log_level = logging.DEBUG if settings.debug else getattr(
        logging, settings.log_level.upper()
    )
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file_enabled:
        log_dir = Path(settings.log_file_path)
        log_dir.mkdir(parents=True, exist_ok=True)
        error_handler = RotatingFileHandler(
            log_dir / "error.log",
            maxBytes=_LOG_FILE_MAX_BYTES,
            backupCount=_LOG_FILE_BACKUPS,
        )
        error_handler.setLevel(logging.ERROR)
        handlers.append(error_handler)
        handlers.append(
            RotatingFileHandler(
                log_dir / "combined.log",
                maxBytes=_LOG_FILE_MAX_BYTES,
                backupCount=_LOG_FILE_BACKUPS,
            )
        )
    logging.basicConfig(level=log_level, format=_LOG_FORMAT, handlers=handlers)


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name.

    Args:
        name: Usually __name__ of the calling module.

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)
