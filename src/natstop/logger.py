"""Logging configuration and utilities."""

import logging
import logging.handlers
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
ROOT_LOGGER = "natstop"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = "natstop.log",
    max_bytes: int = 1048576,
    backup_count: int = 3,
) -> logging.Logger:
    """
    Configure the package logger.

    Logs go to a rotating file only: the terminal belongs to the dashboard
    while it runs. Calling this again replaces the previous handlers.

    Args:
        level: Log level name, e.g. "INFO".
        log_file: Path of the log file, or None to disable file output.
        max_bytes: Rotation threshold of the log file.
        backup_count: Number of rotated files to keep.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_file:
        log_dir = Path(log_file).parent
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)
    else:
        logger.addHandler(logging.NullHandler())

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the natstop hierarchy."""
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
