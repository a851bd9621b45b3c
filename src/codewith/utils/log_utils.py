"""Logging configuration for the CLI, the sync daemon and the admin service."""

import logging
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

from codewith.constants import (
    DEFAULT_LOG_BACKUP_COUNT,
    DEFAULT_LOG_MAX_SIZE_MB,
    LOG_FORMAT,
    MAX_LOG_BACKUP_COUNT,
    MAX_LOG_MAX_SIZE_MB,
    QUIET_LOGGERS,
)
from codewith.exceptions import ValidationError
from codewith.utils.file_utils import ensure_dir

PACKAGE_LOGGER = "codewith"


@dataclass
class LogRotationConfig:
    """Size-based rotation for the log file.

    Attributes:
        max_size_mb: Maximum log file size in megabytes before rotation.
        backup_count: Number of rotated files to keep (codewith.log.1, .2, ...).
    """

    max_size_mb: int = DEFAULT_LOG_MAX_SIZE_MB
    backup_count: int = DEFAULT_LOG_BACKUP_COUNT

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        if not 1 <= self.max_size_mb <= MAX_LOG_MAX_SIZE_MB:
            raise ValidationError(
                f"max_size_mb must be between 1 and {MAX_LOG_MAX_SIZE_MB}",
                field="max_size_mb",
                value=self.max_size_mb,
                expected=f"1..{MAX_LOG_MAX_SIZE_MB}",
            )
        if not 0 <= self.backup_count <= MAX_LOG_BACKUP_COUNT:
            raise ValidationError(
                f"backup_count must be between 0 and {MAX_LOG_BACKUP_COUNT}",
                field="backup_count",
                value=self.backup_count,
                expected=f"0..{MAX_LOG_BACKUP_COUNT}",
            )

    def get_max_bytes(self) -> int:
        return self.max_size_mb * 1024 * 1024


def configure_logging(
    log_level: str,
    log_file: Path | None = None,
    log_rotation: LogRotationConfig | None = None,
) -> None:
    """Configure the codewith package logger.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional log file path. When given, records go to a
            rotating file; warnings and above are still echoed to stderr.
        log_rotation: Optional log rotation configuration.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    app_logger = logging.getLogger(PACKAGE_LOGGER)
    app_logger.setLevel(level)
    app_logger.propagate = False
    # Reconfiguring (tests, daemon restart) must not stack handlers
    app_logger.handlers.clear()

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(level if log_file is None else max(level, logging.WARNING))
    app_logger.addHandler(stream_handler)

    if log_file:
        rotation = log_rotation or LogRotationConfig()
        try:
            ensure_dir(log_file.parent)
            file_handler = RotatingFileHandler(
                log_file,
                mode="a",
                maxBytes=rotation.get_max_bytes(),
                backupCount=rotation.backup_count,
                encoding="utf-8",
            )
        except OSError as e:
            app_logger.warning(f"Could not open log file {log_file}: {e}")
            return
        file_handler.setFormatter(formatter)
        app_logger.addHandler(file_handler)
