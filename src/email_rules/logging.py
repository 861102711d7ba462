"""Logging setup: one rotating decision log per user plus a shared error log.

Files written to the log directory:
- email-rules-{user}.log: every rule decision for that user
- email-rules-error.log: ERROR+ records from any ``email_rules`` logger,
  tagged with the user they concern (``-`` for library code)

Usage:
    from email_rules.logging import setup_logging, get_user_logger

    setup_logging(log_dir=settings.log_dir, log_level=settings.log_level)

    log = get_user_logger("user-1")
    log.info("Message abc matched rule Newsletters")
    log.error("AI rule selection failed")  # also lands in the error log
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

PACKAGE_LOGGER = "email_rules"
ERROR_LOG = "email-rules-error.log"

DEFAULT_LOG_DIR = Path.home() / ".local" / "state" / "email-rules"
DEFAULT_MAX_BYTES = 5 * 1024 * 1024  # 5MB
DEFAULT_BACKUP_COUNT = 3

USER_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
ERROR_FORMAT = "%(asctime)s [%(levelname)s] [%(user_id)s] %(message)s"


@dataclass
class _LogConfig:
    log_dir: Path = DEFAULT_LOG_DIR
    max_bytes: int = DEFAULT_MAX_BYTES
    backup_count: int = DEFAULT_BACKUP_COUNT


_config: _LogConfig | None = None
_error_handler: RotatingFileHandler | None = None
_user_loggers: dict[str, logging.Logger] = {}


class UserContextFilter(logging.Filter):
    """Stamp records with the user they concern."""

    def __init__(self, user_id: str) -> None:
        super().__init__()
        self.user_id = user_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.user_id = self.user_id
        return True


def _default_user(record: logging.LogRecord) -> bool:
    if not hasattr(record, "user_id"):
        record.user_id = "-"
    return True


def _rotating_handler(
    config: _LogConfig, filename: str, fmt: str, level: int = logging.NOTSET
) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        config.log_dir / filename,
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def setup_logging(
    log_dir: Path | None = None,
    log_level: str = "INFO",
    max_bytes: int | None = None,
    backup_count: int | None = None,
) -> None:
    """Configure the log directory, level and rotation.

    Calling it again replaces the previous configuration.

    Args:
        log_dir: Directory for log files (default: ~/.local/state/email-rules)
        log_level: Minimum level for ``email_rules`` loggers (default: INFO)
        max_bytes: Max size per log file before rotation (default: 5MB)
        backup_count: Number of rotated files to keep (default: 3)
    """
    global _config, _error_handler

    reset_logging()

    config = _LogConfig(
        log_dir=log_dir or DEFAULT_LOG_DIR,
        max_bytes=max_bytes or DEFAULT_MAX_BYTES,
        backup_count=DEFAULT_BACKUP_COUNT if backup_count is None else backup_count,
    )
    config.log_dir.mkdir(parents=True, exist_ok=True)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    _error_handler = _rotating_handler(config, ERROR_LOG, ERROR_FORMAT, logging.ERROR)
    _error_handler.addFilter(_default_user)
    package_logger.addHandler(_error_handler)

    _config = config


def get_user_logger(user_id: str) -> logging.Logger:
    """Get or create the decision logger for one user.

    Records propagate to the ``email_rules`` logger, so errors also reach
    the shared error log.

    Args:
        user_id: Owner of the rules being evaluated.

    Returns:
        Logger writing to email-rules-{user}.log
    """
    logger = _user_loggers.get(user_id)
    if logger is not None:
        return logger

    if _config is None:
        setup_logging()

    # Non-alphanumerics become hyphens in logger and file names
    safe_name = "".join(c if c.isalnum() else "-" for c in user_id)

    logger = logging.getLogger(f"{PACKAGE_LOGGER}.user.{safe_name}")
    logger.setLevel(logging.INFO)
    logger.addFilter(UserContextFilter(user_id))
    logger.addHandler(_rotating_handler(_config, f"email-rules-{safe_name}.log", USER_FORMAT))

    _user_loggers[user_id] = logger
    return logger


def reset_logging() -> None:
    """Close every handler and forget cached loggers (used by tests)."""
    global _config, _error_handler

    for logger in _user_loggers.values():
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)
        for log_filter in logger.filters[:]:
            logger.removeFilter(log_filter)

    if _error_handler is not None:
        logging.getLogger(PACKAGE_LOGGER).removeHandler(_error_handler)
        _error_handler.close()

    _user_loggers.clear()
    _error_handler = None
    _config = None
