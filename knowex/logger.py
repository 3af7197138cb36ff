"""
Structured JSON Logging Module.

Every record is emitted as one JSON object per line, to stdout and to a
rotating log file, so the signup, onboarding and admin-auth audit trail
can be shipped and queried as-is.

Caller context goes in ``extra`` and lands under the ``"extra"`` key.
Values that are JSON-native (str, int, float, bool, None) are kept as
they are; anything else is stringified.  Fields that carry credentials
or session tokens are replaced with ``"***"``.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, TextIO, Union

from knowex.config import get_config

REDACTED: str = "***"

# Extra keys whose values never reach a handler.
SENSITIVE_KEYS: frozenset[str] = frozenset({
    "password",
    "confirm_password",
    "password_hash",
    "access_token",
    "refresh_token",
    "service_role_key",
})

_RESERVED_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None
    ).__dict__.keys()
) | {"message", "asctime"}


def _json_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


class JSONFormatter(logging.Formatter):
    """Formats a ``LogRecord`` as a single-line JSON object.

    Keys: ``timestamp`` (ISO-8601 UTC), ``level``, ``logger_name``,
    ``message``, and when present ``extra`` and ``exception``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger_name": record.name,
            "message": record.getMessage(),
        }

        extra = {
            key: REDACTED if key.lower() in SENSITIVE_KEYS else _json_value(value)
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        }
        if extra:
            entry["extra"] = extra

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            entry["exception"] = record.exc_text

        return json.dumps(entry, ensure_ascii=False)


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


class StructuredLogger:
    """Injectable JSON logger.

    Wraps a named ``logging.Logger``; handlers are attached only the first
    time a name is used, so constructing several ``StructuredLogger``
    objects for the same name never duplicates output.  Unset arguments
    fall back to ``AppConfig`` (``LOG_LEVEL``, ``LOG_FILE``,
    ``LOG_MAX_BYTES``, ``LOG_BACKUP_COUNT``).

    Usage::

        log = StructuredLogger(name="knowex.signup")
        log.info("Signup started", extra={"email": "ada@example.com"})
    """

    def __init__(
        self,
        name: str = "knowex",
        level: Union[int, str, None] = None,
        stream: Optional[TextIO] = None,
        log_file: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
    ) -> None:
        cfg = get_config()
        resolved_level = _resolve_level(level if level is not None else cfg.LOG_LEVEL)

        self._logger: logging.Logger = logging.getLogger(name)
        self._logger.setLevel(resolved_level)
        if self._logger.handlers:
            return

        formatter = JSONFormatter()

        console = logging.StreamHandler(stream or sys.stdout)
        console.setFormatter(formatter)
        self._logger.addHandler(console)

        log_path = Path(log_file or cfg.LOG_FILE)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                filename=str(log_path),
                maxBytes=max_bytes if max_bytes is not None else cfg.LOG_MAX_BYTES,
                backupCount=backup_count if backup_count is not None else cfg.LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        except OSError as exc:
            self._logger.warning(
                "Could not open log file '%s': %s. Logging to console only.",
                log_path,
                exc,
            )
            return
        file_handler.setFormatter(formatter)
        self._logger.addHandler(file_handler)

    @property
    def logger(self) -> logging.Logger:
        """The underlying ``logging.Logger``."""
        return self._logger

    def debug(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.error(msg, *args, **kwargs)

    def exception(self, msg: str, *args: object, **kwargs: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._logger.exception(msg, *args, **kwargs)

    def critical(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.critical(msg, *args, **kwargs)


def get_logger(name: str = "knowex") -> StructuredLogger:
    """``StructuredLogger`` for *name* with configuration defaults."""
    return StructuredLogger(name=name)
