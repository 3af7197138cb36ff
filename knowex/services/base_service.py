"""
Base Service Class.

Minimal base class standardizing the logger pattern for all services.
Services extend this and add their own repository dependencies via __init__.
"""

from __future__ import annotations

from typing import Optional

from knowex.logger import StructuredLogger


class ServiceError(Exception):
    """Base exception for service-layer failures.

    Carries a user-presentable ``message`` and the underlying exception,
    if any, for logging.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        self.message: str = message
        self.original_error: Optional[Exception] = original_error
        super().__init__(self.message)


class BaseService:
    """Base class for all service classes. Provides a logger."""

    def __init__(self, logger: StructuredLogger) -> None:
        self._logger: StructuredLogger = logger
