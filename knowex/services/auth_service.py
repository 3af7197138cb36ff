"""
Authentication Service.

User-path credential authenticator: email/password login, logout,
username availability, and provider error classification.

Verification is delegated entirely to Supabase Auth.  A successful
login takes no routing action of its own; the ``SessionRouter`` reacts
to the resulting ``SIGNED_IN`` event.

All public methods return typed ``AuthResult`` or ``ValidationResult``
models; the presentation layer never inspects raw exceptions.
"""

from __future__ import annotations

import re
from typing import Optional

from knowex.auth import SessionManager
from knowex.config import AppConfig, get_config
from knowex.database import DatabaseManager
from knowex.logger import StructuredLogger
from knowex.models.auth_models import (
    AuthErrorCode,
    AuthResult,
    SUPABASE_ERROR_MAP,
    ValidationResult,
)
from knowex.repositories.user_repository import UserRepository
from knowex.services.base_service import BaseService


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_EMAIL_RE: re.Pattern[str] = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

NETWORK_ERROR_MESSAGE: str = "Cannot reach the server. Check your internet connection."
USERNAME_TAKEN_MESSAGE: str = "Username is already taken. Please choose another one."


# ---------------------------------------------------------------------------
# Provider error helpers
# ---------------------------------------------------------------------------

def provider_message(exc: BaseException) -> str:
    """The provider's own error text, falling back to ``str(exc)``."""
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc) or "An unexpected error occurred"


def classify_provider_error(exc: BaseException) -> AuthErrorCode:
    """Map an auth-provider exception to an ``AuthErrorCode``.

    ``RuntimeError`` (client not configured) and socket-level failures
    are network errors; everything else is matched by lower-case
    substring against ``SUPABASE_ERROR_MAP``.
    """
    if isinstance(exc, (RuntimeError, ConnectionError, TimeoutError)):
        return AuthErrorCode.NETWORK_ERROR
    error_str = f"{getattr(exc, 'code', '') or ''} {exc}".lower()
    for code_key, error_code in SUPABASE_ERROR_MAP.items():
        if code_key in error_str:
            return error_code
    return AuthErrorCode.UNKNOWN_ERROR


def failure_from_exception(exc: BaseException) -> AuthResult:
    """Build a failed ``AuthResult`` that surfaces the provider message."""
    code = classify_provider_error(exc)
    message = (
        NETWORK_ERROR_MESSAGE if code == AuthErrorCode.NETWORK_ERROR
        else provider_message(exc)
    )
    return AuthResult(success=False, error_code=code, error_message=message)


class AuthService(BaseService):
    """Email/password authentication against Supabase Auth.

    Parameters
    ----------
    db:
        Database manager providing the Supabase client.
    session:
        Injectable session manager, cleared on logout.
    user_repo:
        Repository used for username availability lookups.
    logger:
        Structured JSON logger.
    config:
        Application settings; defaults to ``get_config()``.
    """

    def __init__(
        self,
        db: DatabaseManager,
        session: SessionManager,
        user_repo: UserRepository,
        logger: StructuredLogger,
        config: Optional[AppConfig] = None,
    ) -> None:
        super().__init__(logger)
        self._db: DatabaseManager = db
        self._session: SessionManager = session
        self._user_repo: UserRepository = user_repo
        self._config: AppConfig = config or get_config()

    # ==================================================================
    # Validation helpers
    # ==================================================================

    @staticmethod
    def validate_email(email: str) -> ValidationResult:
        """Validate an email address against a simplified RFC 5322 regex."""
        if not email or not email.strip():
            return ValidationResult(
                is_valid=False,
                error_message="Email address is required.",
            )
        if not _EMAIL_RE.match(email.strip()):
            return ValidationResult(
                is_valid=False,
                error_message="Please enter a valid email address.",
            )
        return ValidationResult(is_valid=True)

    @staticmethod
    def normalize_email(email: str) -> str:
        """Normalise an email address: strip whitespace and lowercase."""
        return email.strip().lower()

    def check_username_availability(self, username: str) -> ValidationResult:
        """Live availability check for *username*.

        Advisory only: the ``users`` unique constraint is the
        authoritative signal, and signup recovers from it.

        Returns
        -------
        ValidationResult
            Invalid when too short, already taken, or when the lookup
            itself failed.
        """
        username = username.strip()
        min_length = self._config.USERNAME_MIN_LENGTH
        if len(username) < min_length:
            return ValidationResult(
                is_valid=False,
                error_message=f"Username must be at least {min_length} characters",
            )
        try:
            available = self._user_repo.is_username_available(username)
        except Exception as exc:
            self._logger.warning(
                "Username availability check failed for %s: %s", username, exc,
            )
            return ValidationResult(
                is_valid=False,
                error_message="Could not check username availability. Please try again.",
            )
        if not available:
            return ValidationResult(is_valid=False, error_message=USERNAME_TAKEN_MESSAGE)
        return ValidationResult(is_valid=True)

    # ==================================================================
    # Login
    # ==================================================================

    def login(self, email: str, password: str) -> AuthResult:
        """Authenticate a user via Supabase.

        Parameters
        ----------
        email:
            The raw email entered by the user.
        password:
            The raw password entered by the user.

        Returns
        -------
        AuthResult
            ``success=True`` with the account id on authentication, or the
            provider's message verbatim with an ``error_code`` on failure.
        """
        if not email or not email.strip() or not password:
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.VALIDATION_ERROR,
                error_message="Please enter email and password",
            )

        email = self.normalize_email(email)

        try:
            response = self._db.supabase.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except Exception as exc:
            result = failure_from_exception(exc)
            self._logger.warning(
                "Login failed for %s: %s", email, exc,
                extra={"event": "LOGIN_FAILED", "error_code": str(result.error_code)},
            )
            return result

        user = response.user
        self._logger.info(
            "User authenticated: %s",
            email,
            extra={"event": "LOGIN", "email": email, "user_id": str(user.id)},
        )
        return AuthResult(
            success=True,
            user_id=str(user.id),
            email=user.email or email,
        )

    # ==================================================================
    # Logout
    # ==================================================================

    def logout(self) -> None:
        """Server-side sign-out, then clear local session state.

        The ``SIGNED_OUT`` event emitted by the client routes the user to
        login; the local clear below covers the case where the server
        call fails.
        """
        current = self._session.current_session
        user_email = current.email if current and current.email else "unknown"
        user_id = current.user_id if current else "unknown"

        try:
            self._db.supabase.auth.sign_out()
        except RuntimeError:
            self._logger.debug(
                "Offline; skipping server-side sign_out for %s.", user_email,
            )
        except Exception as exc:
            self._logger.warning(
                "Server-side sign_out failed for %s: %s", user_email, exc,
            )

        self._session.clear()

        self._logger.info(
            "User logged out: %s",
            user_email,
            extra={"event": "LOGOUT", "email": user_email, "user_id": user_id},
        )
