"""
Authentication Pipeline Models.

Pydantic models and enumerations for the auth request/response
contracts between the auth services and the presentation layer.

Every auth operation returns a structured, inspectable result rather
than raw strings or exception side-channels.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from knowex.models.admin import AdminIdentity
from knowex.models.enums import Route
from knowex.models.user import UserProfile


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

class AuthErrorCode(StrEnum):
    """Exhaustive enumeration of authentication error categories.

    Used by the auth services to classify Supabase errors and by the
    presentation layer to decide which feedback to display.
    """

    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_NOT_CONFIRMED = "email_not_confirmed"
    EMAIL_ALREADY_EXISTS = "email_already_exists"
    USERNAME_TAKEN = "username_taken"
    USERNAME_EXHAUSTED = "username_exhausted"
    USER_BANNED = "user_banned"
    USER_RECORD_MISSING = "user_record_missing"
    WEAK_PASSWORD = "weak_password"
    NETWORK_ERROR = "network_error"
    RATE_LIMITED = "rate_limited"
    VALIDATION_ERROR = "validation_error"
    UNKNOWN_ERROR = "unknown_error"


# ---------------------------------------------------------------------------
# Supabase error-code mapping
# ---------------------------------------------------------------------------

SUPABASE_ERROR_MAP: dict[str, AuthErrorCode] = {
    "invalid login credentials": AuthErrorCode.INVALID_CREDENTIALS,
    "invalid_credentials": AuthErrorCode.INVALID_CREDENTIALS,
    "invalid_grant": AuthErrorCode.INVALID_CREDENTIALS,
    "email not confirmed": AuthErrorCode.EMAIL_NOT_CONFIRMED,
    "email_not_confirmed": AuthErrorCode.EMAIL_NOT_CONFIRMED,
    "user already registered": AuthErrorCode.EMAIL_ALREADY_EXISTS,
    "user_already_exists": AuthErrorCode.EMAIL_ALREADY_EXISTS,
    "user_banned": AuthErrorCode.USER_BANNED,
    "weak_password": AuthErrorCode.WEAK_PASSWORD,
    "rate limit": AuthErrorCode.RATE_LIMITED,
    "over_request_rate_limit": AuthErrorCode.RATE_LIMITED,
}
"""Substring (lower-case) of a provider error -> classification.

The provider's own message is always what the user sees; the code only
drives which extra controls the presentation layer shows.
"""


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------

class ValidationResult(BaseModel):
    """Result of a single client-side field validation check.

    Attributes
    ----------
    is_valid:
        ``True`` when the value passes the validation rule.
    error_message:
        Human-readable description of the failure, or ``None`` on success.
    """

    is_valid: bool
    error_message: Optional[str] = None

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Provider session
# ---------------------------------------------------------------------------

class AuthSession(BaseModel):
    """The auth provider's current session, reduced to what routing needs.

    Attributes
    ----------
    user_id:
        Supabase auth UUID.
    email:
        Account email, if the provider reported one.
    user_metadata:
        Provider-side metadata; may carry ``full_name`` and a best-effort
        ``onboarded`` mirror.
    access_token / refresh_token / expires_at:
        Token material, kept for diagnostics and refresh.
    """

    user_id: str
    email: Optional[str] = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None

    @property
    def embedded_onboarded(self) -> Optional[bool]:
        """The metadata ``onboarded`` flag; ``None`` when absent."""
        value = self.user_metadata.get("onboarded")
        if value is None:
            return None
        return value is True

    @property
    def full_name(self) -> Optional[str]:
        return self.user_metadata.get("full_name")

    @classmethod
    def from_supabase(cls, session: Any) -> Optional["AuthSession"]:
        """Build from a ``supabase`` ``Session`` object (``None`` passes through)."""
        if session is None or getattr(session, "user", None) is None:
            return None
        user = session.user
        return cls(
            user_id=str(user.id),
            email=getattr(user, "email", None),
            user_metadata=dict(getattr(user, "user_metadata", None) or {}),
            access_token=getattr(session, "access_token", None),
            refresh_token=getattr(session, "refresh_token", None),
            expires_at=getattr(session, "expires_at", None),
        )


# ---------------------------------------------------------------------------
# Unified auth response
# ---------------------------------------------------------------------------

class AuthResult(BaseModel):
    """Unified response for login, logout and registration operations.

    The presentation layer inspects ``success`` to decide the happy-path
    vs. error-path rendering, and uses ``error_code`` to conditionally
    show extra controls.

    Attributes
    ----------
    success:
        ``True`` when the operation completed without error.
    error_code:
        Structured error category (``None`` on success).
    error_message:
        Human-readable error description (``None`` on success).
    user_id:
        The Supabase UUID of the authenticated / registered user.
    email:
        The user's normalised email address.
    """

    success: bool
    error_code: Optional[AuthErrorCode] = None
    error_message: Optional[str] = None
    user_id: Optional[str] = None
    email: Optional[str] = None

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Signup
# ---------------------------------------------------------------------------

class SignupRequest(BaseModel):
    """Raw signup form input; validated by ``SignupService``."""

    full_name: str = ""
    username: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""
    profile_image: Optional[Path] = None


class SignupResult(AuthResult):
    """Outcome of the signup sequence.

    ``warnings`` holds non-blocking notices (e.g. a failed profile-image
    upload).  ``next_route`` is set only on success.
    """

    username: Optional[str] = None
    profile: Optional[UserProfile] = None
    profile_image_url: Optional[str] = None
    warnings: list[str] = Field(default_factory=list)
    next_route: Optional[Route] = None


# ---------------------------------------------------------------------------
# Admin login
# ---------------------------------------------------------------------------

class AdminLoginResult(AuthResult):
    """Outcome of an admin login attempt."""

    identity: Optional[AdminIdentity] = None
    next_route: Optional[Route] = None
