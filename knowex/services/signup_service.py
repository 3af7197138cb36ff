"""
Signup Orchestrator.

Runs the signup sequence:

1. Client-side validation (fail fast, first violation wins).
2. Supabase ``sign_up`` with ``full_name`` metadata.
3. Optional avatar upload (non-fatal; failure becomes a warning).
4. ``users`` row insert, regenerating the username on a uniqueness
   violation, bounded by ``USERNAME_MAX_ATTEMPTS``.
5. ``user_profiles`` row insert.
6. Hand off to onboarding.

Steps 2-5 are not atomic.  A failure after step 2 leaves an account
without a profile; it is logged as ``SIGNUP_ORPHANED_ACCOUNT`` and the
session resolver later routes that account to onboarding.
"""

from __future__ import annotations

import random
from typing import Optional

from knowex.config import AppConfig, get_config
from knowex.database import DatabaseManager
from knowex.logger import StructuredLogger
from knowex.models.auth_models import (
    AuthErrorCode,
    SignupRequest,
    SignupResult,
    ValidationResult,
)
from knowex.models.enums import Route
from knowex.models.user import UserProfile
from knowex.repositories.base_repository import is_unique_violation
from knowex.repositories.user_repository import UserRepository
from knowex.services.auth_service import (
    AuthService,
    USERNAME_TAKEN_MESSAGE,
    failure_from_exception,
)
from knowex.services.avatar_storage import AvatarStorageService, AvatarUploadError
from knowex.services.base_service import BaseService, ServiceError
from knowex.utils.audit import log_audit_event
from knowex.utils.usernames import generate_username

AVATAR_UPLOAD_WARNING: str = (
    "Failed to upload profile image. "
    "Your account will be created without a profile picture."
)


class UsernameGenerationExhausted(ServiceError):
    """Every username candidate collided with an existing ``users`` row."""

    def __init__(self, attempts: int, original_error: Optional[Exception] = None) -> None:
        self.attempts: int = attempts
        super().__init__(
            f"Could not find an available username after {attempts} attempts. "
            "Please choose a different username.",
            original_error,
        )


class SignupService(BaseService):
    """Orchestrates account creation and profile bootstrap.

    Parameters
    ----------
    db:
        Database manager providing the Supabase client.
    user_repo:
        Repository for ``users`` / ``user_profiles``.
    avatar_storage:
        Avatar upload service.
    logger:
        Structured JSON logger.
    config:
        Application settings; defaults to ``get_config()``.
    rng:
        Random source for username disambiguation (seed it in tests).
    """

    def __init__(
        self,
        db: DatabaseManager,
        user_repo: UserRepository,
        avatar_storage: AvatarStorageService,
        logger: StructuredLogger,
        config: Optional[AppConfig] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__(logger)
        self._db = db
        self._user_repo = user_repo
        self._avatar_storage = avatar_storage
        self._config: AppConfig = config or get_config()
        self._rng: random.Random = rng or random.Random()

    # ==================================================================
    # Validation
    # ==================================================================

    def validate(self, request: SignupRequest) -> ValidationResult:
        """Client-side checks, in order.  Only the last one hits the network."""
        fields = (
            request.full_name.strip(),
            request.username.strip(),
            request.email.strip(),
            request.password,
            request.confirm_password,
        )
        if not all(fields):
            return ValidationResult(is_valid=False, error_message="Please fill in all fields")

        if request.password != request.confirm_password:
            return ValidationResult(is_valid=False, error_message="Passwords do not match")

        min_password = self._config.PASSWORD_MIN_LENGTH
        if len(request.password) < min_password:
            return ValidationResult(
                is_valid=False,
                error_message=f"Password must be at least {min_password} characters",
            )

        min_username = self._config.USERNAME_MIN_LENGTH
        if len(request.username.strip()) < min_username:
            return ValidationResult(
                is_valid=False,
                error_message=f"Username must be at least {min_username} characters",
            )

        email_check = AuthService.validate_email(request.email)
        if not email_check.is_valid:
            return email_check

        if not self._user_repo.is_username_available(request.username.strip()):
            return ValidationResult(is_valid=False, error_message=USERNAME_TAKEN_MESSAGE)

        return ValidationResult(is_valid=True)

    # ==================================================================
    # Signup
    # ==================================================================

    def signup(self, request: SignupRequest) -> SignupResult:
        """Run the full signup sequence.  Never raises."""
        try:
            check = self.validate(request)
        except Exception as exc:
            return self._failure(exc)
        if not check.is_valid:
            error_code = (
                AuthErrorCode.USERNAME_TAKEN
                if check.error_message == USERNAME_TAKEN_MESSAGE
                else AuthErrorCode.VALIDATION_ERROR
            )
            return SignupResult(
                success=False,
                error_code=error_code,
                error_message=check.error_message,
            )

        email = AuthService.normalize_email(request.email)
        full_name = request.full_name.strip()
        username = request.username.strip()

        # --- Account ---
        try:
            response = self._db.supabase.auth.sign_up({
                "email": email,
                "password": request.password,
                "options": {"data": {"full_name": full_name}},
            })
        except Exception as exc:
            failure = failure_from_exception(exc)
            self._logger.warning(
                "Signup failed for %s: %s", email, exc,
                extra={"event": "SIGNUP_FAILED", "error_code": str(failure.error_code)},
            )
            return SignupResult(**failure.model_dump())

        user = response.user
        if user is None:
            self._logger.warning("Signup returned no user for %s", email)
            return SignupResult(
                success=False,
                error_code=AuthErrorCode.UNKNOWN_ERROR,
                error_message="An unexpected error occurred",
            )
        user_id = str(user.id)

        # --- Avatar (non-fatal) ---
        warnings: list[str] = []
        profile_image_url: Optional[str] = None
        if request.profile_image is not None:
            try:
                profile_image_url = self._avatar_storage.upload_avatar(
                    user_id, request.profile_image
                )
            except AvatarUploadError as exc:
                self._logger.warning(
                    "Avatar upload failed for %s: %s", user_id, exc.message,
                    extra={"event": "AVATAR_UPLOAD_FAILED", "user_id": user_id},
                )
                warnings.append(AVATAR_UPLOAD_WARNING)

        # --- Profile rows ---
        try:
            profile = self.create_profile(user_id, email, username, profile_image_url)
            self._user_repo.insert_full_name(user_id, full_name)
        except UsernameGenerationExhausted as exc:
            self._log_orphan(user_id, email, exc)
            return SignupResult(
                success=False,
                error_code=AuthErrorCode.USERNAME_EXHAUSTED,
                error_message=exc.message,
                user_id=user_id,
                email=email,
                warnings=warnings,
            )
        except Exception as exc:
            self._log_orphan(user_id, email, exc)
            result = self._failure(exc)
            result.user_id = user_id
            result.email = email
            result.warnings = warnings
            return result

        log_audit_event(
            self._logger,
            action="SIGNUP",
            entity_type="User",
            entity_id=user_id,
            user_id=user_id,
            details={
                "username": profile.username,
                "has_avatar": profile_image_url is not None,
            },
        )
        return SignupResult(
            success=True,
            user_id=user_id,
            email=email,
            username=profile.username,
            profile=profile,
            profile_image_url=profile_image_url,
            warnings=warnings,
            next_route=Route.ONBOARDING_COMMUNITIES,
        )

    def create_profile(
        self,
        user_id: str,
        email: str,
        username: str,
        profile_image_url: Optional[str] = None,
    ) -> UserProfile:
        """Insert the ``users`` row, regenerating the username on collision.

        The first attempt uses *username*; later attempts derive one from
        *email*.  Any error other than a uniqueness violation propagates.

        Raises:
            UsernameGenerationExhausted: After ``USERNAME_MAX_ATTEMPTS``
                collisions.
        """
        max_attempts = max(1, self._config.USERNAME_MAX_ATTEMPTS)
        candidate = username
        last_error: Optional[Exception] = None
        for attempt in range(max_attempts):
            if attempt > 0:
                candidate = generate_username(
                    email,
                    attempt - 1,
                    rng=self._rng,
                    min_length=self._config.USERNAME_MIN_LENGTH,
                )
            try:
                return self._user_repo.insert_profile(
                    user_id, email, candidate, profile_image_url
                )
            except Exception as exc:
                if not is_unique_violation(exc):
                    raise
                last_error = exc
                self._logger.info(
                    "Username %s taken; regenerating (attempt %d/%d)",
                    candidate, attempt + 1, max_attempts,
                )
        raise UsernameGenerationExhausted(max_attempts, last_error)

    # ==================================================================
    # Internal
    # ==================================================================

    @staticmethod
    def _failure(exc: Exception) -> SignupResult:
        return SignupResult(**failure_from_exception(exc).model_dump())

    def _log_orphan(self, user_id: str, email: str, exc: Exception) -> None:
        self._logger.error(
            "Account %s created but profile bootstrap failed: %s", user_id, exc,
            extra={"event": "SIGNUP_ORPHANED_ACCOUNT", "user_id": user_id, "email": email},
        )
