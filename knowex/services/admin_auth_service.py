"""
Admin Authentication Service.

Admin-path credential authenticator.  Admins sign in with a username
and password checked against the ``admin_credentials`` store, which is
separate from Supabase Auth:

1. Look up the active credential (with roles) by lower-cased username.
2. Verify the password against the stored hash (PBKDF2, or bcrypt
   for legacy rows) in constant time.
3. Stamp ``last_login`` (best effort).
4. Load the linked ``users`` row.
5. Merge the permissions of every assigned role.

An unknown username and a wrong password fail with the same
``InvalidCredentialsError`` message.  An unknown username still verifies
the password against a throwaway hash at the configured work factor, so
both failures cost one key derivation.
"""

from __future__ import annotations

from typing import Optional

from knowex.auth import SessionManager
from knowex.logger import StructuredLogger
from knowex.models.admin import AdminCredential, AdminIdentity, PermissionMap
from knowex.models.auth_models import AdminLoginResult, AuthErrorCode
from knowex.models.enums import Route
from knowex.repositories.admin_repository import AdminRepository
from knowex.repositories.user_repository import UserRepository
from knowex.services.base_service import BaseService, ServiceError
from knowex.services.permissions import permissions_for_roles
from knowex.utils.audit import log_audit_event
from knowex.utils.passwords import DEFAULT_ITERATIONS, dummy_hash, verify_password

INVALID_CREDENTIALS_MESSAGE: str = "Invalid admin credentials"
LOGIN_FAILED_MESSAGE: str = "Admin login failed. Please contact a system administrator."


class AdminAuthError(ServiceError):
    """Base class for admin login failures."""


class InvalidCredentialsError(AdminAuthError):
    """Unknown or inactive username, or wrong password."""

    def __init__(self, original_error: Optional[Exception] = None) -> None:
        super().__init__(INVALID_CREDENTIALS_MESSAGE, original_error)


class UserRecordMissingError(AdminAuthError):
    """The credential's ``user_id`` has no ``users`` row."""


class AdminAuthService(BaseService):
    """Verifies admin credentials and builds the composite identity.

    Parameters
    ----------
    admin_repo:
        Repository for the admin credential store.
    user_repo:
        Repository for ``users`` rows.
    logger:
        Structured JSON logger.
    session:
        Optional session manager; a successful ``login`` records the
        identity on it.
    hash_iterations:
        PBKDF2 work factor of the throwaway hash checked for unknown
        usernames; matches ``ADMIN_PASSWORD_HASH_ITERATIONS``.
    """

    def __init__(
        self,
        admin_repo: AdminRepository,
        user_repo: UserRepository,
        logger: StructuredLogger,
        session: Optional[SessionManager] = None,
        hash_iterations: int = DEFAULT_ITERATIONS,
    ) -> None:
        super().__init__(logger)
        self._admin_repo = admin_repo
        self._user_repo = user_repo
        self._session = session
        self._hash_iterations = hash_iterations

    # ==================================================================
    # Authentication
    # ==================================================================

    def authenticate(self, username: str, password: str) -> AdminIdentity:
        """Verify *username* / *password* and return the admin identity.

        Raises:
            InvalidCredentialsError: No active credential, or the password
                does not match.  The message is identical in both cases.
            UserRecordMissingError: The credential points at a missing
                ``users`` row.
            Exception: Store errors propagate unchanged.
        """
        normalized = username.strip().lower()
        credential = self._admin_repo.get_active_by_username(normalized)
        if credential is None:
            verify_password(password, dummy_hash(self._hash_iterations))
            raise InvalidCredentialsError()
        if not verify_password(password, credential.password_hash):
            raise InvalidCredentialsError()

        admin_id = self._require_admin_id(credential)
        try:
            self._admin_repo.touch_last_login(admin_id)
        except Exception as exc:
            self._logger.warning("Could not update last_login for admin %s: %s", admin_id, exc)

        user = self._user_repo.get_by_id(credential.user_id)
        if user is None:
            raise UserRecordMissingError(
                f"User not found for admin {credential.username}"
            )

        permissions, unknown = permissions_for_roles(credential.roles)
        if unknown:
            self._logger.warning(
                "Ignoring unknown permission entries for admin %s: %s",
                credential.username,
                ", ".join(unknown),
            )

        return AdminIdentity(
            admin_id=admin_id,
            username=credential.username,
            roles=[role.role_name for role in credential.roles],
            permissions=permissions,
            user=user.model_copy(update={"is_admin": True}),
        )

    def login(self, username: str, password: str) -> AdminLoginResult:
        """Authenticate and wrap the outcome.  Never raises."""
        if not username or not username.strip() or not password:
            return AdminLoginResult(
                success=False,
                error_code=AuthErrorCode.VALIDATION_ERROR,
                error_message="Please enter username and password",
            )

        try:
            identity = self.authenticate(username, password)
        except InvalidCredentialsError as exc:
            self._logger.warning(
                "Admin login rejected for %s", username.strip().lower(),
                extra={"event": "ADMIN_LOGIN_FAILED"},
            )
            return AdminLoginResult(
                success=False,
                error_code=AuthErrorCode.INVALID_CREDENTIALS,
                error_message=exc.message,
            )
        except UserRecordMissingError as exc:
            self._logger.error(
                "Admin credential without user record: %s", exc.message,
                extra={"event": "ADMIN_LOGIN_FAILED"},
            )
            return AdminLoginResult(
                success=False,
                error_code=AuthErrorCode.USER_RECORD_MISSING,
                error_message=LOGIN_FAILED_MESSAGE,
            )
        except Exception as exc:
            self._logger.exception("Admin login error: %s", exc)
            return AdminLoginResult(
                success=False,
                error_code=(
                    AuthErrorCode.NETWORK_ERROR
                    if isinstance(exc, (RuntimeError, ConnectionError, TimeoutError))
                    else AuthErrorCode.UNKNOWN_ERROR
                ),
                error_message=LOGIN_FAILED_MESSAGE,
            )

        if self._session is not None:
            self._session.set_admin_identity(identity)

        log_audit_event(
            self._logger,
            action="ADMIN_LOGIN",
            entity_type="AdminCredential",
            entity_id=str(identity.admin_id),
            user_id=identity.user.user_id,
            details={"username": identity.username, "roles": ",".join(identity.roles)},
        )
        return AdminLoginResult(
            success=True,
            user_id=identity.user.user_id,
            email=identity.user.email,
            identity=identity,
            next_route=Route.ADMIN_HOME,
        )

    # ==================================================================
    # Queries
    # ==================================================================

    def is_user_admin(self, user_id: str) -> bool:
        """``True`` when *user_id* owns an active admin credential."""
        return self._admin_repo.get_by_user_id(user_id) is not None

    def get_admin_permissions(self, admin_id: int) -> Optional[PermissionMap]:
        """Merged permissions of an active admin; ``None`` if not found."""
        credential = self._admin_repo.get_by_id(admin_id)
        if credential is None:
            return None
        permissions, _ = permissions_for_roles(credential.roles)
        return permissions

    # ==================================================================
    # Internal
    # ==================================================================

    @staticmethod
    def _require_admin_id(credential: AdminCredential) -> int:
        if credential.admin_id is None:
            raise AdminAuthError(f"Credential {credential.username} has no admin_id")
        return credential.admin_id

