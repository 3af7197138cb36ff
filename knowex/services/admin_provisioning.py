"""
Admin Provisioning Service.

Creates administrator accounts.  Must run with a service-role Supabase
client: it calls the Auth admin API and writes the credential tables.

``bootstrap_admin`` is the re-runnable setup of the configured bootstrap
administrator.  Each step is an insert-or-update:

1. Create the auth account, or fetch it if the email is registered.
2. Upsert the ``users`` row (admin, already onboarded) and its display
   name.
3. Hash the password and upsert the ``admin_credentials`` row.
4. Look up the bootstrap role and upsert the role assignment.

``create_admin`` grants admin credentials to an existing user.
"""

from __future__ import annotations

from typing import Iterable, Optional

from knowex.config import AppConfig, get_config
from knowex.database import DatabaseManager
from knowex.logger import StructuredLogger
from knowex.models.admin import AdminCredential, AdminProvisioningResult
from knowex.models.user import UserProfile
from knowex.repositories.admin_repository import AdminRepository
from knowex.repositories.user_repository import UserRepository
from knowex.services.base_service import BaseService, ServiceError
from knowex.utils.audit import log_audit_event
from knowex.utils.passwords import hash_password

_ALREADY_REGISTERED_MARKERS: tuple[str, ...] = (
    "already registered",
    "already been registered",
    "email_exists",
)
LIST_USERS_PAGE_SIZE: int = 100


class AdminProvisioningError(ServiceError):
    """Raised when an admin account cannot be provisioned."""


class AdminProvisioningService(BaseService):
    """Creates admin accounts, credentials and role assignments."""

    def __init__(
        self,
        db: DatabaseManager,
        user_repo: UserRepository,
        admin_repo: AdminRepository,
        logger: StructuredLogger,
        config: Optional[AppConfig] = None,
    ) -> None:
        super().__init__(logger)
        self._db = db
        self._user_repo = user_repo
        self._admin_repo = admin_repo
        self._config: AppConfig = config or get_config()

    # ==================================================================
    # Bootstrap administrator
    # ==================================================================

    def bootstrap_admin(self) -> AdminProvisioningResult:
        """Provision the bootstrap administrator from configuration.

        Raises:
            AdminProvisioningError: Any step failed; the cause is kept in
                ``original_error``.
        """
        cfg = self._config
        email = cfg.BOOTSTRAP_ADMIN_EMAIL.strip().lower()
        username = cfg.BOOTSTRAP_ADMIN_USERNAME.strip().lower()
        password = cfg.BOOTSTRAP_ADMIN_PASSWORD.get_secret_value()
        full_name = cfg.BOOTSTRAP_ADMIN_FULL_NAME
        role_name = cfg.BOOTSTRAP_ADMIN_ROLE

        user_id, created = self._create_or_fetch_account(email, password, full_name)

        try:
            self._user_repo.upsert(
                UserProfile(
                    user_id=user_id,
                    username=username,
                    email=email,
                    is_active=True,
                    onboarded=True,
                    is_admin=True,
                )
            )
            self._user_repo.upsert_full_name(user_id, full_name)

            credential = self._admin_repo.upsert_credential(
                user_id,
                username,
                hash_password(password, iterations=cfg.ADMIN_PASSWORD_HASH_ITERATIONS),
            )

            role = self._admin_repo.get_role_by_name(role_name)
            if role is None or role.role_id is None:
                raise AdminProvisioningError(f"Role '{role_name}' not found")
            if credential.admin_id is None:
                raise AdminProvisioningError("Credential upsert returned no admin_id")
            self._admin_repo.upsert_role_assignments(credential.admin_id, [role.role_id])
        except AdminProvisioningError:
            raise
        except Exception as exc:
            self._logger.error("Error creating admin profile: %s", exc)
            raise AdminProvisioningError(f"Error creating admin profile: {exc}", exc) from exc

        log_audit_event(
            self._logger,
            action="ADMIN_PROVISIONED",
            entity_type="AdminCredential",
            entity_id=str(credential.admin_id),
            user_id=user_id,
            details={"username": username, "role": role_name, "account_created": created},
        )
        return AdminProvisioningResult(
            user_id=user_id,
            email=email,
            username=username,
            admin_id=credential.admin_id,
            role_name=role_name,
            account_created=created,
        )

    def _create_or_fetch_account(
        self, email: str, password: str, full_name: str
    ) -> tuple[str, bool]:
        """Return ``(user_id, created)`` for the auth account of *email*."""
        auth_admin = self._db.supabase.auth.admin
        try:
            response = auth_admin.create_user({
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": {"full_name": full_name, "onboarded": True},
            })
        except Exception as exc:
            if not any(m in str(exc).lower() for m in _ALREADY_REGISTERED_MARKERS):
                raise AdminProvisioningError(f"Error creating admin user: {exc}", exc) from exc
            self._logger.info("User %s already exists, fetching user...", email)
            user_id = self._find_account_id(email)
            if user_id is not None:
                return user_id, False
            raise AdminProvisioningError(
                f"{email} is registered but could not be found", exc
            ) from exc

        if response.user is None:
            raise AdminProvisioningError(f"Auth returned no user for {email}")
        self._logger.info("Auth account created for %s", email)
        return str(response.user.id), True

    def _find_account_id(self, email: str) -> Optional[str]:
        """Page through the auth users until *email* turns up."""
        auth_admin = self._db.supabase.auth.admin
        page = 1
        while True:
            users = auth_admin.list_users(page=page, per_page=LIST_USERS_PAGE_SIZE)
            for user in users:
                if (user.email or "").lower() == email:
                    return str(user.id)
            if len(users) < LIST_USERS_PAGE_SIZE:
                return None
            page += 1

    # ==================================================================
    # Additional administrators
    # ==================================================================

    def create_admin(
        self,
        user_id: str,
        username: str,
        password: str,
        role_names: Iterable[str] = ("moderator",),
    ) -> AdminCredential:
        """Grant admin credentials with *role_names* to an existing user.

        Raises:
            AdminProvisioningError: The username is taken, or none of
                *role_names* exists.
        """
        username = username.strip().lower()
        role_names = list(role_names)

        if self._admin_repo.get_by_username(username) is not None:
            raise AdminProvisioningError("Admin username already exists")

        roles = self._admin_repo.get_roles_by_names(role_names)
        if not roles:
            raise AdminProvisioningError("Invalid roles specified")
        missing = set(role_names) - {role.role_name for role in roles}
        if missing:
            self._logger.warning("Skipping unknown admin roles: %s", ", ".join(sorted(missing)))

        credential = self._admin_repo.insert_credential(
            user_id,
            username,
            hash_password(password, iterations=self._config.ADMIN_PASSWORD_HASH_ITERATIONS),
        )
        if credential.admin_id is None:
            raise AdminProvisioningError("Credential insert returned no admin_id")
        self._admin_repo.upsert_role_assignments(
            credential.admin_id,
            [role.role_id for role in roles if role.role_id is not None],
        )
        self._user_repo.set_admin(user_id, True)

        log_audit_event(
            self._logger,
            action="ADMIN_CREATED",
            entity_type="AdminCredential",
            entity_id=str(credential.admin_id),
            user_id=user_id,
            details={"username": username, "roles": ",".join(r.role_name for r in roles)},
        )
        return credential.model_copy(update={"roles": roles})
