"""
Admin Repository.

Handles the admin credential store: ``admin_credentials``,
``admin_roles`` and the ``admin_user_roles`` join table.  Credentials are
read together with their roles through a PostgREST resource embed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from knowex.models.admin import AdminCredential, AdminRole
from knowex.repositories.base_repository import BaseRepository

# Embeds role rows through the join table in a single request.
_CREDENTIAL_WITH_ROLES: str = (
    "*, admin_user_roles(admin_roles(role_id, role_name, permissions))"
)


def _credential_from_row(row: dict[str, Any]) -> AdminCredential:
    """Flatten the ``admin_user_roles -> admin_roles`` embed into ``roles``."""
    roles: list[AdminRole] = []
    for assignment in row.get("admin_user_roles") or []:
        role_row = assignment.get("admin_roles")
        if role_row:
            roles.append(AdminRole(**role_row))
    data = {k: v for k, v in row.items() if k != "admin_user_roles"}
    return AdminCredential(**data, roles=roles)


class AdminRepository(BaseRepository):
    """Data access layer for admin credentials, roles and assignments."""

    TABLE = "admin_credentials"
    ROLE_TABLE = "admin_roles"
    ASSIGNMENT_TABLE = "admin_user_roles"

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def get_active_by_username(self, username: str) -> Optional[AdminCredential]:
        """Fetch an active credential and its roles by lower-cased username."""
        row = self._fetch_single(
            "username",
            username.strip().lower(),
            columns=_CREDENTIAL_WITH_ROLES,
            operation_name="get_active_by_username (admin_credentials)",
            is_active=True,
        )
        return _credential_from_row(row) if row else None

    def get_by_username(self, username: str) -> Optional[AdminCredential]:
        """Fetch a credential regardless of ``is_active``."""
        row = self._fetch_single(
            "username",
            username.strip().lower(),
            operation_name="get_by_username (admin_credentials)",
        )
        return _credential_from_row(row) if row else None

    def get_by_user_id(self, user_id: str) -> Optional[AdminCredential]:
        row = self._fetch_single(
            "user_id",
            user_id,
            operation_name="get_by_user_id (admin_credentials)",
            is_active=True,
        )
        return _credential_from_row(row) if row else None

    def get_by_id(self, admin_id: int) -> Optional[AdminCredential]:
        """Fetch an active credential and its roles by primary key."""
        row = self._fetch_single(
            "admin_id",
            admin_id,
            columns=_CREDENTIAL_WITH_ROLES,
            operation_name="get_by_id (admin_credentials)",
            is_active=True,
        )
        return _credential_from_row(row) if row else None

    def touch_last_login(self, admin_id: int) -> None:
        (
            self.supabase.table(self.TABLE)
            .update({"last_login": datetime.now(timezone.utc).isoformat()})
            .eq("admin_id", admin_id)
            .execute()
        )

    def insert_credential(
        self, user_id: str, username: str, password_hash: str
    ) -> AdminCredential:
        data = {
            "user_id": user_id,
            "username": username.strip().lower(),
            "password_hash": password_hash,
            "is_active": True,
        }
        response = self.supabase.table(self.TABLE).insert(data).execute()
        credential = AdminCredential(**response.data[0])
        self._logger.info("Admin credential created: %s", credential.username)
        return credential

    def upsert_credential(
        self, user_id: str, username: str, password_hash: str
    ) -> AdminCredential:
        """Insert or update the credential keyed on ``username``."""
        data = {
            "user_id": user_id,
            "username": username.strip().lower(),
            "password_hash": password_hash,
            "is_active": True,
        }
        response = (
            self.supabase.table(self.TABLE)
            .upsert(data, on_conflict="username")
            .execute()
        )
        credential = AdminCredential(**response.data[0])
        self._logger.info("Admin credential upserted: %s", credential.username)
        return credential

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def get_role_by_name(self, role_name: str) -> Optional[AdminRole]:
        response = (
            self.supabase.table(self.ROLE_TABLE)
            .select("*")
            .eq("role_name", role_name)
            .execute()
        )
        return AdminRole(**response.data[0]) if response.data else None

    def get_roles_by_names(self, role_names: Iterable[str]) -> list[AdminRole]:
        response = (
            self.supabase.table(self.ROLE_TABLE)
            .select("*")
            .in_("role_name", list(role_names))
            .execute()
        )
        return [AdminRole(**row) for row in response.data or []]

    def upsert_role_assignments(self, admin_id: int, role_ids: Iterable[int]) -> None:
        """Link *admin_id* to every role in *role_ids* (re-runnable)."""
        rows = [{"admin_id": admin_id, "role_id": role_id} for role_id in role_ids]
        if not rows:
            return
        (
            self.supabase.table(self.ASSIGNMENT_TABLE)
            .upsert(rows, on_conflict="admin_id,role_id")
            .execute()
        )
