"""
User Repository.

Handles all user data access via Supabase: the ``users`` table (the
authoritative profile and onboarding flag) and its 1:1 ``user_profiles``
side table holding the display name.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from knowex.database import DatabaseManager
from knowex.logger import StructuredLogger
from knowex.models.user import FullNameProfile, UserProfile
from knowex.repositories.base_repository import BaseRepository


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class UserRepository(BaseRepository):
    """Data access layer for User Profile and Full Name Profile rows.

    **No ``delete()`` method.**  Accounts are never deleted by this
    system; an aborted signup leaves its account in place and the
    session resolver routes it to onboarding.
    """

    TABLE = "users"
    FULL_NAME_TABLE = "user_profiles"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        """Fetch a user by auth UUID.  Errors propagate to the caller."""
        row = self._fetch_single(
            "user_id", user_id, operation_name="get_by_id (users)"
        )
        return UserProfile(**row) if row else None

    def get_by_username(self, username: str) -> Optional[UserProfile]:
        """Fetch a user by username (case-sensitive as stored)."""
        row = self._fetch_single(
            "username", username, operation_name="get_by_username (users)"
        )
        return UserProfile(**row) if row else None

    def is_username_available(self, username: str) -> bool:
        """``True`` when no ``users`` row holds *username*.

        Advisory only: another signup can claim the name between this
        check and the insert.
        """
        response = (
            self.supabase.table(self.TABLE)
            .select("username")
            .eq("username", username)
            .execute()
        )
        return not response.data

    def get_full_name(self, user_id: str) -> Optional[FullNameProfile]:
        """Fetch the display-name side record for *user_id*."""
        response = (
            self.supabase.table(self.FULL_NAME_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .execute()
        )
        return FullNameProfile(**response.data[0]) if response.data else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_profile(
        self,
        user_id: str,
        email: str,
        username: str,
        profile_image_url: Optional[str] = None,
    ) -> UserProfile:
        """Insert a fresh, not-yet-onboarded ``users`` row.

        Raises ``postgrest.exceptions.APIError`` (code ``23505``) when the
        username is already taken; the signup service retries on that.
        """
        data: dict[str, Any] = {
            "user_id": user_id,
            "email": email.strip().lower(),
            "username": username,
            "profile_image_url": profile_image_url,
            "onboarded": False,
            "is_active": True,
        }
        response = self.supabase.table(self.TABLE).insert(data).execute()
        profile = UserProfile(**(response.data[0] if response.data else data))
        self._logger.info("User profile created: %s (%s)", user_id, username)
        return profile

    def insert_full_name(self, user_id: str, full_name: str) -> FullNameProfile:
        data = {"user_id": user_id, "full_name": full_name}
        response = self.supabase.table(self.FULL_NAME_TABLE).insert(data).execute()
        return FullNameProfile(**(response.data[0] if response.data else data))

    def mark_onboarded(self, user_id: str) -> None:
        """Set ``onboarded = true`` with a fresh ``updated_at``."""
        (
            self.supabase.table(self.TABLE)
            .update({"onboarded": True, "updated_at": _now_iso()})
            .eq("user_id", user_id)
            .execute()
        )
        self._logger.info("User marked onboarded: %s", user_id)

    def set_admin(self, user_id: str, is_admin: bool = True) -> None:
        (
            self.supabase.table(self.TABLE)
            .update({"is_admin": is_admin, "updated_at": _now_iso()})
            .eq("user_id", user_id)
            .execute()
        )

    def upsert(self, profile: UserProfile) -> UserProfile:
        """Insert or update a ``users`` row keyed on ``user_id``."""
        data = profile.model_dump(mode="json", exclude_none=True)
        data["updated_at"] = _now_iso()
        response = (
            self.supabase.table(self.TABLE)
            .upsert(data, on_conflict="user_id")
            .execute()
        )
        result = UserProfile(**response.data[0]) if response.data else profile
        self._logger.info("User upserted: %s", result.user_id)
        return result

    def upsert_full_name(self, user_id: str, full_name: str) -> None:
        (
            self.supabase.table(self.FULL_NAME_TABLE)
            .upsert({"user_id": user_id, "full_name": full_name}, on_conflict="user_id")
            .execute()
        )
