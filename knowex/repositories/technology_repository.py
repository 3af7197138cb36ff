"""
Technology Repository.

Reads the ``technologies`` catalog and bulk-inserts
``user_technologies`` interest rows.
"""

from __future__ import annotations

from typing import Iterable

from knowex.models.community import Technology, UserTechnologyInterest
from knowex.repositories.base_repository import BaseRepository


class TechnologyRepository(BaseRepository):
    """Data access layer for technologies and user interests."""

    TABLE = "technologies"
    INTEREST_TABLE = "user_technologies"

    def list_active_for_community(self, community_id: int) -> list[Technology]:
        response = (
            self.supabase.table(self.TABLE)
            .select("*")
            .eq("community_id", community_id)
            .eq("is_active", True)
            .order("name")
            .execute()
        )
        return [Technology(**row) for row in response.data or []]

    def list_all(self) -> list[Technology]:
        response = (
            self.supabase.table(self.TABLE)
            .select("*")
            .eq("is_active", True)
            .order("name")
            .execute()
        )
        return [Technology(**row) for row in response.data or []]

    def insert_interests(
        self, user_id: str, tech_ids: Iterable[int]
    ) -> list[UserTechnologyInterest]:
        """Insert one interest row per id in a single request.

        The batch is all-or-nothing: a duplicate ``(user_id, tech_id)``
        pair fails the whole insert with a ``23505`` error.
        """
        rows = [{"user_id": user_id, "tech_id": tech_id} for tech_id in tech_ids]
        if not rows:
            return []
        response = self.supabase.table(self.INTEREST_TABLE).insert(rows).execute()
        return [UserTechnologyInterest(**row) for row in (response.data or rows)]
