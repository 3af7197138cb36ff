"""
Community Repository.

Reads the pre-seeded ``communities`` catalog and manages rows of
``community_join_requests``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from knowex.models.community import Community, CommunityJoinRequest
from knowex.models.enums import JoinRequestStatus
from knowex.repositories.base_repository import BaseRepository


class CommunityRepository(BaseRepository):
    """Data access layer for communities and their join requests."""

    TABLE = "communities"
    JOIN_REQUEST_TABLE = "community_join_requests"

    def list_active(self) -> list[Community]:
        """Active communities, largest first."""
        response = (
            self.supabase.table(self.TABLE)
            .select("*")
            .eq("is_active", True)
            .order("member_count", desc=True)
            .execute()
        )
        return [Community(**row) for row in response.data or []]

    def find_open_join_request(
        self, user_id: str, community_id: int
    ) -> Optional[CommunityJoinRequest]:
        """Return the user's pending or approved request, if any.

        When several open rows exist (possible under concurrent
        submission), the first one returned wins.
        """
        response = (
            self.supabase.table(self.JOIN_REQUEST_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("community_id", community_id)
            .in_("status", [str(s) for s in JoinRequestStatus.open_statuses()])
            .execute()
        )
        if not response.data:
            return None
        return CommunityJoinRequest(**response.data[0])

    def insert_join_request(
        self, user_id: str, community_id: int
    ) -> CommunityJoinRequest:
        """Insert a new ``pending`` join request."""
        data = {
            "community_id": community_id,
            "user_id": user_id,
            "status": str(JoinRequestStatus.PENDING),
            "requested_at": datetime.now(timezone.utc).isoformat(),
        }
        response = self.supabase.table(self.JOIN_REQUEST_TABLE).insert(data).execute()
        request = CommunityJoinRequest(**(response.data[0] if response.data else data))
        self._logger.info(
            "Join request created: user=%s community=%s", user_id, community_id
        )
        return request
