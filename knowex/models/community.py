"""
Community & Technology Catalog Models.

Communities and technologies are pre-seeded externally and read-only
from this package's perspective.  Join requests and technology
interests are the only rows onboarding writes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from knowex.models.enums import JoinRequestStatus


class Community(BaseModel):
    """Represents a row of the ``communities`` table."""

    community_id: int
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    member_count: int = 0
    is_active: bool = True

    model_config = {"from_attributes": True, "extra": "ignore"}


class CommunityJoinRequest(BaseModel):
    """Represents a row of the ``community_join_requests`` table.

    ``status`` is kept as a plain string so rows written with statuses
    this package does not know about still load.
    """

    request_id: Optional[int] = None
    community_id: int
    user_id: str
    status: str = JoinRequestStatus.PENDING
    requested_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "extra": "ignore"}


class Technology(BaseModel):
    """Represents a row of the ``technologies`` table."""

    tech_id: int
    name: str
    category: Optional[str] = None
    community_id: Optional[int] = None
    is_active: bool = True

    model_config = {"from_attributes": True, "extra": "ignore"}


class UserTechnologyInterest(BaseModel):
    """Represents a row of the ``user_technologies`` table."""

    user_id: str
    tech_id: int

    model_config = {"from_attributes": True, "extra": "ignore"}


class TechnologySelection(BaseModel):
    """Multi-select state of the technology step.

    ``toggle`` adds an id that is absent and removes one that is present,
    so the selection is always a set.
    """

    selected: set[int] = Field(default_factory=set)

    def toggle(self, tech_id: int) -> bool:
        """Flip membership of *tech_id*; return ``True`` if now selected."""
        if tech_id in self.selected:
            self.selected.discard(tech_id)
            return False
        self.selected.add(tech_id)
        return True

    def is_selected(self, tech_id: int) -> bool:
        return tech_id in self.selected

    def clear(self) -> None:
        self.selected.clear()

    @property
    def count(self) -> int:
        return len(self.selected)

    def as_sorted_ids(self) -> list[int]:
        return sorted(self.selected)
