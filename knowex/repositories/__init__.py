"""
Data Access Layer.

Repositories encapsulate Supabase table access. Services never touch
the PostgREST builders directly.
"""

from knowex.repositories.admin_repository import AdminRepository
from knowex.repositories.base_repository import (
    BaseRepository,
    is_no_rows,
    is_unique_violation,
)
from knowex.repositories.community_repository import CommunityRepository
from knowex.repositories.technology_repository import TechnologyRepository
from knowex.repositories.user_repository import UserRepository

__all__ = [
    "AdminRepository",
    "BaseRepository",
    "CommunityRepository",
    "TechnologyRepository",
    "UserRepository",
    "is_no_rows",
    "is_unique_violation",
]
