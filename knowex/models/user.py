"""
User Models.

``UserProfile`` mirrors a row of the ``users`` table, the authoritative
source for onboarding status.  ``FullNameProfile`` mirrors the 1:1
``user_profiles`` side table holding the display name.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UserProfile(BaseModel):
    """Represents a row of the ``users`` table.

    ``onboarded`` is authoritative; the auth provider's metadata flag is
    only a best-effort mirror consulted as a fast path.
    """

    user_id: str  # Supabase auth UUID
    username: str = Field(min_length=1)
    email: str
    profile_image_url: Optional[str] = None
    is_active: bool = True
    onboarded: bool = False
    is_admin: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "extra": "ignore"}


class FullNameProfile(BaseModel):
    """Represents a row of the ``user_profiles`` table."""

    user_id: str
    full_name: Optional[str] = None

    model_config = {"from_attributes": True, "extra": "ignore"}


class ProfileView(BaseModel):
    """Home-screen profile: the user row joined with its display name."""

    profile: UserProfile
    full_name: Optional[str] = None
