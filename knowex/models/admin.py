"""
Administrator Models.

Admin credentials live in their own tables, separate from the
``users`` / auth-provider identity, and are only created by the
provisioning routine.  Roles carry a JSON ``permissions`` object keyed
by capability; :mod:`knowex.services.permissions` turns those into the
typed ``PermissionMap`` used everywhere else.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from knowex.models.enums import Capability, PermissionAction
from knowex.models.user import UserProfile

PermissionMap = dict[Capability, frozenset[PermissionAction]]
"""Effective permissions: capability -> set of allowed actions."""


class AdminRole(BaseModel):
    """Represents a row of the ``admin_roles`` table.

    ``permissions`` is the raw stored JSON; it is validated into a
    ``PermissionMap`` by ``knowex.services.permissions.parse_permissions``.
    """

    role_id: Optional[int] = None
    role_name: str
    permissions: dict[str, list[str]] = Field(default_factory=dict)

    model_config = {"from_attributes": True, "extra": "ignore"}


class AdminRoleAssignment(BaseModel):
    """Represents a row of the ``admin_user_roles`` table."""

    admin_id: int
    role_id: int

    model_config = {"from_attributes": True, "extra": "ignore"}


class AdminCredential(BaseModel):
    """Represents a row of the ``admin_credentials`` table.

    ``roles`` is populated only when the row was fetched with its
    ``admin_user_roles -> admin_roles`` embed.
    """

    admin_id: Optional[int] = None
    username: str
    password_hash: str
    user_id: str
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    roles: list[AdminRole] = Field(default_factory=list)

    model_config = {"from_attributes": True, "extra": "ignore"}


class AdminIdentity(BaseModel):
    """Composite identity returned by a successful admin login.

    Attributes
    ----------
    admin_id:
        Primary key of the admin credential.
    username:
        Lower-cased admin username.
    roles:
        Names of every assigned role.
    permissions:
        Per-capability union of all assigned roles' actions.
    user:
        The linked ``users`` row, flagged ``is_admin=True``.
    """

    admin_id: int
    username: str
    roles: list[str] = Field(default_factory=list)
    permissions: PermissionMap = Field(default_factory=dict)
    user: UserProfile

    def can(self, capability: Capability, action: PermissionAction) -> bool:
        """``True`` when any assigned role grants *action* on *capability*."""
        return action in self.permissions.get(capability, frozenset())

    def permissions_as_lists(self) -> dict[str, list[str]]:
        """Serialisable view with sorted action lists."""
        return {
            str(capability): sorted(str(action) for action in actions)
            for capability, actions in self.permissions.items()
        }


class AdminProvisioningResult(BaseModel):
    """Summary of a bootstrap-admin provisioning run."""

    user_id: str
    email: str
    username: str
    admin_id: int
    role_name: str
    account_created: bool = Field(
        default=False,
        description="False when the auth account already existed.",
    )
