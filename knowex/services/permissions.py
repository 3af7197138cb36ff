"""
Admin Permission Aggregation.

Turns the free-form ``permissions`` JSON stored on each admin role into
the typed ``PermissionMap`` and merges the maps of every role an admin
holds.  The merge is a per-capability set union, so the result does not
depend on role order and never contains duplicates.

Pure functions; no I/O.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from knowex.models.admin import AdminRole, PermissionMap
from knowex.models.enums import Capability, PermissionAction

__all__ = ["parse_permissions", "merge_permissions", "permissions_for_roles"]


def parse_permissions(
    raw: Mapping[str, Iterable[str]],
) -> tuple[PermissionMap, list[str]]:
    """Validate a role's stored permission JSON.

    Args:
        raw: Capability key -> list of action strings, as stored.

    Returns:
        ``(permissions, unknown)`` where *unknown* lists every capability
        key or ``capability:action`` pair that is not a known enum value.
        Unknown entries are dropped from *permissions*.
    """
    permissions: PermissionMap = {}
    unknown: list[str] = []
    for key, actions in raw.items():
        try:
            capability = Capability(key)
        except ValueError:
            unknown.append(key)
            continue
        allowed: set[PermissionAction] = set()
        for action in actions or []:
            try:
                allowed.add(PermissionAction(action))
            except ValueError:
                unknown.append(f"{key}:{action}")
        permissions[capability] = frozenset(allowed) | permissions.get(
            capability, frozenset()
        )
    return permissions, unknown


def merge_permissions(maps: Iterable[PermissionMap]) -> PermissionMap:
    """Union the actions of each capability across *maps*."""
    merged: dict[Capability, set[PermissionAction]] = {}
    for permission_map in maps:
        for capability, actions in permission_map.items():
            merged.setdefault(capability, set()).update(actions)
    return {capability: frozenset(actions) for capability, actions in merged.items()}


def permissions_for_roles(
    roles: Iterable[AdminRole],
) -> tuple[PermissionMap, list[str]]:
    """Parse and merge the permissions of *roles*.

    Returns the merged map and the unknown entries found across all
    roles, each prefixed with the role name.
    """
    maps: list[PermissionMap] = []
    unknown: list[str] = []
    for role in roles:
        parsed, role_unknown = parse_permissions(role.permissions)
        maps.append(parsed)
        unknown.extend(f"{role.role_name}/{entry}" for entry in role_unknown)
    return merge_permissions(maps), unknown
