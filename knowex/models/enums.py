"""
Shared Enumerations for KnowEx Models.

All string enumerations for type-safe field constraints.
StrEnum values compare equal to their string equivalents,
so code like ``if status == 'pending'`` continues to work.
"""

from __future__ import annotations
from enum import StrEnum


class Route(StrEnum):
    """Screens the presentation layer can be sent to.

    ``HOME`` and ``MAIN`` are distinct targets: ``HOME`` is the explicit
    home screen, ``MAIN`` the main section's index, which lands on home.
    """

    LOGIN = "/(auth)/login"
    SIGNUP = "/(auth)/signup"
    ADMIN_LOGIN = "/(auth)/admin-login"
    ONBOARDING_COMMUNITIES = "/(onboarding)/domains"
    ONBOARDING_TECHNOLOGIES = "/(onboarding)/technologies"
    MAIN = "/(main)"
    HOME = "/(main)/home"
    ADMIN_HOME = "/(admin)/home"


class JoinRequestStatus(StrEnum):
    """Community join-request states.

    ``PENDING`` and ``APPROVED`` are non-terminal: while one exists for a
    (user, community) pair, no new request is created.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @classmethod
    def open_statuses(cls) -> tuple["JoinRequestStatus", ...]:
        return (cls.PENDING, cls.APPROVED)


class Capability(StrEnum):
    """Administrative capability keys found in ``admin_roles.permissions``."""

    USERS = "users"
    REPORTS = "reports"
    COMMUNITIES = "communities"
    JOIN_REQUESTS = "join_requests"
    TECHNOLOGIES = "technologies"
    CONTENT = "content"
    SETTINGS = "settings"


class PermissionAction(StrEnum):
    """Actions an admin role may grant on a capability."""

    READ = "read"
    WRITE = "write"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    MODERATE = "moderate"
    MANAGE = "manage"


class AuthEventType(StrEnum):
    """Auth-state transitions reported by the Supabase client."""

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"
    MFA_CHALLENGE_VERIFIED = "MFA_CHALLENGE_VERIFIED"

    @property
    def triggers_routing(self) -> bool:
        """Only session start, sign-in and sign-out move the user."""
        return self in (
            AuthEventType.INITIAL_SESSION,
            AuthEventType.SIGNED_IN,
            AuthEventType.SIGNED_OUT,
        )
