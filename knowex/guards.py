"""
Signed-in Session Guard.

Onboarding writes (join requests, technology interests) belong to the
current user, so they must never run against an empty session.  The
guard checks ``SessionManager.is_authenticated`` immediately before the
write and raises ``AuthenticationError`` naming the blocked action.

Usage::

    guard = require_auth(session, action="join a community")
    join_request = guard(community_repo.create_join_request)(user_id, 3)
"""

from __future__ import annotations

from functools import wraps
from typing import Callable, ParamSpec, TypeVar

from knowex.auth import SessionManager

P = ParamSpec("P")
R = TypeVar("R")


class AuthenticationError(RuntimeError):
    """No signed-in user for an action that writes on the user's behalf."""

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"You must be signed in to {action}.")


def require_auth(
    session: SessionManager, action: str = "continue onboarding"
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Decorator factory that blocks calls while *session* is signed out.

    The session is read on every call, not when the decorator is built,
    so a sign-out between steps is honoured by the next write.
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def guarded(*args: P.args, **kwargs: P.kwargs) -> R:
            if not session.is_authenticated:
                raise AuthenticationError(action)
            return func(*args, **kwargs)

        return guarded

    return decorator
