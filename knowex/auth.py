"""
Authentication & Session State.

Provides an injectable ``SessionManager`` that holds the auth provider's
current session (``AuthSession`` model) for the lifetime of the process.
The manager is a mirror, not an authority: ``SessionRouter`` refreshes it
on every auth-state event and clears it on sign-out.

Usage::

    from knowex.auth import SessionManager
    from knowex.models.auth_models import AuthSession

    session = SessionManager()
    session.set_current_session(AuthSession(
        user_id="abc-123",
        email="user@example.com",
        user_metadata={"full_name": "Ada Lovelace"},
    ))
    user_id = session.get_current_user_id()
"""

from __future__ import annotations

import threading
from typing import Optional

from knowex.models.admin import AdminIdentity
from knowex.models.auth_models import AuthSession


class SessionManager:
    """Injectable holder for the current authenticated session.

    Each instance maintains its own session state, eliminating the
    need for module-level globals.  Pass a single ``SessionManager``
    through your dependency-injection layer so every component shares
    the same session.  Auth-state callbacks arrive on the Supabase
    client's thread, so every accessor takes the lock.
    """

    def __init__(self) -> None:
        self._lock: threading.RLock = threading.RLock()
        self._current_session: Optional[AuthSession] = None
        self._admin_identity: Optional[AdminIdentity] = None

    def set_current_session(self, session: AuthSession) -> None:
        """Record *session* as the authenticated provider session."""
        with self._lock:
            self._current_session = session

    def get_current_session(self) -> AuthSession:
        """Return the authenticated session.

        Raises:
            RuntimeError: If no user is currently authenticated.
        """
        with self._lock:
            if self._current_session is None:
                raise RuntimeError(
                    "No user is currently authenticated. Login required."
                )
            return self._current_session

    def get_current_user_id(self) -> str:
        """Shortcut for ``get_current_session().user_id``."""
        return self.get_current_session().user_id

    @property
    def current_session(self) -> Optional[AuthSession]:
        """The session, or ``None`` when signed out."""
        with self._lock:
            return self._current_session

    def set_admin_identity(self, identity: AdminIdentity) -> None:
        """Record the composite identity of a successful admin login."""
        with self._lock:
            self._admin_identity = identity

    @property
    def admin_identity(self) -> Optional[AdminIdentity]:
        with self._lock:
            return self._admin_identity

    def clear(self) -> None:
        """Remove the session and any admin identity, ending the session."""
        with self._lock:
            self._current_session = None
            self._admin_identity = None

    @property
    def is_authenticated(self) -> bool:
        """``True`` when a provider session is held."""
        with self._lock:
            return self._current_session is not None
