"""
Session Resolver & Router.

``SessionResolver`` decides which screen a (possibly absent) session
lands on.  Priority order, first match wins:

1. No session                               -> login
2. Provider metadata ``onboarded is True``  -> home (no store read)
3. ``users`` row fetched:
   - fetch raised      -> embedded flag ``False`` -> onboarding,
                          otherwise (``True``/absent) -> main
   - ``onboarded``     -> main
   - not onboarded / no row -> onboarding

The decision is never cached and never retried.

``SessionRouter`` is the single consumer of the ``AuthEventStream``: it
mirrors each event's session into the ``SessionManager`` and re-resolves
the route on session start, sign-in and sign-out.  Sign-out always goes
to login.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from knowex.auth import SessionManager
from knowex.auth_events import AuthEvent
from knowex.database import DatabaseManager
from knowex.logger import StructuredLogger
from knowex.models.auth_models import AuthSession
from knowex.models.enums import AuthEventType, Route
from knowex.repositories.user_repository import UserRepository
from knowex.services.base_service import BaseService

Navigator = Callable[[Route], None]


class SessionResolver(BaseService):
    """Pure routing decision with one external read."""

    def __init__(
        self,
        db: DatabaseManager,
        user_repo: UserRepository,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._db = db
        self._user_repo = user_repo

    def resolve(self, session: Optional[AuthSession]) -> Route:
        """Return the target route for *session*."""
        if session is None:
            return Route.LOGIN

        embedded = session.embedded_onboarded
        if embedded is True:
            return Route.HOME

        try:
            profile = self._user_repo.get_by_id(session.user_id)
        except Exception as exc:
            self._logger.warning(
                "Profile fetch failed for %s, using auth metadata: %s",
                session.user_id,
                exc,
            )
            return Route.ONBOARDING_COMMUNITIES if embedded is False else Route.MAIN

        if profile is not None and profile.onboarded:
            return Route.MAIN
        return Route.ONBOARDING_COMMUNITIES

    def current_session(self) -> Optional[AuthSession]:
        """Read the provider's current session (``None`` when signed out).

        Errors propagate.
        """
        return AuthSession.from_supabase(self._db.supabase.auth.get_session())

    def resolve_current(self) -> tuple[Optional[AuthSession], Route]:
        """Resolve the provider's current session at process start.

        Returns the session alongside the route; a failure to read the
        session routes to login.
        """
        try:
            session = self.current_session()
        except Exception as exc:
            self._logger.error("Error initializing auth: %s", exc)
            return None, Route.LOGIN
        return session, self.resolve(session)


class SessionRouter(BaseService):
    """Consumes auth events and drives navigation.

    Parameters
    ----------
    resolver:
        Routing decision function.
    session:
        Session mirror updated on every event.
    navigate:
        Callback receiving each new target route.
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        resolver: SessionResolver,
        session: SessionManager,
        navigate: Navigator,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._resolver = resolver
        self._session = session
        self._navigate = navigate

    def start(self) -> Route:
        """Resolve and navigate to the initial route."""
        auth_session, route = self._resolver.resolve_current()
        self._mirror(auth_session)
        self._go(route, reason="startup")
        return route

    def handle(self, event: AuthEvent) -> Optional[Route]:
        """React to one auth event; return the route navigated to, if any."""
        if event.type == AuthEventType.SIGNED_OUT:
            self._session.clear()
            self._go(Route.LOGIN, reason=str(event.type))
            return Route.LOGIN

        self._mirror(event.session)
        if not event.type.triggers_routing:
            return None

        route = self._resolver.resolve(event.session)
        self._go(route, reason=str(event.type))
        return route

    def run(self, events: Iterable[AuthEvent]) -> None:
        """Handle events until *events* is exhausted (stream closed)."""
        for event in events:
            try:
                self.handle(event)
            except Exception as exc:
                self._logger.exception(
                    "Auth event %s could not be handled: %s", event.type, exc
                )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _mirror(self, auth_session: Optional[AuthSession]) -> None:
        if auth_session is None:
            self._session.clear()
        else:
            self._session.set_current_session(auth_session)

    def _go(self, route: Route, *, reason: str) -> None:
        self._logger.info(
            "Navigating to %s", route,
            extra={"event": "NAVIGATE", "route": str(route), "reason": reason},
        )
        self._navigate(route)
