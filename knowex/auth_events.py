"""
Auth-State Event Stream.

Wraps the Supabase client's ``on_auth_state_change`` callback in an
explicit, iterable stream so that exactly one consumer (the
``SessionRouter``) reacts to sign-in and sign-out.  The subscription
lives for the duration of the ``with`` block and is always unsubscribed
on exit.

Usage::

    with AuthEventStream(db, logger) as stream:
        router.run(stream)        # blocks until stream.close()
"""

from __future__ import annotations

import queue
import threading
from types import TracebackType
from typing import Any, Iterator, Optional

from pydantic import BaseModel

from knowex.database import DatabaseManager
from knowex.logger import StructuredLogger
from knowex.models.auth_models import AuthSession
from knowex.models.enums import AuthEventType


class AuthEvent(BaseModel):
    """One auth-state transition and the session that followed it."""

    type: AuthEventType
    session: Optional[AuthSession] = None


_CLOSED = object()


class AuthEventStream:
    """Context-managed, thread-safe queue of ``AuthEvent`` objects.

    The Supabase client invokes the callback on whichever thread changed
    the auth state; events are handed to the consumer through a
    ``queue.Queue``.
    """

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db: DatabaseManager = db
        self._logger: StructuredLogger = logger
        self._queue: queue.Queue[Any] = queue.Queue()
        self._subscription: Any = None
        self._closed: threading.Event = threading.Event()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> "AuthEventStream":
        """Subscribe to auth-state changes.  Idempotent."""
        if self._subscription is None:
            self._subscription = self._db.supabase.auth.on_auth_state_change(
                self._on_change
            )
            self._logger.debug("Subscribed to auth-state changes.")
        return self

    def close(self) -> None:
        """Unsubscribe and wake any consumer blocked in iteration."""
        if self._closed.is_set():
            return
        self._closed.set()
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            try:
                subscription.unsubscribe()
            except Exception as exc:
                self._logger.warning("Auth-state unsubscribe failed: %s", exc)
            else:
                self._logger.debug("Unsubscribed from auth-state changes.")
        self._queue.put(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def __enter__(self) -> "AuthEventStream":
        return self.open()

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def _on_change(self, event: Any, session: Any) -> None:
        """Supabase callback: convert and enqueue."""
        if self._closed.is_set():
            return
        event_name = getattr(event, "value", event)
        try:
            event_type = AuthEventType(str(event_name))
        except ValueError:
            self._logger.warning("Ignoring unknown auth event: %s", event_name)
            return
        self.publish(
            AuthEvent(type=event_type, session=AuthSession.from_supabase(session))
        )

    def publish(self, event: AuthEvent) -> None:
        """Enqueue *event* for the consumer."""
        if not self._closed.is_set():
            self._queue.put(event)

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def get(self, timeout: Optional[float] = None) -> Optional[AuthEvent]:
        """Next event, or ``None`` once the stream is closed.

        Raises ``queue.Empty`` when *timeout* elapses first.
        """
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            # Leave the marker for any other waiter.
            self._queue.put(_CLOSED)
            return None
        return item

    def __iter__(self) -> Iterator[AuthEvent]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event
