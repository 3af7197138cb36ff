"""
Backend Connection Layer.

Owns the single Supabase client used by every repository and service.
Supabase provides all three backend collaborators of the onboarding
flow:

- **Auth** (``client.auth``): account creation, password sign-in,
  session lookup, sign-out and auth-state notifications.
- **PostgREST** (``client.table``): the relational tables holding user
  profiles, communities, join requests, technologies and admin
  credentials.
- **Storage** (``client.storage``): profile-image uploads.

The client holds no authoritative state.  Data access is performed
through the Repository pattern; this module only manages the connection
and contains no query logic.

Usage (dependency injection at app startup)::

    from knowex.database import DatabaseManager
    from knowex.logger import StructuredLogger

    db = DatabaseManager(
        supabase_url=settings.SUPABASE_URL,
        supabase_key=settings.SUPABASE_ANON_KEY.get_secret_value(),
        logger=StructuredLogger(name="database"),
    )
    # Inject `db` into repositories / services that need it.
"""

from __future__ import annotations

from typing import Optional

from supabase import create_client, Client as SupabaseClient

from knowex.logger import StructuredLogger


class DatabaseManager:
    """Manages the connection to the Supabase project.

    Fully configured at construction time via dependency injection.

    When ``supabase_url`` or ``supabase_key`` is empty the Supabase client
    is **not** created.  The ``supabase`` property then raises
    ``RuntimeError``, which the service layer reports as a network error
    rather than crashing.

    Parameters
    ----------
    supabase_url:
        The Supabase project URL (e.g. ``https://xyz.supabase.co``).
    supabase_key:
        The Supabase anonymous key (interactive flows) or service-role
        key (provisioning script).
    logger:
        A ``StructuredLogger`` instance for structured JSON log output.
    client:
        An already-constructed client.  When given, ``supabase_url`` and
        ``supabase_key`` are ignored.
    """

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        logger: StructuredLogger,
        client: Optional[SupabaseClient] = None,
    ) -> None:
        self._logger: StructuredLogger = logger
        self._supabase: Optional[SupabaseClient] = client

        if self._supabase is not None:
            self._logger.debug("Using injected Supabase client.")
            return

        if supabase_url and supabase_key:
            try:
                self._supabase = create_client(supabase_url, supabase_key)
                self._logger.info("Supabase client initialized.")
            except (ValueError, TypeError) as exc:
                self._logger.warning(
                    "Supabase credential format error: %s. Backend unavailable.",
                    exc,
                )
            except Exception as exc:
                self._logger.error(
                    "Unexpected Supabase initialization failure: %s. "
                    "Backend unavailable.",
                    exc,
                    exc_info=True,
                )
        else:
            self._logger.warning(
                "Supabase credentials not configured; backend unavailable."
            )

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def supabase(self) -> SupabaseClient:
        """Return the initialised Supabase client.

        Raises
        ------
        RuntimeError
            If the Supabase client was not initialised.  Services catch
            this and surface a network error to the caller.
        """
        if self._supabase is None:
            raise RuntimeError(
                "Supabase client is not initialised. "
                "Check SUPABASE_URL and the Supabase key."
            )
        return self._supabase

    @property
    def is_online(self) -> bool:
        """``True`` when the Supabase client is available."""
        return self._supabase is not None
