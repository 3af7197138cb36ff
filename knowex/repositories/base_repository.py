"""
Base Repository.

Provides shared infrastructure for all repositories:
- DatabaseManager reference (Supabase)
- Logger reference
- Convenience property for accessing the client
- PostgREST error-code helpers shared by every table
"""

from __future__ import annotations

from typing import Any, Optional

from postgrest.exceptions import APIError
from supabase import Client as SupabaseClient

from knowex.database import DatabaseManager
from knowex.logger import StructuredLogger

# PostgREST: single-row request matched zero rows.
NO_ROWS_CODE: str = "PGRST116"
# Postgres: unique_violation.
UNIQUE_VIOLATION_CODE: str = "23505"


def is_no_rows(exc: BaseException) -> bool:
    """``True`` when *exc* is PostgREST's "no rows" outcome."""
    return isinstance(exc, APIError) and exc.code == NO_ROWS_CODE


def is_unique_violation(exc: BaseException) -> bool:
    """``True`` when *exc* reports a uniqueness constraint violation.

    Checks the Postgres error code first and falls back to the message
    text, which is all some proxies preserve.
    """
    if isinstance(exc, APIError) and exc.code == UNIQUE_VIOLATION_CODE:
        return True
    return "duplicate key" in str(exc).lower()


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__."""

    TABLE: str = ""

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    @property
    def supabase(self) -> SupabaseClient:
        """Returns the Supabase client for table operations."""
        return self._db.supabase

    def _fetch_single(
        self,
        column: str,
        value: Any,
        *,
        columns: str = "*",
        operation_name: str,
        **filters: Any,
    ) -> Optional[dict[str, Any]]:
        """Fetch at most one row of ``TABLE`` where *column* equals *value*.

        Extra keyword filters are applied as further equality matches.
        An empty result (``None`` response, empty data, or a ``PGRST116``
        error) returns ``None``; every other error propagates.

        Parameters
        ----------
        column / value:
            Primary equality filter.
        columns:
            PostgREST select expression, including any embeds.
        operation_name:
            Human-readable label for log messages, e.g.
            ``"get_by_id (users)"``.
        """
        query = self.supabase.table(self.TABLE).select(columns).eq(column, value)
        for key, filter_value in filters.items():
            query = query.eq(key, filter_value)
        try:
            response = query.maybe_single().execute()
        except APIError as exc:
            if is_no_rows(exc):
                return None
            self._logger.error("Query failed for %s: %s", operation_name, exc)
            raise
        if response is None or not response.data:
            return None
        return response.data
