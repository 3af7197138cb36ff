"""
Profile Service.

Home-screen view of the signed-in user: the ``users`` row joined with
the display name from ``user_profiles``.  Always read fresh.
"""

from __future__ import annotations

from typing import Optional

from knowex.auth import SessionManager
from knowex.logger import StructuredLogger
from knowex.models.service_models import ServiceResult
from knowex.models.user import ProfileView
from knowex.repositories.user_repository import UserRepository
from knowex.services.base_service import BaseService


class ProfileService(BaseService):
    """Reads the current user's profile for the main screens."""

    def __init__(
        self,
        session: SessionManager,
        user_repo: UserRepository,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._session = session
        self._user_repo = user_repo

    def get_profile(self, user_id: str) -> Optional[ProfileView]:
        """Profile and display name for *user_id*; ``None`` when no row exists.

        Errors propagate.
        """
        profile = self._user_repo.get_by_id(user_id)
        if profile is None:
            return None
        full_name = self._user_repo.get_full_name(user_id)
        return ProfileView(
            profile=profile,
            full_name=full_name.full_name if full_name else None,
        )

    def get_current_profile(self) -> ServiceResult[ProfileView]:
        """Profile of the signed-in user.

        ``status_code`` is 401 when signed out, 404 when the account has
        no profile row, 503 on a store error.
        """
        current = self._session.current_session
        if current is None:
            return ServiceResult(success=False, error="Not signed in", status_code=401)
        try:
            view = self.get_profile(current.user_id)
        except Exception as exc:
            self._logger.error("Error fetching user profile: %s", exc)
            return ServiceResult(success=False, error=str(exc), status_code=503)
        if view is None:
            return ServiceResult(success=False, error="Profile not found", status_code=404)
        if view.full_name is None:
            view.full_name = current.full_name
        return ServiceResult(success=True, data=view)

    def refresh_profile(self) -> ServiceResult[ProfileView]:
        """Re-read the profile (no client-side caching exists to invalidate)."""
        return self.get_current_profile()
