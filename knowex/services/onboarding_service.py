"""
Onboarding Orchestrator.

Two-step wizard run once per new account:

**Step A: community selection.**  Active communities are listed largest
first.  Choosing one files a ``pending`` join request unless an open
(pending or approved) request already exists; either way the wizard
advances to step B carrying the community id.  A skip path marks the
user onboarded with no community or technology rows.

**Step B: technology selection.**  Active technologies of the chosen
community, grouped by category.  Completing inserts one interest row per
selected id in a single all-or-nothing batch, then marks the user
onboarded.

Every write is scoped to the signed-in user and gated by
``require_auth``.
"""

from __future__ import annotations

from typing import Iterable, Optional

from knowex.auth import SessionManager
from knowex.config import AppConfig, get_config
from knowex.database import DatabaseManager
from knowex.guards import AuthenticationError, require_auth
from knowex.logger import StructuredLogger
from knowex.models.community import Community, Technology
from knowex.models.enums import JoinRequestStatus, Route
from knowex.models.service_models import (
    CommunityStepResult,
    JoinRequestResult,
    OnboardingErrorCode,
    OnboardingResult,
    ServiceResult,
)
from knowex.repositories.base_repository import is_unique_violation
from knowex.repositories.community_repository import CommunityRepository
from knowex.repositories.technology_repository import TechnologyRepository
from knowex.repositories.user_repository import UserRepository
from knowex.services.base_service import BaseService
from knowex.utils.audit import log_audit_event

DEFAULT_CATEGORY: str = "Other"

# (title, message) shown after the community step, keyed by outcome.
JOIN_REQUEST_SENT: tuple[str, str] = (
    "Request Sent!",
    "Your request to join the community has been sent. "
    "You will be notified once approved.",
)
JOIN_REQUEST_PENDING: tuple[str, str] = (
    "Request Already Sent",
    "You already have a pending request to join this community. "
    "Please wait for approval.",
)
JOIN_REQUEST_APPROVED: tuple[str, str] = (
    "Already a Member",
    "You are already a member of this community!",
)
JOIN_REQUEST_FAILED: str = "Failed to send join request. Please try again."

SELECT_COMMUNITY_MESSAGE: str = "Please select a community"
SELECT_TECHNOLOGY_MESSAGE: str = "Please select at least one technology"
ALREADY_SELECTED_MESSAGE: str = (
    "Some of these technologies are already in your interests. "
    "Please adjust your selection and try again."
)
REAUTH_MESSAGE: str = "Your session has expired. Please sign in again."
COMPLETE_FAILED_MESSAGE: str = (
    "There was an error completing your setup. Please try again."
)


def group_by_category(technologies: Iterable[Technology]) -> dict[str, list[Technology]]:
    """Group *technologies* by category, keeping input order within groups."""
    grouped: dict[str, list[Technology]] = {}
    for tech in technologies:
        grouped.setdefault(tech.category or DEFAULT_CATEGORY, []).append(tech)
    return grouped


def classify_completion_error(exc: BaseException) -> OnboardingErrorCode:
    """Classify a failed interest insert by its message."""
    if isinstance(exc, AuthenticationError):
        return OnboardingErrorCode.AUTH_REQUIRED
    if is_unique_violation(exc):
        return OnboardingErrorCode.ALREADY_SELECTED
    if "auth" in str(exc).lower():
        return OnboardingErrorCode.AUTH_REQUIRED
    if isinstance(exc, (RuntimeError, ConnectionError, TimeoutError)):
        return OnboardingErrorCode.NETWORK_ERROR
    return OnboardingErrorCode.UNKNOWN_ERROR


_COMPLETION_MESSAGES: dict[OnboardingErrorCode, str] = {
    OnboardingErrorCode.ALREADY_SELECTED: ALREADY_SELECTED_MESSAGE,
    OnboardingErrorCode.AUTH_REQUIRED: REAUTH_MESSAGE,
}


class OnboardingService(BaseService):
    """Community and technology selection for the signed-in user."""

    def __init__(
        self,
        db: DatabaseManager,
        session: SessionManager,
        community_repo: CommunityRepository,
        technology_repo: TechnologyRepository,
        user_repo: UserRepository,
        logger: StructuredLogger,
        config: Optional[AppConfig] = None,
    ) -> None:
        super().__init__(logger)
        self._db = db
        self._session = session
        self._community_repo = community_repo
        self._technology_repo = technology_repo
        self._user_repo = user_repo
        self._config: AppConfig = config or get_config()
        self._join_guard = require_auth(session, action="request to join a community")
        self._interest_guard = require_auth(session, action="save your technologies")

    # ==================================================================
    # Catalog reads
    # ==================================================================

    def list_communities(self) -> ServiceResult[list[Community]]:
        """Active communities ordered by descending member count."""
        try:
            return ServiceResult(success=True, data=self._community_repo.list_active())
        except Exception as exc:
            self._logger.error("Error fetching communities: %s", exc)
            return ServiceResult(success=False, error=str(exc), status_code=503)

    def list_technologies(
        self, community_id: int
    ) -> ServiceResult[dict[str, list[Technology]]]:
        """Active technologies of *community_id*, grouped by category."""
        try:
            techs = self._technology_repo.list_active_for_community(community_id)
        except Exception as exc:
            self._logger.error(
                "Error fetching technologies for community %s: %s", community_id, exc
            )
            return ServiceResult(success=False, error=str(exc), status_code=503)
        return ServiceResult(success=True, data=group_by_category(techs))

    def list_all_technologies(self) -> ServiceResult[list[Technology]]:
        """The full active catalog ordered by name."""
        try:
            return ServiceResult(success=True, data=self._technology_repo.list_all())
        except Exception as exc:
            self._logger.error("Error fetching technologies: %s", exc)
            return ServiceResult(success=False, error=str(exc), status_code=503)

    # ==================================================================
    # Step A: community selection
    # ==================================================================

    def request_to_join(self, community_id: int) -> JoinRequestResult:
        """File a pending join request unless an open one already exists.

        Raises:
            AuthenticationError: No user is signed in.
        """
        return self._join_guard(self._request_to_join)(community_id)

    def _request_to_join(self, community_id: int) -> JoinRequestResult:
        user_id = self._session.get_current_user_id()

        existing = self._community_repo.find_open_join_request(user_id, community_id)
        if existing is not None:
            return JoinRequestResult(
                already_requested=True, status=existing.status, request=existing
            )

        try:
            request = self._community_repo.insert_join_request(user_id, community_id)
        except Exception as exc:
            if not is_unique_violation(exc):
                raise
            # Lost a race with a concurrent submission.
            self._logger.info(
                "Join request for community %s already exists (constraint).",
                community_id,
            )
            return JoinRequestResult(
                already_requested=True, status=str(JoinRequestStatus.PENDING)
            )

        log_audit_event(
            self._logger,
            action="JOIN_REQUEST",
            entity_type="CommunityJoinRequest",
            entity_id=str(request.request_id or community_id),
            user_id=user_id,
            details={"community_id": community_id, "status": request.status},
        )
        return JoinRequestResult(
            already_requested=False, status=request.status, request=request
        )

    def select_community(self, community_id: Optional[int]) -> CommunityStepResult:
        """Run step A for *community_id* and advance to step B.

        All three join outcomes (sent, already pending, already approved)
        advance.  Only a failure to check or insert stops the wizard.
        """
        if community_id is None:
            return CommunityStepResult(
                success=False,
                error_code=OnboardingErrorCode.VALIDATION_ERROR,
                message=SELECT_COMMUNITY_MESSAGE,
            )

        try:
            join = self.request_to_join(community_id)
        except AuthenticationError as exc:
            return CommunityStepResult(
                success=False,
                community_id=community_id,
                error_code=OnboardingErrorCode.AUTH_REQUIRED,
                title="Error",
                message=str(exc),
            )
        except Exception as exc:
            self._logger.error("Error creating join request: %s", exc)
            return CommunityStepResult(
                success=False,
                community_id=community_id,
                error_code=classify_completion_error(exc),
                title="Error",
                message=JOIN_REQUEST_FAILED,
            )

        if not join.already_requested:
            title, message = JOIN_REQUEST_SENT
        elif join.status == JoinRequestStatus.APPROVED:
            title, message = JOIN_REQUEST_APPROVED
        else:
            title, message = JOIN_REQUEST_PENDING

        return CommunityStepResult(
            success=True,
            community_id=community_id,
            join=join,
            title=title,
            message=message,
            next_route=Route.ONBOARDING_TECHNOLOGIES,
        )

    def skip_onboarding(self) -> OnboardingResult:
        """Mark the user onboarded without communities or technologies.

        Always routes home, even when the flag could not be written.
        """
        current = self._session.current_session
        if current is None:
            self._logger.warning("Skip requested without a signed-in user.")
            return OnboardingResult(success=False, next_route=Route.HOME)

        try:
            self._user_repo.mark_onboarded(current.user_id)
        except Exception as exc:
            self._logger.error(
                "Error skipping onboarding for %s: %s", current.user_id, exc
            )
            return OnboardingResult(
                success=False,
                error_code=classify_completion_error(exc),
                error_message=str(exc),
                next_route=Route.HOME,
            )

        self._mirror_onboarded_flag()
        log_audit_event(
            self._logger,
            action="ONBOARDING_SKIPPED",
            entity_type="User",
            entity_id=current.user_id,
            user_id=current.user_id,
        )
        return OnboardingResult(success=True, onboarded=True, next_route=Route.HOME)

    # ==================================================================
    # Step B: technology selection
    # ==================================================================

    def complete_onboarding(self, technology_ids: Iterable[int]) -> OnboardingResult:
        """Insert the selected interests and mark the user onboarded.

        The insert is all-or-nothing; on failure ``onboarded`` is left as
        it was and the error is classified for the caller.
        """
        tech_ids = sorted(set(technology_ids))
        if not tech_ids:
            return OnboardingResult(
                success=False,
                error_code=OnboardingErrorCode.VALIDATION_ERROR,
                error_message=SELECT_TECHNOLOGY_MESSAGE,
            )
        try:
            return self._interest_guard(self._complete_onboarding)(tech_ids)
        except Exception as exc:
            code = classify_completion_error(exc)
            self._logger.error(
                "Error completing onboarding: %s", exc,
                extra={"event": "ONBOARDING_FAILED", "error_code": str(code)},
            )
            return OnboardingResult(
                success=False,
                error_code=code,
                error_message=_COMPLETION_MESSAGES.get(code, COMPLETE_FAILED_MESSAGE),
            )

    def _complete_onboarding(self, tech_ids: list[int]) -> OnboardingResult:
        user_id = self._session.get_current_user_id()

        inserted = self._technology_repo.insert_interests(user_id, tech_ids)
        self._user_repo.mark_onboarded(user_id)
        self._mirror_onboarded_flag()

        log_audit_event(
            self._logger,
            action="ONBOARDING_COMPLETE",
            entity_type="User",
            entity_id=user_id,
            user_id=user_id,
            details={"technology_count": len(inserted)},
        )
        return OnboardingResult(
            success=True,
            inserted_count=len(inserted),
            onboarded=True,
            next_route=Route.HOME,
            redirect_delay_s=self._config.ONBOARDING_REDIRECT_DELAY_S,
        )

    # ==================================================================
    # Internal
    # ==================================================================

    def _mirror_onboarded_flag(self) -> None:
        """Best-effort copy of ``onboarded`` into the provider metadata."""
        try:
            self._db.supabase.auth.update_user({"data": {"onboarded": True}})
        except Exception as exc:
            self._logger.warning("Could not mirror onboarded flag to auth metadata: %s", exc)
