"""
Service Layer Data Transfer Objects.

Pydantic models for validated output at the onboarding service boundary.
Replaces raw dict passing between layers.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from knowex.models.community import CommunityJoinRequest
from knowex.models.enums import Route

T = TypeVar("T")

__all__ = [
    "CommunityStepResult",
    "JoinRequestResult",
    "OnboardingErrorCode",
    "OnboardingResult",
    "ServiceResult",
]


# ---------------------------------------------------------------------------
# Generic service models
# ---------------------------------------------------------------------------

class ServiceResult(BaseModel, Generic[T]):
    """
    Standard service return envelope.

    Catalog and profile reads return this, providing a consistent
    contract for the presentation layer.

    Generic over ``T`` so callers can annotate return types precisely
    (e.g. ``ServiceResult[list[Community]]``).
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    status_code: int = 200


# ---------------------------------------------------------------------------
# Onboarding models
# ---------------------------------------------------------------------------

class OnboardingErrorCode(StrEnum):
    """Failure categories of the onboarding steps."""

    VALIDATION_ERROR = "validation_error"
    ALREADY_SELECTED = "already_selected"
    AUTH_REQUIRED = "auth_required"
    NETWORK_ERROR = "network_error"
    UNKNOWN_ERROR = "unknown_error"


class JoinRequestResult(BaseModel):
    """Outcome of asking to join a community.

    ``already_requested`` is ``True`` when an open (pending or approved)
    request existed; ``status`` is then that request's status.
    """

    success: bool = True
    already_requested: bool
    status: str
    request: Optional[CommunityJoinRequest] = None


class CommunityStepResult(BaseModel):
    """Outcome of the community-selection step."""

    success: bool
    community_id: Optional[int] = None
    join: Optional[JoinRequestResult] = None
    title: Optional[str] = None
    message: Optional[str] = None
    error_code: Optional[OnboardingErrorCode] = None
    next_route: Optional[Route] = None


class OnboardingResult(BaseModel):
    """Outcome of the technology step, or of skipping onboarding."""

    success: bool
    inserted_count: int = 0
    onboarded: bool = False
    error_code: Optional[OnboardingErrorCode] = None
    error_message: Optional[str] = None
    next_route: Optional[Route] = None
    redirect_delay_s: float = 0.0
