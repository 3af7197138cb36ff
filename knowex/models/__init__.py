"""
Data Models Package.

Re-exports all Pydantic models for short imports:
    from knowex.models import UserProfile, Community, Technology
    from knowex.models import Route, JoinRequestStatus, Capability
    from knowex.models import AuthResult, SignupResult, AdminIdentity
"""

from __future__ import annotations

from knowex.models.enums import (
    AuthEventType,
    Capability,
    JoinRequestStatus,
    PermissionAction,
    Route,
)
from knowex.models.user import FullNameProfile, ProfileView, UserProfile
from knowex.models.community import (
    Community,
    CommunityJoinRequest,
    Technology,
    TechnologySelection,
    UserTechnologyInterest,
)
from knowex.models.admin import (
    AdminCredential,
    AdminIdentity,
    AdminProvisioningResult,
    AdminRole,
    AdminRoleAssignment,
    PermissionMap,
)
from knowex.models.auth_models import (
    AdminLoginResult,
    AuthErrorCode,
    AuthResult,
    AuthSession,
    SignupRequest,
    SignupResult,
    ValidationResult,
)
from knowex.models.service_models import (
    CommunityStepResult,
    JoinRequestResult,
    OnboardingErrorCode,
    OnboardingResult,
    ServiceResult,
)

__all__ = [
    "AuthEventType",
    "Capability",
    "JoinRequestStatus",
    "PermissionAction",
    "Route",
    "FullNameProfile",
    "ProfileView",
    "UserProfile",
    "Community",
    "CommunityJoinRequest",
    "Technology",
    "TechnologySelection",
    "UserTechnologyInterest",
    "AdminCredential",
    "AdminIdentity",
    "AdminProvisioningResult",
    "AdminRole",
    "AdminRoleAssignment",
    "PermissionMap",
    "AdminLoginResult",
    "AuthErrorCode",
    "AuthResult",
    "AuthSession",
    "SignupRequest",
    "SignupResult",
    "ValidationResult",
    "CommunityStepResult",
    "JoinRequestResult",
    "OnboardingErrorCode",
    "OnboardingResult",
    "ServiceResult",
]
