"""
Business Logic Services Package.

Contains the onboarding and authentication orchestrators.  Services
depend on the Repository layer for data access and the Auth module for
user context.

The ``create_services()`` factory wires every repository and service together,
returning a typed dict that the presentation layer can consume without
knowing the internal dependency graph.
"""

from __future__ import annotations

from typing import Optional, TypedDict

from knowex.auth import SessionManager
from knowex.config import AppConfig
from knowex.database import DatabaseManager
from knowex.logger import get_logger
from knowex.models.enums import Route
from knowex.repositories.admin_repository import AdminRepository
from knowex.repositories.community_repository import CommunityRepository
from knowex.repositories.technology_repository import TechnologyRepository
from knowex.repositories.user_repository import UserRepository
from knowex.services.admin_auth_service import AdminAuthService
from knowex.services.admin_provisioning import AdminProvisioningService
from knowex.services.auth_service import AuthService
from knowex.services.avatar_storage import AvatarStorageService
from knowex.services.onboarding_service import OnboardingService
from knowex.services.profile_service import ProfileService
from knowex.services.session_resolver import Navigator, SessionResolver, SessionRouter
from knowex.services.signup_service import SignupService


class ServiceContainer(TypedDict):
    """Typed container for all interactive services."""

    # --- Routing ---
    session_resolver: SessionResolver
    session_router: SessionRouter

    # --- Credential authenticators ---
    auth_service: AuthService
    admin_auth_service: AdminAuthService

    # --- Orchestrators ---
    signup_service: SignupService
    onboarding_service: OnboardingService
    profile_service: ProfileService
    avatar_storage_service: AvatarStorageService


def _log_only_navigator(route: Route) -> None:
    get_logger("navigation").info("Route -> %s", route)


def create_services(
    db: DatabaseManager,
    config: AppConfig,
    session: SessionManager,
    navigate: Optional[Navigator] = None,
) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.  The
    application entry-point calls this once at startup and passes the
    returned dict to the presentation layer.

    Args:
        db: Initialised DatabaseManager (anon key).
        config: Application configuration (injected into services that need it).
        session: Shared session manager.
        navigate: Callback receiving every route the router decides on.
            Defaults to logging the route.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = get_logger("services")

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer)
    # ------------------------------------------------------------------
    user_repo = UserRepository(db=db, logger=logger)
    community_repo = CommunityRepository(db=db, logger=logger)
    technology_repo = TechnologyRepository(db=db, logger=logger)
    admin_repo = AdminRepository(db=db, logger=logger)

    # ------------------------------------------------------------------
    # 2. Leaf services
    # ------------------------------------------------------------------
    avatar_storage_service = AvatarStorageService(
        db=db,
        logger=logger,
        bucket=config.AVATAR_BUCKET,
    )
    auth_service = AuthService(
        db=db,
        session=session,
        user_repo=user_repo,
        logger=logger,
        config=config,
    )
    admin_auth_service = AdminAuthService(
        admin_repo=admin_repo,
        user_repo=user_repo,
        logger=logger,
        session=session,
        hash_iterations=config.ADMIN_PASSWORD_HASH_ITERATIONS,
    )
    profile_service = ProfileService(session=session, user_repo=user_repo, logger=logger)
    session_resolver = SessionResolver(db=db, user_repo=user_repo, logger=logger)

    # ------------------------------------------------------------------
    # 3. Orchestration services
    # ------------------------------------------------------------------
    signup_service = SignupService(
        db=db,
        user_repo=user_repo,
        avatar_storage=avatar_storage_service,
        logger=logger,
        config=config,
    )
    onboarding_service = OnboardingService(
        db=db,
        session=session,
        community_repo=community_repo,
        technology_repo=technology_repo,
        user_repo=user_repo,
        logger=logger,
        config=config,
    )
    session_router = SessionRouter(
        resolver=session_resolver,
        session=session,
        navigate=navigate or _log_only_navigator,
        logger=get_logger("router"),
    )

    return ServiceContainer(
        session_resolver=session_resolver,
        session_router=session_router,
        auth_service=auth_service,
        admin_auth_service=admin_auth_service,
        signup_service=signup_service,
        onboarding_service=onboarding_service,
        profile_service=profile_service,
        avatar_storage_service=avatar_storage_service,
    )


def create_provisioning_service(
    db: DatabaseManager,
    config: AppConfig,
) -> AdminProvisioningService:
    """Wire the admin provisioning service.

    *db* must be built with the service-role key; the anon key cannot
    reach the Auth admin API.
    """
    logger = get_logger("provisioning")
    return AdminProvisioningService(
        db=db,
        user_repo=UserRepository(db=db, logger=logger),
        admin_repo=AdminRepository(db=db, logger=logger),
        logger=logger,
        config=config,
    )


__all__ = [
    "ServiceContainer",
    "create_provisioning_service",
    "create_services",
]
