"""Shared pytest fixtures.

Every service is wired against ``tests.fakes.FakeSupabase`` through the
real ``DatabaseManager`` and repositories, so tests exercise the same
query chains production uses.
"""

from __future__ import annotations

import os
import random
import tempfile
from pathlib import Path

# Keep test runs from writing knowex.log into the working tree.
os.environ.setdefault("LOG_FILE", str(Path(tempfile.gettempdir()) / "knowex-tests.log"))

import pytest

from knowex.auth import SessionManager
from knowex.config import AppConfig
from knowex.database import DatabaseManager
from knowex.logger import StructuredLogger
from knowex.models.auth_models import AuthSession
from knowex.repositories.admin_repository import AdminRepository
from knowex.repositories.community_repository import CommunityRepository
from knowex.repositories.technology_repository import TechnologyRepository
from knowex.repositories.user_repository import UserRepository
from knowex.services.admin_auth_service import AdminAuthService
from knowex.services.admin_provisioning import AdminProvisioningService
from knowex.services.auth_service import AuthService
from knowex.services.avatar_storage import AvatarStorageService
from knowex.services.onboarding_service import OnboardingService
from knowex.services.session_resolver import SessionResolver
from knowex.services.signup_service import SignupService

from tests.fakes import FakeSupabase

TEST_HASH_ITERATIONS = 1_000


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        SUPABASE_URL="https://fake.supabase.co",
        SUPABASE_ANON_KEY="anon",
        SUPABASE_SERVICE_ROLE_KEY="service",
        ADMIN_PASSWORD_HASH_ITERATIONS=TEST_HASH_ITERATIONS,
        LOG_FILE=str(tmp_path / "knowex.log"),
    )


@pytest.fixture
def logger() -> StructuredLogger:
    return StructuredLogger(name="knowex.tests")


@pytest.fixture
def fake() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def db(fake: FakeSupabase, logger: StructuredLogger) -> DatabaseManager:
    return DatabaseManager(supabase_url="", supabase_key="", logger=logger, client=fake)


@pytest.fixture
def session() -> SessionManager:
    return SessionManager()


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------

@pytest.fixture
def user_repo(db: DatabaseManager, logger: StructuredLogger) -> UserRepository:
    return UserRepository(db=db, logger=logger)


@pytest.fixture
def community_repo(db: DatabaseManager, logger: StructuredLogger) -> CommunityRepository:
    return CommunityRepository(db=db, logger=logger)


@pytest.fixture
def technology_repo(db: DatabaseManager, logger: StructuredLogger) -> TechnologyRepository:
    return TechnologyRepository(db=db, logger=logger)


@pytest.fixture
def admin_repo(db: DatabaseManager, logger: StructuredLogger) -> AdminRepository:
    return AdminRepository(db=db, logger=logger)


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

@pytest.fixture
def auth_service(db, session, user_repo, logger, config) -> AuthService:
    return AuthService(db=db, session=session, user_repo=user_repo, logger=logger, config=config)


@pytest.fixture
def signup_service(db, user_repo, logger, config) -> SignupService:
    return SignupService(
        db=db,
        user_repo=user_repo,
        avatar_storage=AvatarStorageService(db=db, logger=logger, bucket=config.AVATAR_BUCKET),
        logger=logger,
        config=config,
        rng=random.Random(42),
    )


@pytest.fixture
def onboarding_service(
    db, session, community_repo, technology_repo, user_repo, logger, config
) -> OnboardingService:
    return OnboardingService(
        db=db,
        session=session,
        community_repo=community_repo,
        technology_repo=technology_repo,
        user_repo=user_repo,
        logger=logger,
        config=config,
    )


@pytest.fixture
def resolver(db, user_repo, logger) -> SessionResolver:
    return SessionResolver(db=db, user_repo=user_repo, logger=logger)


@pytest.fixture
def admin_auth_service(admin_repo, user_repo, logger, session, config) -> AdminAuthService:
    return AdminAuthService(
        admin_repo=admin_repo,
        user_repo=user_repo,
        logger=logger,
        session=session,
        hash_iterations=config.ADMIN_PASSWORD_HASH_ITERATIONS,
    )


@pytest.fixture
def provisioning_service(db, user_repo, admin_repo, logger, config) -> AdminProvisioningService:
    return AdminProvisioningService(
        db=db, user_repo=user_repo, admin_repo=admin_repo, logger=logger, config=config
    )


# ---------------------------------------------------------------------------
# Data helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def signed_in_user(fake: FakeSupabase, session: SessionManager) -> AuthSession:
    """A signed-up account with a not-yet-onboarded ``users`` row."""
    user = fake.auth.create_account("ada@example.com", "secret123", {"full_name": "Ada"})
    fake.seed(
        "users",
        {
            "user_id": user.id,
            "email": "ada@example.com",
            "username": "ada",
            "onboarded": False,
            "is_active": True,
        },
    )
    fake.auth.current = fake.auth.make_session(user)
    auth_session = AuthSession.from_supabase(fake.auth.current)
    session.set_current_session(auth_session)
    return auth_session


@pytest.fixture
def catalog(fake: FakeSupabase) -> FakeSupabase:
    """Two communities and a handful of technologies."""
    fake.seed(
        "communities",
        {"name": "Web", "member_count": 10, "is_active": True},
        {"name": "Data", "member_count": 50, "is_active": True},
        {"name": "Retired", "member_count": 99, "is_active": False},
    )
    fake.seed(
        "technologies",
        {"name": "React", "category": "Frontend", "community_id": 1, "is_active": True},
        {"name": "Django", "category": "Backend", "community_id": 1, "is_active": True},
        {"name": "Vue", "category": "Frontend", "community_id": 1, "is_active": True},
        {"name": "Flask", "category": None, "community_id": 1, "is_active": True},
        {"name": "Pandas", "category": "Analysis", "community_id": 2, "is_active": True},
        {"name": "Perl", "category": "Backend", "community_id": 1, "is_active": False},
    )
    return fake

