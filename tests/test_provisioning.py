"""Bootstrap administrator and additional admin provisioning."""

from __future__ import annotations

import pytest

from knowex.models.enums import Capability, PermissionAction
from knowex.services.admin_provisioning import LIST_USERS_PAGE_SIZE, AdminProvisioningError
from knowex.utils.passwords import verify_password

SUPER_ADMIN = {"users": ["read", "write"], "settings": ["manage"]}


@pytest.fixture
def roles(fake):
    return fake.seed(
        "admin_roles",
        {"role_name": "super_admin", "permissions": SUPER_ADMIN},
        {"role_name": "moderator", "permissions": {"join_requests": ["approve"]}},
    )


def test_bootstrap_creates_a_working_admin(provisioning_service, admin_auth_service, fake, roles, config):
    result = provisioning_service.bootstrap_admin()

    assert result.account_created is True
    assert result.email == config.BOOTSTRAP_ADMIN_EMAIL
    assert result.username == config.BOOTSTRAP_ADMIN_USERNAME
    assert result.role_name == "super_admin"

    (user_row,) = fake.rows("users")
    assert user_row["is_admin"] is True
    assert user_row["onboarded"] is True
    assert fake.rows("user_profiles") == [
        {"user_id": result.user_id, "full_name": config.BOOTSTRAP_ADMIN_FULL_NAME}
    ]
    account = fake.auth.accounts[result.email]["user"]
    assert account.user_metadata["onboarded"] is True

    identity = admin_auth_service.authenticate(
        config.BOOTSTRAP_ADMIN_USERNAME,
        config.BOOTSTRAP_ADMIN_PASSWORD.get_secret_value(),
    )
    assert identity.admin_id == result.admin_id
    assert identity.can(Capability.SETTINGS, PermissionAction.MANAGE)


def test_bootstrap_is_re_runnable(provisioning_service, fake, roles):
    first = provisioning_service.bootstrap_admin()
    second = provisioning_service.bootstrap_admin()

    assert second.account_created is False
    assert second.user_id == first.user_id
    assert second.admin_id == first.admin_id
    assert len(fake.rows("users")) == 1
    assert len(fake.rows("admin_credentials")) == 1
    assert len(fake.rows("admin_user_roles")) == 1


def test_bootstrap_reuses_an_existing_account(provisioning_service, fake, roles, config):
    existing = fake.auth.create_account(config.BOOTSTRAP_ADMIN_EMAIL, "old-password")

    result = provisioning_service.bootstrap_admin()

    assert result.account_created is False
    assert result.user_id == existing.id


def test_bootstrap_finds_an_existing_account_past_the_first_page(provisioning_service, fake, roles, config):
    for n in range(LIST_USERS_PAGE_SIZE + 20):
        fake.auth.create_account(f"member{n}@example.com", "pw-123456")
    existing = fake.auth.create_account(config.BOOTSTRAP_ADMIN_EMAIL, "old-password")

    result = provisioning_service.bootstrap_admin()

    assert result.user_id == existing.id
    assert fake.auth.admin.list_users_pages == [1, 2]


def test_bootstrap_fails_without_the_role(provisioning_service, fake):
    with pytest.raises(AdminProvisioningError, match="super_admin"):
        provisioning_service.bootstrap_admin()


def test_bootstrap_wraps_store_errors(provisioning_service, fake, roles):
    fake.failures[("admin_credentials", "upsert")] = RuntimeError("permission denied")

    with pytest.raises(AdminProvisioningError) as excinfo:
        provisioning_service.bootstrap_admin()

    assert isinstance(excinfo.value.original_error, RuntimeError)


def test_create_admin_grants_roles(provisioning_service, admin_auth_service, fake, roles):
    user = fake.auth.create_account("mod@example.com", "pw")
    fake.seed("users", {"user_id": user.id, "email": "mod@example.com", "username": "mod"})

    credential = provisioning_service.create_admin(
        user.id, "Mod", "moderate-me", role_names=["moderator", "ghost"]
    )

    assert credential.username == "mod"
    assert [role.role_name for role in credential.roles] == ["moderator"]
    assert fake.rows("users")[0]["is_admin"] is True
    stored = fake.rows("admin_credentials")[0]
    assert verify_password("moderate-me", stored["password_hash"])

    identity = admin_auth_service.authenticate("mod", "moderate-me")
    assert identity.can(Capability.JOIN_REQUESTS, PermissionAction.APPROVE)


def test_create_admin_rejects_a_taken_username(provisioning_service, fake, roles):
    provisioning_service.create_admin("u-1", "mod", "pw-one")

    with pytest.raises(AdminProvisioningError, match="already exists"):
        provisioning_service.create_admin("u-2", "MOD", "pw-two")


def test_create_admin_requires_a_known_role(provisioning_service, fake, roles):
    with pytest.raises(AdminProvisioningError, match="Invalid roles"):
        provisioning_service.create_admin("u-1", "mod", "pw", role_names=["ghost"])

    assert fake.rows("admin_credentials") == []
