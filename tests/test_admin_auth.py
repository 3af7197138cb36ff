"""Admin credential verification and identity assembly."""

from __future__ import annotations

import bcrypt
import pytest

from knowex.models.auth_models import AuthErrorCode
from knowex.models.enums import Capability, PermissionAction, Route
from knowex.services.admin_auth_service import (
    INVALID_CREDENTIALS_MESSAGE,
    LOGIN_FAILED_MESSAGE,
    InvalidCredentialsError,
    UserRecordMissingError,
)
from knowex.utils import passwords

from tests.fakes import seed_admin

MODERATOR = {"users": ["read"], "join_requests": ["read", "approve"]}
ANALYST = {"users": ["read", "write"], "reports": ["read"]}


def test_unknown_username_and_wrong_password_look_the_same(admin_auth_service, fake):
    seed_admin(fake, username="root", password="s3cret!")

    unknown = admin_auth_service.login("nobody", "s3cret!")
    wrong = admin_auth_service.login("root", "not-it")

    assert unknown.success is wrong.success is False
    assert unknown.error_code == wrong.error_code == AuthErrorCode.INVALID_CREDENTIALS
    assert unknown.error_message == wrong.error_message == INVALID_CREDENTIALS_MESSAGE


def test_unknown_username_pays_for_a_key_derivation(admin_auth_service, fake, config, monkeypatch):
    iterations = config.ADMIN_PASSWORD_HASH_ITERATIONS
    seed_admin(fake, username="root", password="s3cret!")
    passwords.dummy_hash(iterations)
    derived: list[int] = []
    real_derive = passwords._derive

    def spy(password, salt, rounds):
        derived.append(rounds)
        return real_derive(password, salt, rounds)

    monkeypatch.setattr(passwords, "_derive", spy)

    assert admin_auth_service.login("nobody", "s3cret!").success is False
    assert derived == [iterations]

    assert admin_auth_service.login("root", "not-it").success is False
    assert derived == [iterations, iterations]


def test_legacy_bcrypt_credential_can_sign_in(admin_auth_service, fake):
    credential = seed_admin(fake, username="superadmin", password="unused")
    legacy = bcrypt.hashpw(b"admin123", bcrypt.gensalt(rounds=4)).decode()
    credential["password_hash"] = "$2a$" + legacy[4:]

    assert admin_auth_service.login("superadmin", "admin123").success is True
    assert admin_auth_service.login("superadmin", "admin124").error_message == INVALID_CREDENTIALS_MESSAGE


def test_inactive_credential_is_rejected(admin_auth_service, fake):
    credential = seed_admin(fake)
    credential["is_active"] = False

    with pytest.raises(InvalidCredentialsError):
        admin_auth_service.authenticate("root", "s3cret!")


def test_malformed_stored_hash_is_rejected(admin_auth_service, fake):
    credential = seed_admin(fake)
    credential["password_hash"] = "$2b$10$not-a-pbkdf2-hash"

    result = admin_auth_service.login("root", "s3cret!")

    assert result.error_message == INVALID_CREDENTIALS_MESSAGE


def test_login_builds_the_admin_identity(admin_auth_service, session, fake):
    credential = seed_admin(fake, roles={"moderator": MODERATOR})

    result = admin_auth_service.login("  ROOT ", "s3cret!")

    assert result.success is True
    assert result.next_route == Route.ADMIN_HOME
    identity = result.identity
    assert identity.admin_id == credential["admin_id"]
    assert identity.username == "root"
    assert identity.roles == ["moderator"]
    assert identity.user.username == "root_user"
    assert identity.user.is_admin is True
    assert identity.can(Capability.JOIN_REQUESTS, PermissionAction.APPROVE)
    assert not identity.can(Capability.USERS, PermissionAction.WRITE)
    assert session.admin_identity == identity
    assert credential["last_login"] is not None


def test_permissions_of_all_roles_are_merged(admin_auth_service, fake):
    seed_admin(fake, roles={"moderator": MODERATOR, "analyst": ANALYST})

    identity = admin_auth_service.authenticate("root", "s3cret!")

    assert sorted(identity.roles) == ["analyst", "moderator"]
    assert identity.permissions_as_lists() == {
        "users": ["read", "write"],
        "join_requests": ["approve", "read"],
        "reports": ["read"],
    }


def test_unknown_permission_entries_are_dropped(admin_auth_service, fake):
    seed_admin(fake, roles={"legacy": {"users": ["read", "teleport"], "billing": ["read"]}})

    identity = admin_auth_service.authenticate("root", "s3cret!")

    assert identity.permissions == {Capability.USERS: frozenset({PermissionAction.READ})}


def test_last_login_failure_does_not_block_login(admin_auth_service, fake):
    seed_admin(fake)
    fake.failures[("admin_credentials", "update")] = RuntimeError("read-only replica")

    result = admin_auth_service.login("root", "s3cret!")

    assert result.success is True


def test_missing_user_record_fails_generically(admin_auth_service, session, fake):
    seed_admin(fake, with_user_row=False)

    with pytest.raises(UserRecordMissingError):
        admin_auth_service.authenticate("root", "s3cret!")

    result = admin_auth_service.login("root", "s3cret!")
    assert result.error_code == AuthErrorCode.USER_RECORD_MISSING
    assert result.error_message == LOGIN_FAILED_MESSAGE
    assert session.admin_identity is None


def test_store_outage_fails_generically(admin_auth_service, fake):
    seed_admin(fake)
    fake.failures[("admin_credentials", "select")] = ConnectionError("timeout")

    result = admin_auth_service.login("root", "s3cret!")

    assert result.error_code == AuthErrorCode.NETWORK_ERROR
    assert result.error_message == LOGIN_FAILED_MESSAGE


def test_blank_input_is_a_validation_error(admin_auth_service, fake):
    result = admin_auth_service.login(" ", "")

    assert result.error_code == AuthErrorCode.VALIDATION_ERROR
    assert fake.calls == []


def test_is_user_admin(admin_auth_service, fake):
    credential = seed_admin(fake)

    assert admin_auth_service.is_user_admin(credential["user_id"]) is True
    assert admin_auth_service.is_user_admin("someone-else") is False


def test_get_admin_permissions(admin_auth_service, fake):
    credential = seed_admin(fake, roles={"analyst": ANALYST})

    permissions = admin_auth_service.get_admin_permissions(credential["admin_id"])

    assert permissions[Capability.REPORTS] == frozenset({PermissionAction.READ})
    assert admin_auth_service.get_admin_permissions(999) is None
