from __future__ import annotations

import io
import json
import logging

import pytest
from pydantic import SecretStr

from knowex.auth import SessionManager
from knowex.config import AppConfig
from knowex.database import DatabaseManager
from knowex.logger import StructuredLogger
from knowex.models.enums import Route
from knowex.services import create_provisioning_service, create_services
from knowex.services.admin_provisioning import AdminProvisioningService


def test_settings_read_the_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("SUPABASE_URL", "https://env.supabase.co")
    monkeypatch.setenv("USERNAME_MAX_ATTEMPTS", "9")
    monkeypatch.setenv("ONBOARDING_REDIRECT_DELAY_S", "0")

    cfg = AppConfig(_env_file=None)

    assert cfg.SUPABASE_URL == "https://env.supabase.co"
    assert cfg.USERNAME_MAX_ATTEMPTS == 9
    assert cfg.ONBOARDING_REDIRECT_DELAY_S == 0.0
    assert cfg.PASSWORD_MIN_LENGTH == 6


def test_secrets_are_not_printed(config):
    assert "service" not in repr(config.SUPABASE_SERVICE_ROLE_KEY)
    assert "admin123" not in str(config.BOOTSTRAP_ADMIN_PASSWORD)


def test_service_config_validation(config):
    config.validate_service_config()

    with pytest.raises(ValueError, match="SUPABASE_SERVICE_ROLE_KEY"):
        config.model_copy(update={"SUPABASE_SERVICE_ROLE_KEY": SecretStr("")}).validate_service_config()
    with pytest.raises(ValueError, match="SUPABASE_URL"):
        config.model_copy(update={"SUPABASE_URL": ""}).validate_service_config()


def test_logger_writes_json_with_extra_fields(tmp_path):
    stream = io.StringIO()
    log = StructuredLogger(
        name="knowex.tests.json",
        level=logging.DEBUG,
        stream=stream,
        log_file=str(tmp_path / "json.log"),
    )

    log.info("Signup failed for %s", "ada@example.com", extra={"event": "SIGNUP_FAILED"})

    entry = json.loads(stream.getvalue().splitlines()[-1])
    assert entry["level"] == "INFO"
    assert entry["logger_name"] == "knowex.tests.json"
    assert entry["message"] == "Signup failed for ada@example.com"
    assert entry["extra"] == {"event": "SIGNUP_FAILED"}
    assert (tmp_path / "json.log").read_text(encoding="utf-8").strip()


def test_create_services_wires_a_shared_session(db, config, fake):
    session = SessionManager()
    routes: list[Route] = []

    services = create_services(db=db, config=config, session=session, navigate=routes.append)

    assert set(services) == {
        "session_resolver",
        "session_router",
        "auth_service",
        "admin_auth_service",
        "signup_service",
        "onboarding_service",
        "profile_service",
        "avatar_storage_service",
    }
    assert services["session_router"].start() == Route.LOGIN
    assert routes == [Route.LOGIN]


def test_offline_database_reports_unavailable(logger):
    offline = DatabaseManager(supabase_url="", supabase_key="", logger=logger)

    assert offline.is_online is False
    with pytest.raises(RuntimeError):
        offline.supabase


def test_create_provisioning_service(db, config):
    assert isinstance(create_provisioning_service(db=db, config=config), AdminProvisioningService)


def test_logger_redacts_credentials_and_keeps_native_types(tmp_path):
    stream = io.StringIO()
    log = StructuredLogger(
        name="knowex.tests.redact",
        level="debug",
        stream=stream,
        log_file=str(tmp_path / "redact.log"),
    )

    log.debug(
        "Token refreshed",
        extra={"access_token": "eyJhbGciOi", "user_id": "u-1", "attempt": 2, "ok": True},
    )

    entry = json.loads(stream.getvalue().splitlines()[-1])
    assert entry["extra"] == {"access_token": "***", "user_id": "u-1", "attempt": 2, "ok": True}
    assert "eyJhbGciOi" not in (tmp_path / "redact.log").read_text(encoding="utf-8")
