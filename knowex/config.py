"""
Application Configuration.

Pydantic Settings model for the KnowEx onboarding services.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import SecretStr, model_validator


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Supabase ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")
    SUPABASE_SERVICE_ROLE_KEY: SecretStr = SecretStr("")  # Provisioning script only

    # --- Object storage ---
    AVATAR_BUCKET: str = "avatars"

    # --- Signup rules ---
    PASSWORD_MIN_LENGTH: int = 6
    USERNAME_MIN_LENGTH: int = 3
    USERNAME_MAX_ATTEMPTS: int = 5

    # --- Onboarding ---
    ONBOARDING_REDIRECT_DELAY_S: float = 1.5

    # --- Admin credentials ---
    ADMIN_PASSWORD_HASH_ITERATIONS: int = 600_000

    # --- Bootstrap administrator (create_admin script) ---
    BOOTSTRAP_ADMIN_EMAIL: str = "admin@knowex.com"
    BOOTSTRAP_ADMIN_USERNAME: str = "superadmin"
    BOOTSTRAP_ADMIN_PASSWORD: SecretStr = SecretStr("admin123")
    BOOTSTRAP_ADMIN_FULL_NAME: str = "System Administrator"
    BOOTSTRAP_ADMIN_ROLE: str = "super_admin"

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "knowex.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when critical configuration is empty.

        Pydantic silently falls back to defaults when ``.env`` is missing.
        This validator logs a warning so operators know the services are
        running with placeholder values.
        """
        _log = logging.getLogger("knowex.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; all configuration loaded from "
                "environment variables or defaults."
            )

        if not self.SUPABASE_URL:
            _log.warning(
                "SUPABASE_URL is empty. Every backend call will fail with "
                "a network error until it is configured."
            )

        return self

    # --- Provisioning validation ---
    def validate_service_config(self) -> None:
        """Validate that the service-role configuration is complete.

        Raises:
            ValueError: If the Supabase URL or service-role key is missing.
        """
        if not self.SUPABASE_URL:
            raise ValueError("SUPABASE_URL must be set")
        if not self.SUPABASE_SERVICE_ROLE_KEY.get_secret_value():
            raise ValueError("SUPABASE_SERVICE_ROLE_KEY must be set")


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    On first call, creates an ``AppConfig`` instance (reading from ``.env``).
    Subsequent calls return the same instance.  Uses a check-lock-check
    pattern to avoid the lock overhead on the fast path while remaining
    thread-safe during first initialisation.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
