"""
Bootstrap Administrator Script.

Creates (or repairs) the configured bootstrap administrator.  Takes no
arguments; reads ``SUPABASE_URL`` and ``SUPABASE_SERVICE_ROLE_KEY`` (plus
the optional ``BOOTSTRAP_ADMIN_*`` overrides) from the environment or
``.env``.  Safe to re-run.

Usage::

    python -m knowex.scripts.create_admin
    knowex-create-admin
"""

from __future__ import annotations

import sys

from knowex.config import get_config
from knowex.database import DatabaseManager
from knowex.logger import StructuredLogger, get_logger
from knowex.services import create_provisioning_service
from knowex.services.admin_provisioning import AdminProvisioningError


def main() -> int:
    """Provision the bootstrap admin; return the process exit code."""
    logger: StructuredLogger = get_logger("create_admin")
    config = get_config()

    try:
        config.validate_service_config()
    except ValueError as exc:
        logger.error("Configuration error: %s", exc)
        print(f"Error creating admin user: {exc}", file=sys.stderr)
        return 2

    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_SERVICE_ROLE_KEY.get_secret_value(),
        logger=StructuredLogger(name="database"),
    )
    service = create_provisioning_service(db=db, config=config)

    print("Creating admin user...")
    try:
        result = service.bootstrap_admin()
    except AdminProvisioningError as exc:
        print(f"Error creating admin user: {exc.message}", file=sys.stderr)
        return 1

    if not result.account_created:
        print("User already existed; profile and credentials updated.")
    print("Admin user created successfully!")
    print(f"Email:    {result.email}")
    print(f"Username: {result.username}")
    print(f"Role:     {result.role_name}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
