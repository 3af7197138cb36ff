"""
KnowEx Application Entry Point.

Bootstraps the dependency graph via constructor injection, resolves the
start route from the current Supabase session, then routes on every
auth-state change until interrupted.  Every subsystem is wired here;
no module-level globals.

Usage::

    python main.py
"""

from __future__ import annotations

import sys

from knowex.auth import SessionManager
from knowex.auth_events import AuthEventStream
from knowex.config import get_config
from knowex.database import DatabaseManager
from knowex.logger import StructuredLogger, get_logger
from knowex.models.enums import Route
from knowex.services import create_services


def main() -> None:
    """Application entry point: wire dependencies and run the router."""
    logger: StructuredLogger = get_logger("main")
    logger.info("Starting KnowEx...")

    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()

    # ------------------------------------------------------------------
    # 2. Database Manager (Supabase auth, tables and storage)
    # ------------------------------------------------------------------
    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        logger=StructuredLogger(name="database"),
    )

    # ------------------------------------------------------------------
    # 3. Session Manager
    # ------------------------------------------------------------------
    session = SessionManager()

    # ------------------------------------------------------------------
    # 4. Service Container (single composition root)
    # ------------------------------------------------------------------
    def navigate(route: Route) -> None:
        print(f"-> {route}")

    services = create_services(
        db=db,
        config=config,
        session=session,
        navigate=navigate,
    )
    router = services["session_router"]

    # ------------------------------------------------------------------
    # 5. Route, then follow auth-state changes until interrupted
    # ------------------------------------------------------------------
    router.start()
    if not db.is_online:
        logger.warning("Backend unavailable; not subscribing to auth events.")
        return

    with AuthEventStream(db, get_logger("auth_events")) as stream:
        try:
            router.run(stream)
        except KeyboardInterrupt:
            logger.info("Interrupted.")
    logger.info("KnowEx shut down.")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        pass
    except Exception as exc:
        sys.stderr.write(f"FATAL: {type(exc).__name__}: {exc}\n")
        sys.exit(1)
