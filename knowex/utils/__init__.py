"""Shared utility functions and models for the KnowEx services.

This package provides convenience re-exports so that consumers can import
directly from ``knowex.utils`` (e.g. ``from knowex.utils import
hash_password``) while full absolute imports (e.g. ``from
knowex.utils.passwords import hash_password``) remain supported.
"""

from knowex.utils.audit import AuditEvent, log_audit_event
from knowex.utils.passwords import hash_password, verify_password
from knowex.utils.usernames import generate_username, username_base

__all__ = [
    "AuditEvent",
    "generate_username",
    "hash_password",
    "log_audit_event",
    "username_base",
    "verify_password",
]
