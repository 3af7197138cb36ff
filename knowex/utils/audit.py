"""
Structured Audit Logging Utility.

Every state change of the onboarding flow (signup, join request,
onboarding completion, admin login, admin provisioning) is logged as a
structured JSON object.  Provides a Pydantic-validated model and a single
function for consistent audit trail entries.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, Field

from knowex.logger import StructuredLogger

__all__ = ["AuditEvent", "log_audit_event"]

# Flat scalars only; nested structures should be modelled explicitly.
DetailValue = Union[str, int, float, bool, None]


class AuditEvent(BaseModel):
    """Schema-validated representation of a single audit trail entry.

    Every audit event is validated against this model before it is
    serialised to JSON and handed to the logger, so malformed payloads
    are caught at the point of origin.
    """

    timestamp: str
    action: str
    entity_type: str
    entity_id: str
    user_id: str
    details: dict[str, DetailValue] = Field(default_factory=dict)


def log_audit_event(
    logger: StructuredLogger,
    action: str,
    entity_type: str,
    entity_id: str,
    user_id: str,
    details: Optional[dict[str, DetailValue]] = None,
) -> AuditEvent:
    """Log a structured JSON audit event.

    Args:
        logger: The logger instance to write to.
        action: What happened (e.g. ``"SIGNUP"``, ``"JOIN_REQUEST"``,
            ``"ONBOARDING_COMPLETE"``, ``"ADMIN_LOGIN"``).
        entity_type: Type of entity affected (e.g. ``"User"``,
            ``"CommunityJoinRequest"``, ``"AdminCredential"``).
        entity_id: Primary key of the affected entity.
        user_id: ID of the user who performed the action.
        details: Optional additional context (e.g. counts, statuses).

    Returns:
        The validated event, so callers can assert on it in tests.
    """
    event = AuditEvent(
        timestamp=datetime.now(timezone.utc).isoformat(),
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        details=details or {},
    )
    logger.info("AUDIT: %s", json.dumps(event.model_dump(), default=str))
    return event
