"""
Username Derivation.

When the username chosen at signup collides in the ``users`` table, a
replacement is derived from the email's local part.  The first derived
candidate is the bare base; later ones append a random 4-digit suffix.
"""

from __future__ import annotations

import random
import re
from typing import Optional

__all__ = ["generate_username", "username_base"]

_DISALLOWED_RE: re.Pattern[str] = re.compile(r"[^a-z0-9_]")
_MAX_BASE_LENGTH: int = 20
_FALLBACK_BASE: str = "user"


def username_base(email: str, min_length: int = 3) -> str:
    """Lower-cased, sanitised local part of *email*, padded to *min_length*."""
    local_part = email.strip().lower().split("@", 1)[0]
    base = _DISALLOWED_RE.sub("", local_part.replace(".", "_").replace("-", "_"))
    base = base.strip("_")[:_MAX_BASE_LENGTH] or _FALLBACK_BASE
    if len(base) < min_length:
        base = f"{base}{'_' * (min_length - len(base))}"
    return base


def generate_username(
    email: str,
    attempt: int,
    rng: Optional[random.Random] = None,
    min_length: int = 3,
) -> str:
    """Derive the *attempt*-th candidate username from *email*.

    Args:
        email: The account email.
        attempt: ``0`` yields the bare base; ``n > 0`` appends a random
            4-digit disambiguator.
        rng: Source of randomness (seed it in tests).
        min_length: Minimum username length.
    """
    base = username_base(email, min_length=min_length)
    if attempt <= 0:
        return base
    suffix = (rng or random).randint(1000, 9999)
    return f"{base}{suffix}"
