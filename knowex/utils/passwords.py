"""
Admin Password Hashing.

New admin credentials are stored as a single self-describing string::

    pbkdf2_sha256$<iterations>$<hex salt>$<hex hash>

The hash is PBKDF2-HMAC-SHA256 over a random 32-byte salt, and
verification compares digests with ``hmac.compare_digest`` so timing does
not reveal how much of the hash matched.

Credentials written by the earlier admin tooling are bcrypt hashes
(``$2a$``, ``$2b$`` or ``$2y$``); those still verify through ``bcrypt``.
"""

from __future__ import annotations

import hashlib
import hmac
import os
from functools import lru_cache

import bcrypt

__all__ = ["hash_password", "verify_password", "dummy_hash", "DEFAULT_ITERATIONS"]

_SCHEME: str = "pbkdf2_sha256"
_BCRYPT_PREFIXES: tuple[str, ...] = ("$2a$", "$2b$", "$2y$")
_SALT_BYTES: int = 32
DEFAULT_ITERATIONS: int = 600_000  # OWASP 2023 recommendation


def _derive(password: str, salt: bytes, iterations: int) -> str:
    return hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        iterations=iterations,
    ).hex()


def hash_password(password: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    """Derive a salted PBKDF2-HMAC-SHA256 hash for *password*.

    Parameters
    ----------
    password:
        The plaintext password to hash.  Must not be empty.
    iterations:
        PBKDF2 work factor, recorded in the output so it can be raised
        later without invalidating stored hashes.

    Returns
    -------
    str
        ``pbkdf2_sha256$<iterations>$<salt>$<hash>``.
    """
    if not password:
        raise ValueError("Password must not be empty")
    salt: bytes = os.urandom(_SALT_BYTES)
    return f"{_SCHEME}${iterations}${salt.hex()}${_derive(password, salt, iterations)}"


@lru_cache(maxsize=8)
def dummy_hash(iterations: int = DEFAULT_ITERATIONS) -> str:
    """A throwaway hash at *iterations*, verified when no credential exists."""
    return hash_password(os.urandom(16).hex(), iterations=iterations)


def _verify_bcrypt(password: str, encoded: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), encoded.encode("utf-8"))
    except ValueError:
        return False


def verify_password(password: str, encoded: str) -> bool:
    """Check *password* against an ``encoded`` hash in constant time.

    Malformed or foreign hashes verify as ``False`` rather than raising,
    so the caller's failure path stays identical to a wrong password.
    """
    if not password or not encoded:
        return False
    if encoded.startswith(_BCRYPT_PREFIXES):
        return _verify_bcrypt(password, encoded)
    try:
        scheme, iterations_str, salt_hex, expected = encoded.split("$", 3)
        iterations = int(iterations_str)
        salt = bytes.fromhex(salt_hex)
    except ValueError:
        return False
    if scheme != _SCHEME or iterations <= 0:
        return False
    return hmac.compare_digest(_derive(password, salt, iterations), expected)
