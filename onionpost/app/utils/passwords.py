"""PBKDF2 password hashing for account credentials."""

from __future__ import annotations

import hmac
import os
from hashlib import pbkdf2_hmac
from typing import Final

DEFAULT_ITERATIONS: Final[int] = 150_000
ALGORITHM: Final[str] = "sha256"
SCHEME: Final[str] = f"pbkdf2_{ALGORITHM}"


def hash_password(password: str, *, iterations: int = DEFAULT_ITERATIONS) -> str:
    """Return ``pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>``."""

    if not password:
        raise ValueError("password must not be empty")
    salt = os.urandom(16)
    digest = pbkdf2_hmac(ALGORITHM, password.encode("utf-8"), salt, iterations)
    return f"{SCHEME}${iterations}${salt.hex()}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    """Check ``password`` against a hash produced by :func:`hash_password`."""

    try:
        scheme, iterations_str, salt_hex, digest_hex = encoded.split("$")
        iterations = int(iterations_str)
        salt = bytes.fromhex(salt_hex)
        digest = bytes.fromhex(digest_hex)
    except ValueError:
        return False

    if scheme != SCHEME:
        return False

    candidate = pbkdf2_hmac(ALGORITHM, password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(candidate, digest)


__all__ = ["hash_password", "verify_password"]
