"""HS256/384/512 JWT encoding and decoding for session tokens."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from collections.abc import Iterable
from typing import Any

_DIGESTS = {
    "HS256": hashlib.sha256,
    "HS384": hashlib.sha384,
    "HS512": hashlib.sha512,
}


class JWTError(Exception):
    """Base JWT error."""


class JWTSignatureError(JWTError):
    """Raised when signature verification fails."""


class JWTAlgorithmError(JWTError):
    """Raised when an unsupported algorithm is requested."""


class JWTExpiredError(JWTError):
    """Raised when the token is expired."""


class JWTClaimError(JWTError):
    """Raised when a required claim is missing or invalid."""


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(segment: str) -> bytes:
    padding = "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(segment + padding)


def _sign(message: bytes, secret_key: str, algorithm: str) -> bytes:
    digestmod = _DIGESTS.get(algorithm)
    if digestmod is None:
        raise JWTAlgorithmError(f"Unsupported JWT algorithm: {algorithm}")
    return hmac.new(secret_key.encode("utf-8"), message, digestmod).digest()


def encode_jwt(
    claims: dict[str, Any],
    secret_key: str,
    algorithm: str = "HS256",
    expires_in: int | None = None,
    audience: str | None = None,
    issuer: str | None = None,
) -> str:
    """Sign ``claims`` into a compact JWT, adding ``iat``/``exp``/``aud``/``iss``."""

    if not secret_key:
        raise JWTSignatureError("Secret key required for JWT signing")

    now = int(time.time())
    payload = {**claims, "iat": now}
    if expires_in is not None:
        payload["exp"] = now + int(expires_in)
    if audience is not None:
        payload["aud"] = audience
    if issuer is not None:
        payload["iss"] = issuer

    header = {"alg": algorithm, "typ": "JWT"}
    signing_input = ".".join(
        _b64encode(json.dumps(part, separators=(",", ":")).encode("utf-8"))
        for part in (header, payload)
    )
    signature = _sign(signing_input.encode("ascii"), secret_key, algorithm)
    return f"{signing_input}.{_b64encode(signature)}"


def decode_jwt(
    token: str,
    secret_key: str,
    algorithms: Iterable[str] | None = None,
    audience: str | None = None,
    issuer: str | None = None,
) -> dict[str, Any]:
    """Verify the signature and registered claims, returning the payload."""

    if not secret_key:
        raise JWTSignatureError("Secret key required for JWT validation")

    algorithms = list(algorithms or ["HS256"])
    segments = token.split(".")
    if len(segments) != 3:
        raise JWTError("Invalid token format")

    header_segment, payload_segment, signature_segment = segments
    try:
        header = json.loads(_b64decode(header_segment).decode("utf-8"))
        actual_signature = _b64decode(signature_segment)
    except (ValueError, UnicodeDecodeError) as exc:
        raise JWTError("Malformed token segment") from exc

    algorithm = header.get("alg") if isinstance(header, dict) else None
    if algorithm not in algorithms:
        raise JWTAlgorithmError(f"Unsupported JWT algorithm: {algorithm}")

    expected_signature = _sign(f"{header_segment}.{payload_segment}".encode(), secret_key, algorithm)
    if not hmac.compare_digest(expected_signature, actual_signature):
        raise JWTSignatureError("Invalid JWT signature")

    try:
        payload = json.loads(_b64decode(payload_segment).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as exc:
        raise JWTError("Malformed token payload") from exc
    if not isinstance(payload, dict):
        raise JWTClaimError("Token payload must be an object")

    now = int(time.time())
    exp = payload.get("exp")
    if exp is not None and now >= int(exp):
        raise JWTExpiredError("Token has expired")

    nbf = payload.get("nbf")
    if nbf is not None and now < int(nbf):
        raise JWTClaimError("Token not yet valid (nbf)")

    if audience is not None:
        aud = payload.get("aud")
        if (audience not in aud) if isinstance(aud, list) else (aud != audience):
            raise JWTClaimError("Audience claim mismatch")

    if issuer is not None and payload.get("iss") != issuer:
        raise JWTClaimError("Issuer claim mismatch")

    return payload


__all__ = [
    "JWTAlgorithmError",
    "JWTClaimError",
    "JWTError",
    "JWTExpiredError",
    "JWTSignatureError",
    "decode_jwt",
    "encode_jwt",
]
