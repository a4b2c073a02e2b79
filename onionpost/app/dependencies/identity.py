"""FastAPI dependencies exposing the authenticated caller."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import HTTPException, Request, status

from ..exceptions import InvalidReference


@dataclass(frozen=True)
class CallerIdentity:
    """User and active profile taken from a verified bearer token."""

    user_id: UUID
    active_profile_id: UUID | None

    def require_profile(self) -> UUID:
        if self.active_profile_id is None:
            raise InvalidReference("No active profile selected")
        return self.active_profile_id


def parse_reference(value: object, kind: str = "profile") -> UUID:
    """Parse an identifier, raising :class:`InvalidReference` when malformed."""

    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError) as exc:
        raise InvalidReference(f"Invalid {kind} ID format") from exc


def _identity_from_request(request: Request) -> CallerIdentity | None:
    claims = getattr(request.state, "user", None)
    if not claims:
        return None
    profile_claim = claims.get("profile_id")
    return CallerIdentity(
        user_id=parse_reference(claims.get("sub"), "user"),
        active_profile_id=parse_reference(profile_claim) if profile_claim else None,
    )


async def get_optional_identity(request: Request) -> CallerIdentity | None:
    """Caller identity, or ``None`` for anonymous requests."""

    return _identity_from_request(request)


async def get_identity(request: Request) -> CallerIdentity:
    """Caller identity; anonymous requests are rejected with 401."""

    identity = _identity_from_request(request)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token, authorization denied",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


__all__ = ["CallerIdentity", "get_identity", "get_optional_identity", "parse_reference"]
