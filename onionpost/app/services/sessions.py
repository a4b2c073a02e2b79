"""Issue bearer tokens bound to a user's active profile."""

from __future__ import annotations

from uuid import UUID

from ..config import settings
from ..schemas.profiles import Profile, ProfileSummary
from ..schemas.users import SessionResponse
from ..utils.jwt import encode_jwt


def summarize(profile: Profile) -> ProfileSummary:
    return ProfileSummary(
        id=profile.id,
        username=profile.username,
        display_name=profile.display_name,
        is_anonymous=profile.is_anonymous,
    )


def issue_session(user_id: UUID, profile: Profile) -> SessionResponse:
    """Sign a token carrying ``sub`` (user) and ``profile_id`` (active persona)."""

    expires_in = settings.JWT_ACCESS_TOKEN_EXPIRES_MINUTES * 60
    token = encode_jwt(
        {"sub": str(user_id), "profile_id": str(profile.id)},
        secret_key=settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
        expires_in=expires_in,
        audience=settings.JWT_AUDIENCE,
        issuer=settings.JWT_ISSUER,
    )
    return SessionResponse(access_token=token, expires_in=expires_in, profile=summarize(profile))


__all__ = ["issue_session", "summarize"]
