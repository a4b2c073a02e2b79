"""Registration and login endpoints issuing profile-bound JWT access tokens."""

from __future__ import annotations

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, status

from ..config import settings
from ..db.postgres_async import get_pg
from ..dependencies.services import get_profile_service
from ..exceptions import Conflict, NotFound
from ..repositories.users import UserRepository
from ..schemas.profiles import ProfileCreate
from ..schemas.users import AuthResponse, LoginRequest, RegistrationRequest, UserSummary
from ..services.profiles import ProfileService
from ..services.sessions import issue_session
from ..utils.logging import get_logger
from ..utils.passwords import hash_password, verify_password

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _build_user_summary(row) -> UserSummary:
    return UserSummary(
        user_id=row["id"],
        email=row["email"],
        primary_profile_id=row["primary_profile_id"],
        created_at=row["created_at"],
    )


def _require_signing_key() -> None:
    if not settings.JWT_SECRET_KEY:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication not configured",
        )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegistrationRequest,
    pg: asyncpg.Connection = Depends(get_pg),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Create an account and its first profile, and sign in as that profile."""

    _require_signing_key()

    async with pg.transaction():
        if await UserRepository.fetch_user_credentials(pg, payload.email):
            raise Conflict("User already exists")
        try:
            user_row = await UserRepository.create_user(
                pg, payload.email, hash_password(payload.password)
            )
        except asyncpg.UniqueViolationError as exc:
            raise Conflict("User already exists") from exc

        profile = await profiles.create_profile(
            user_row["id"],
            ProfileCreate(username=payload.username, display_name=payload.display_name),
        )
        user_row = await UserRepository.set_primary_profile(pg, user_row["id"], profile.id)

    logger.info("user_registered", extra={"user_id": str(user_row["id"])})
    session = issue_session(user_row["id"], profile)
    return AuthResponse(**session.model_dump(), user=_build_user_summary(user_row))


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    pg: asyncpg.Connection = Depends(get_pg),
    profiles: ProfileService = Depends(get_profile_service),
):
    """Authenticate via email/password and act as the primary profile."""

    record = await UserRepository.fetch_user_credentials(pg, payload.email)
    if not record:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    password_hash: str | None = record.get("password_hash")
    if not password_hash or not verify_password(payload.password, password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    _require_signing_key()

    if record["primary_profile_id"] is None:
        raise NotFound("Primary profile not found")
    profile = await profiles.get_profile(record["primary_profile_id"])

    session = issue_session(record["id"], profile)
    return AuthResponse(**session.model_dump(), user=_build_user_summary(record))


__all__ = ["router"]
