"""REST endpoints for reading, creating, editing and switching profiles."""

from __future__ import annotations

import asyncpg
from fastapi import APIRouter, Depends, status

from ..db.postgres_async import get_pg
from ..dependencies.identity import (
    CallerIdentity,
    get_identity,
    get_optional_identity,
    parse_reference,
)
from ..dependencies.services import get_profile_service
from ..repositories.users import UserRepository
from ..schemas.profiles import (
    MyProfilesResponse,
    ProfileCreate,
    ProfileSummary,
    ProfileUpdate,
    ProfileView,
    ProfileViewResponse,
)
from ..schemas.users import SessionResponse
from ..services.profiles import ProfileService
from ..services.sessions import issue_session, summarize

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.post("", response_model=ProfileView, status_code=status.HTTP_201_CREATED)
async def create_profile(
    payload: ProfileCreate,
    identity: CallerIdentity = Depends(get_identity),
    service: ProfileService = Depends(get_profile_service),
):
    """Add a persona to the caller's account."""

    profile = await service.create_profile(identity.user_id, payload)
    return service.owner_view(profile)


@router.get("/me", response_model=MyProfilesResponse)
async def list_my_profiles(
    identity: CallerIdentity = Depends(get_identity),
    service: ProfileService = Depends(get_profile_service),
    pg: asyncpg.Connection = Depends(get_pg),
):
    profiles = await service.list_profiles(identity.user_id)
    user_row = await UserRepository.fetch_user(pg, identity.user_id)
    return MyProfilesResponse(
        profiles=[service.owner_view(profile) for profile in profiles],
        primary_profile_id=user_row["primary_profile_id"] if user_row else None,
    )


@router.get("/current", response_model=ProfileSummary)
async def current_profile(
    identity: CallerIdentity = Depends(get_identity),
    service: ProfileService = Depends(get_profile_service),
):
    """Summary of the profile the caller's token is acting as."""

    profile = await service.get_profile(identity.require_profile())
    return summarize(profile)


@router.post("/switch/{profile_id}", response_model=SessionResponse)
async def switch_profile(
    profile_id: str,
    identity: CallerIdentity = Depends(get_identity),
    service: ProfileService = Depends(get_profile_service),
):
    """Issue a new token acting as another profile owned by the caller."""

    profile = await service.get_owned_profile(identity.user_id, parse_reference(profile_id))
    return issue_session(identity.user_id, profile)


@router.get(
    "/{profile_id}",
    response_model=ProfileViewResponse,
    response_model_exclude_unset=True,
)
async def get_profile_view(
    profile_id: str,
    identity: CallerIdentity | None = Depends(get_optional_identity),
    service: ProfileService = Depends(get_profile_service),
):
    """Profile filtered by the caller's relationship tier.

    Anonymous callers, and callers whose token carries no active profile, see
    the public layer only.
    """

    viewer_profile_id = identity.active_profile_id if identity else None
    return await service.get_profile_view(parse_reference(profile_id), viewer_profile_id)


@router.put("/{profile_id}", response_model=ProfileView)
async def update_profile(
    profile_id: str,
    payload: ProfileUpdate,
    identity: CallerIdentity = Depends(get_identity),
    service: ProfileService = Depends(get_profile_service),
):
    profile = await service.update_profile(identity.user_id, parse_reference(profile_id), payload)
    return service.owner_view(profile)


__all__ = ["router"]
