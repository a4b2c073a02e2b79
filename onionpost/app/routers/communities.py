"""REST endpoints for communities."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..dependencies.identity import CallerIdentity, get_identity, get_optional_identity
from ..dependencies.services import get_community_service
from ..schemas.content import CommunityCreate, CommunityResponse
from ..services.communities import CommunityService

router = APIRouter(prefix="/communities", tags=["communities"])


@router.post(
    "",
    response_model=CommunityResponse,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_community(
    payload: CommunityCreate,
    identity: CallerIdentity = Depends(get_identity),
    service: CommunityService = Depends(get_community_service),
):
    """Create a community with the caller's active profile as creator and first member."""

    return await service.create_community(identity.require_profile(), payload)


@router.get("", response_model=list[CommunityResponse], response_model_exclude_unset=True)
async def list_communities(
    identity: CallerIdentity | None = Depends(get_optional_identity),
    service: CommunityService = Depends(get_community_service),
):
    viewer_profile_id = identity.active_profile_id if identity else None
    return await service.list_communities(viewer_profile_id)


__all__ = ["router"]
