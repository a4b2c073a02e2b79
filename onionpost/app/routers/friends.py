"""REST endpoints for follow and close-friend relationships.

Every operation acts on the caller's active profile, which holds the edge.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..dependencies.identity import CallerIdentity, get_identity, parse_reference
from ..dependencies.services import get_relationship_service
from ..schemas.profiles import RelationshipResponse
from ..services.relationships import RelationshipService

router = APIRouter(prefix="/friends", tags=["friends"])


@router.post("/follow/{profile_id}", response_model=RelationshipResponse)
async def follow_profile(
    profile_id: str,
    identity: CallerIdentity = Depends(get_identity),
    service: RelationshipService = Depends(get_relationship_service),
):
    result = await service.follow(identity.require_profile(), parse_reference(profile_id))
    return RelationshipResponse(relationship=result)


@router.post("/unfollow/{profile_id}", response_model=dict[str, str])
async def unfollow_profile(
    profile_id: str,
    identity: CallerIdentity = Depends(get_identity),
    service: RelationshipService = Depends(get_relationship_service),
):
    await service.unfollow(identity.require_profile(), parse_reference(profile_id))
    return {}


@router.post("/close/{profile_id}", response_model=RelationshipResponse)
async def add_close_friend(
    profile_id: str,
    identity: CallerIdentity = Depends(get_identity),
    service: RelationshipService = Depends(get_relationship_service),
):
    result = await service.add_close_friend(identity.require_profile(), parse_reference(profile_id))
    return RelationshipResponse(relationship=result)


@router.post("/unclose/{profile_id}", response_model=RelationshipResponse)
async def remove_close_friend(
    profile_id: str,
    identity: CallerIdentity = Depends(get_identity),
    service: RelationshipService = Depends(get_relationship_service),
):
    """Downgrade a close friend to follower, or drop a plain follow."""

    result = await service.remove_close_friend(
        identity.require_profile(), parse_reference(profile_id)
    )
    return RelationshipResponse(relationship=result)


__all__ = ["router"]
