"""Community service: creation and listing."""

from __future__ import annotations

from uuid import UUID

import asyncpg

from ..exceptions import Conflict, NotFound
from ..repositories.communities import CommunityRepository
from ..repositories.profiles import ProfileRepository
from ..schemas.content import Community, CommunityCreate, CommunityResponse
from ..schemas.profiles import ProfileView
from ..utils.logging import get_logger
from .authors import AuthorRenderer
from .visibility import VisibilityPolicy

logger = get_logger(__name__)


class CommunityService:
    """Coordinates community persistence and creator rendering."""

    def __init__(self, conn: asyncpg.Connection, policy: VisibilityPolicy) -> None:
        self._conn = conn
        self._repo = CommunityRepository(conn)
        self._profiles = ProfileRepository(conn)
        self._authors = AuthorRenderer(self._profiles, policy)

    async def create_community(
        self,
        creator_profile_id: UUID,
        payload: CommunityCreate,
    ) -> CommunityResponse:
        if await self._profiles.get_profile(creator_profile_id) is None:
            raise NotFound("Profile not found")
        if await self._repo.find_community_by_name(payload.name) is not None:
            raise Conflict("Community with this name already exists")

        try:
            community = await self._repo.create_community(
                name=payload.name,
                description=payload.description,
                creator_profile_id=creator_profile_id,
            )
        except asyncpg.UniqueViolationError as exc:
            raise Conflict("Community with this name already exists") from exc

        logger.info(
            "community_created",
            extra={
                "community_id": str(community.id),
                "creator_profile_id": str(creator_profile_id),
            },
        )
        creators = await self._authors.render([creator_profile_id], creator_profile_id)
        return _to_response(community, creators[creator_profile_id])

    async def list_communities(self, viewer_profile_id: UUID | None) -> list[CommunityResponse]:
        communities = await self._repo.list_communities()
        creators = await self._authors.render(
            (community.creator_profile_id for community in communities), viewer_profile_id
        )
        return [
            _to_response(community, creators[community.creator_profile_id])
            for community in communities
        ]


def _to_response(community: Community, creator: ProfileView) -> CommunityResponse:
    return CommunityResponse(
        id=community.id,
        name=community.name,
        description=community.description,
        creator=creator,
        member_count=len(community.members),
        created_at=community.created_at,
    )


__all__ = ["CommunityService"]
