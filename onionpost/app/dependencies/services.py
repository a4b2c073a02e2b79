"""FastAPI dependencies wiring request-scoped services."""

from __future__ import annotations

from functools import lru_cache

import asyncpg
from fastapi import Depends

from ..config import settings
from ..db.postgres_async import get_pg
from ..services.communities import CommunityService
from ..services.posts import PostService
from ..services.profiles import ProfileService
from ..services.relationships import RelationshipService
from ..services.visibility import VisibilityPolicy


@lru_cache
def get_visibility_policy() -> VisibilityPolicy:
    """Process-wide policy built from the configured default exposure."""

    return VisibilityPolicy(settings.DEFAULT_VISIBILITY)


def get_profile_service(
    pg: asyncpg.Connection = Depends(get_pg),
    policy: VisibilityPolicy = Depends(get_visibility_policy),
) -> ProfileService:
    return ProfileService(pg, policy)


def get_relationship_service(pg: asyncpg.Connection = Depends(get_pg)) -> RelationshipService:
    return RelationshipService(pg)


def get_community_service(
    pg: asyncpg.Connection = Depends(get_pg),
    policy: VisibilityPolicy = Depends(get_visibility_policy),
) -> CommunityService:
    return CommunityService(pg, policy)


def get_post_service(
    pg: asyncpg.Connection = Depends(get_pg),
    policy: VisibilityPolicy = Depends(get_visibility_policy),
) -> PostService:
    return PostService(pg, policy)
