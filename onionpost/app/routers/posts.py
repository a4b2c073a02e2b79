"""REST endpoints for posts, votes and comment threads.

Post and comment authors are redacted for the caller exactly as a profile
view would be: anonymous callers see each author's public layer.

Example:
    ```bash
    curl "http://localhost:8000/v1/posts?community=python&sort=hot"
    ```
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from ..dependencies.identity import (
    CallerIdentity,
    get_identity,
    get_optional_identity,
    parse_reference,
)
from ..dependencies.services import get_post_service
from ..schemas.content import (
    CommentCreate,
    CommentNode,
    PostCreate,
    PostResponse,
    PostSort,
    VoteRequest,
)
from ..services.posts import PostService

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post(
    "",
    response_model=PostResponse,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_post(
    payload: PostCreate,
    identity: CallerIdentity = Depends(get_identity),
    service: PostService = Depends(get_post_service),
):
    """Publish a post to a community as the caller's active profile."""

    return await service.create_post(identity.require_profile(), payload)


@router.get("", response_model=list[PostResponse], response_model_exclude_unset=True)
async def list_posts(
    community: str | None = Query(None, description="Community name or id"),
    sort: PostSort = Query("new", description="new, top or hot"),
    identity: CallerIdentity | None = Depends(get_optional_identity),
    service: PostService = Depends(get_post_service),
):
    """List posts, optionally restricted to one community.

    Args:
        community: Community name or id; unknown values return 404.
        sort: ``new`` (newest first), ``top`` (most upvotes) or ``hot``
            (net votes weighted by recency).
    """

    viewer_profile_id = identity.active_profile_id if identity else None
    return await service.list_posts(
        community=community, sort=sort, viewer_profile_id=viewer_profile_id
    )


@router.post("/{post_id}/vote", response_model=PostResponse, response_model_exclude_unset=True)
async def vote_post(
    post_id: str,
    payload: VoteRequest,
    identity: CallerIdentity = Depends(get_identity),
    service: PostService = Depends(get_post_service),
):
    """Add an ``up`` or ``down`` vote; any other value is rejected with 400."""

    return await service.vote(
        parse_reference(post_id, "post"), payload.vote, identity.require_profile()
    )


@router.post(
    "/{post_id}/comments",
    response_model=CommentNode,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    post_id: str,
    payload: CommentCreate,
    identity: CallerIdentity = Depends(get_identity),
    service: PostService = Depends(get_post_service),
):
    return await service.add_comment(
        parse_reference(post_id, "post"), identity.require_profile(), payload
    )


@router.get(
    "/{post_id}/comments",
    response_model=list[CommentNode],
    response_model_exclude_unset=True,
)
async def list_comments(
    post_id: str,
    identity: CallerIdentity | None = Depends(get_optional_identity),
    service: PostService = Depends(get_post_service),
):
    """Comment thread for a post: top-level comments with nested ``replies``."""

    viewer_profile_id = identity.active_profile_id if identity else None
    return await service.list_comments(parse_reference(post_id, "post"), viewer_profile_id)


__all__ = ["router"]
