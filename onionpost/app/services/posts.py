"""Post service: publishing, feeds, voting and threaded comments.

Every author in a response is rendered through :class:`AuthorRenderer`, so a
post or comment discloses exactly the author fields the viewer's tier unlocks.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

import asyncpg

from ..exceptions import InvalidInput, NotFound
from ..repositories.communities import CommunityRepository
from ..repositories.posts import VOTE_COLUMNS, CommentRepository, PostRepository
from ..repositories.profiles import ProfileRepository
from ..schemas.content import (
    Comment,
    CommentCreate,
    CommentNode,
    Community,
    CommunitySummary,
    Post,
    PostCreate,
    PostResponse,
    PostSort,
)
from ..schemas.profiles import ProfileView
from ..utils.logging import get_logger
from ..utils.metrics import observe_vote
from .authors import AuthorRenderer
from .ranking import PostRanker, hot_score
from .visibility import VisibilityPolicy

logger = get_logger(__name__)


class PostService:
    """Coordinates posts, votes and comments.

    Parameters:
        conn: Request-scoped :class:`asyncpg.Connection`.
        policy: Visibility policy used to redact authors.
        ranker: Score used for the ``hot`` feed, highest first.
    """

    def __init__(
        self,
        conn: asyncpg.Connection,
        policy: VisibilityPolicy,
        ranker: PostRanker = hot_score,
    ) -> None:
        self._conn = conn
        self._posts = PostRepository(conn)
        self._comments = CommentRepository(conn)
        self._communities = CommunityRepository(conn)
        self._profiles = ProfileRepository(conn)
        self._authors = AuthorRenderer(self._profiles, policy)
        self._ranker = ranker

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------
    async def create_post(self, author_profile_id: UUID, payload: PostCreate) -> PostResponse:
        await self._require_profile(author_profile_id)
        community = await self._communities.get_community(payload.community_id)
        if community is None:
            raise NotFound("Community not found")

        post = await self._posts.create_post(
            title=payload.title,
            body=payload.body,
            author_profile_id=author_profile_id,
            community_id=community.id,
            tags=payload.tags,
        )
        logger.info(
            "post_created",
            extra={"post_id": str(post.id), "community_id": str(community.id)},
        )
        return (await self._render([post], author_profile_id, {community.id: community}))[0]

    async def list_posts(
        self,
        *,
        community: str | None = None,
        sort: PostSort = "new",
        viewer_profile_id: UUID | None = None,
    ) -> list[PostResponse]:
        """Posts across all communities, or one community given by name or id."""

        community_id = None
        if community:
            community_id = (await self._resolve_community(community)).id

        posts = await self._posts.list_posts(community_id=community_id, sort=sort)
        if sort == "hot":
            posts = sorted(posts, key=self._ranker, reverse=True)
        return await self._render(posts, viewer_profile_id)

    async def vote(self, post_id: UUID, vote: str, viewer_profile_id: UUID) -> PostResponse:
        if vote not in VOTE_COLUMNS:
            raise InvalidInput('Invalid vote type. Use "up" or "down".')

        post = await self._posts.add_vote(post_id, vote)
        if post is None:
            raise NotFound("Post not found")

        observe_vote(vote)
        logger.info(
            "post_voted",
            extra={"post_id": str(post_id), "vote": vote, "profile_id": str(viewer_profile_id)},
        )
        return (await self._render([post], viewer_profile_id))[0]

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------
    async def add_comment(
        self,
        post_id: UUID,
        author_profile_id: UUID,
        payload: CommentCreate,
    ) -> CommentNode:
        await self._require_profile(author_profile_id)
        await self._require_post(post_id)

        if payload.parent_comment_id is not None:
            parent = await self._comments.get_comment(payload.parent_comment_id)
            if parent is None or parent.post_id != post_id:
                raise InvalidInput("Invalid parent comment")

        comment = await self._comments.create_comment(
            post_id=post_id,
            author_profile_id=author_profile_id,
            text=payload.text,
            parent_comment_id=payload.parent_comment_id,
        )
        logger.info(
            "comment_created",
            extra={"comment_id": str(comment.id), "post_id": str(post_id)},
        )
        authors = await self._authors.render([author_profile_id], author_profile_id)
        return _to_node(comment, authors[author_profile_id])

    async def list_comments(
        self,
        post_id: UUID,
        viewer_profile_id: UUID | None,
    ) -> list[CommentNode]:
        """Top-level comments with nested replies, newest first at every level."""

        await self._require_post(post_id)
        comments = await self._comments.list_comments_for_post(post_id)
        authors = await self._authors.render(
            (comment.author_profile_id for comment in comments), viewer_profile_id
        )
        return build_comment_tree(comments, authors)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _require_profile(self, profile_id: UUID) -> None:
        if await self._profiles.get_profile(profile_id) is None:
            raise NotFound("Profile not found")

    async def _require_post(self, post_id: UUID) -> Post:
        post = await self._posts.get_post(post_id)
        if post is None:
            raise NotFound("Post not found")
        return post

    async def _resolve_community(self, reference: str) -> Community:
        community = await self._communities.find_community_by_name(reference)
        if community is None:
            try:
                community_id = UUID(reference)
            except ValueError:
                community_id = None
            if community_id is not None:
                community = await self._communities.get_community(community_id)
        if community is None:
            raise NotFound("Community not found")
        return community

    async def _render(
        self,
        posts: list[Post],
        viewer_profile_id: UUID | None,
        communities: dict[UUID, Community] | None = None,
    ) -> list[PostResponse]:
        if communities is None:
            communities = await self._communities.get_communities(
                post.community_id for post in posts
            )
        authors = await self._authors.render(
            (post.author_profile_id for post in posts), viewer_profile_id
        )
        return [
            _to_response(post, authors[post.author_profile_id], communities.get(post.community_id))
            for post in posts
        ]


def _to_response(post: Post, author: ProfileView, community: Community | None) -> PostResponse:
    return PostResponse(
        id=post.id,
        title=post.title,
        body=post.body,
        author=author,
        community=CommunitySummary(
            id=post.community_id,
            name=community.name if community else "",
        ),
        upvotes=post.upvotes,
        downvotes=post.downvotes,
        score=post.score,
        tags=list(post.tags),
        created_at=post.created_at,
    )


def _to_node(comment: Comment, author: ProfileView) -> CommentNode:
    return CommentNode(
        id=comment.id,
        text=comment.text,
        author=author,
        post_id=comment.post_id,
        parent_comment_id=comment.parent_comment_id,
        created_at=comment.created_at,
        replies=[],
    )


def build_comment_tree(
    comments: Iterable[Comment],
    authors: dict[UUID, ProfileView],
) -> list[CommentNode]:
    """Nest ``comments`` under their parents, keeping the input order per level.

    Replies whose parent is not among ``comments`` are dropped.
    """

    comments = list(comments)
    nodes: dict[UUID, CommentNode] = {}
    for comment in comments:
        author = authors.get(comment.author_profile_id) or ProfileView(id=comment.author_profile_id)
        nodes[comment.id] = _to_node(comment, author)

    roots: list[CommentNode] = []
    for comment in comments:
        node = nodes[comment.id]
        if comment.parent_comment_id is None:
            roots.append(node)
            continue
        parent = nodes.get(comment.parent_comment_id)
        if parent is not None:
            parent.replies.append(node)
    return roots


__all__ = ["PostService", "build_comment_tree"]
