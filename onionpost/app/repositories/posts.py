"""Post and comment repositories providing PostgreSQL data access helpers."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

import asyncpg

from ..schemas.content import Comment, Post
from ..utils.metrics import QueryTimer

POST_COLUMNS = """
    id,
    title,
    body,
    author_profile_id,
    community_id,
    upvotes,
    downvotes,
    tags,
    created_at,
    updated_at
"""

COMMENT_COLUMNS = "id, text, author_profile_id, post_id, parent_comment_id, created_at"

# Sort key -> ORDER BY clause. ``hot`` is ranked in Python on top of ``new``.
POST_ORDERING = {
    "new": "created_at DESC",
    "top": "upvotes DESC, created_at DESC",
    "hot": "created_at DESC",
}

# Vote value -> counter column
VOTE_COLUMNS = {"up": "upvotes", "down": "downvotes"}


class PostRepository:
    """Repository encapsulating SQL operations for the ``post`` table."""

    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn

    async def create_post(
        self,
        *,
        title: str,
        body: str,
        author_profile_id: UUID,
        community_id: UUID,
        tags: Iterable[str] = (),
    ) -> Post:
        with QueryTimer("post_insert"):
            row = await self._conn.fetchrow(
                f"""
                INSERT INTO post (title, body, author_profile_id, community_id, tags)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING {POST_COLUMNS}
                """,
                title,
                body,
                author_profile_id,
                community_id,
                list(tags),
            )
        return self._row_to_post(row)

    async def get_post(self, post_id: UUID) -> Post | None:
        with QueryTimer("post_get"):
            row = await self._conn.fetchrow(
                f"SELECT {POST_COLUMNS} FROM post WHERE id = $1",
                post_id,
            )
        return self._row_to_post(row) if row else None

    async def list_posts(
        self, *, community_id: UUID | None = None, sort: str = "new"
    ) -> list[Post]:
        order = POST_ORDERING.get(sort, POST_ORDERING["new"])
        with QueryTimer(f"post_list_{sort}"):
            rows = await self._conn.fetch(
                f"""
                SELECT {POST_COLUMNS}
                FROM post
                WHERE ($1::uuid IS NULL OR community_id = $1)
                ORDER BY {order}
                """,
                community_id,
            )
        return [self._row_to_post(row) for row in rows]

    async def add_vote(self, post_id: UUID, vote: str) -> Post | None:
        """Atomically bump the counter for ``vote`` (``"up"`` or ``"down"``)."""

        column = VOTE_COLUMNS[vote]
        with QueryTimer("post_vote"):
            row = await self._conn.fetchrow(
                f"""
                UPDATE post
                SET {column} = {column} + 1,
                    updated_at = now()
                WHERE id = $1
                RETURNING {POST_COLUMNS}
                """,
                post_id,
            )
        return self._row_to_post(row) if row else None

    @staticmethod
    def _row_to_post(row: asyncpg.Record) -> Post:
        return Post(
            id=row["id"],
            title=row["title"],
            body=row["body"],
            author_profile_id=row["author_profile_id"],
            community_id=row["community_id"],
            upvotes=row.get("upvotes") or 0,
            downvotes=row.get("downvotes") or 0,
            tags=list(row.get("tags") or []),
            created_at=row["created_at"],
            updated_at=row.get("updated_at"),
        )


class CommentRepository:
    """Repository encapsulating SQL operations for the ``comment`` table."""

    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn

    async def create_comment(
        self,
        *,
        post_id: UUID,
        author_profile_id: UUID,
        text: str,
        parent_comment_id: UUID | None = None,
    ) -> Comment:
        with QueryTimer("comment_insert"):
            row = await self._conn.fetchrow(
                f"""
                INSERT INTO comment (text, author_profile_id, post_id, parent_comment_id)
                VALUES ($1, $2, $3, $4)
                RETURNING {COMMENT_COLUMNS}
                """,
                text,
                author_profile_id,
                post_id,
                parent_comment_id,
            )
        return self._row_to_comment(row)

    async def get_comment(self, comment_id: UUID) -> Comment | None:
        with QueryTimer("comment_get"):
            row = await self._conn.fetchrow(
                f"SELECT {COMMENT_COLUMNS} FROM comment WHERE id = $1",
                comment_id,
            )
        return self._row_to_comment(row) if row else None

    async def list_comments_for_post(self, post_id: UUID) -> list[Comment]:
        """All comments on a post, newest first."""

        with QueryTimer("comment_list_for_post"):
            rows = await self._conn.fetch(
                f"""
                SELECT {COMMENT_COLUMNS}
                FROM comment
                WHERE post_id = $1
                ORDER BY created_at DESC
                """,
                post_id,
            )
        return [self._row_to_comment(row) for row in rows]

    @staticmethod
    def _row_to_comment(row: asyncpg.Record) -> Comment:
        return Comment(
            id=row["id"],
            text=row["text"],
            author_profile_id=row["author_profile_id"],
            post_id=row["post_id"],
            parent_comment_id=row.get("parent_comment_id"),
            created_at=row["created_at"],
        )


__all__ = ["CommentRepository", "PostRepository"]
