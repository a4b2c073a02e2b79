"""Pydantic models for communities, posts, votes and comments.

Authors and creators are always rendered as :class:`ProfileView`, redacted for
the viewer's tier on that author's profile.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .profiles import ProfileView

PostSort = Literal["new", "top", "hot"]


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------


class Community(BaseModel):
    id: UUID
    name: str
    description: str
    creator_profile_id: UUID
    members: list[UUID] = Field(default_factory=list)
    created_at: datetime | None = None


class Post(BaseModel):
    id: UUID
    title: str
    body: str
    author_profile_id: UUID
    community_id: UUID
    upvotes: int = 0
    downvotes: int = 0
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime | None = None

    @property
    def score(self) -> int:
        return self.upvotes - self.downvotes


class Comment(BaseModel):
    id: UUID
    text: str
    author_profile_id: UUID
    post_id: UUID
    parent_comment_id: UUID | None = None
    created_at: datetime


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CommunityCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=2000)

    @field_validator("name", "description")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return _strip_required(value)


class PostCreate(BaseModel):
    """Payload for a new post; ``tags`` may be a list or a comma-separated string."""

    title: str = Field(min_length=1, max_length=300)
    body: str = Field(min_length=1, max_length=40000)
    community_id: UUID
    tags: list[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        return _strip_required(value)

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return value

    @field_validator("tags")
    @classmethod
    def strip_tags(cls, value: list[str]) -> list[str]:
        return [tag.strip() for tag in value if tag.strip()]


class VoteRequest(BaseModel):
    # Checked by the service so any other value is a 400, not a 422
    vote: str


class CommentCreate(BaseModel):
    text: str = Field(min_length=1, max_length=10000)
    parent_comment_id: UUID | None = None

    @field_validator("text")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return _strip_required(value)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class CommunitySummary(BaseModel):
    id: UUID
    name: str


class CommunityResponse(BaseModel):
    id: UUID
    name: str
    description: str
    creator: ProfileView
    member_count: int
    created_at: datetime | None = None


class PostResponse(BaseModel):
    id: UUID
    title: str
    body: str
    author: ProfileView
    community: CommunitySummary
    upvotes: int
    downvotes: int
    score: int
    tags: list[str]
    created_at: datetime


class CommentNode(BaseModel):
    """A comment and its replies, newest first at every level."""

    id: UUID
    text: str
    author: ProfileView
    post_id: UUID
    parent_comment_id: UUID | None = None
    created_at: datetime
    replies: list[CommentNode] = Field(default_factory=list)


__all__ = [
    "Comment",
    "CommentCreate",
    "CommentNode",
    "Community",
    "CommunityCreate",
    "CommunityResponse",
    "CommunitySummary",
    "Post",
    "PostCreate",
    "PostResponse",
    "PostSort",
    "VoteRequest",
]
