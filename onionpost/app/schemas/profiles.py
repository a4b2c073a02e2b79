"""Pydantic models for profiles, visibility policies and relationship edges."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class Tier(str, Enum):
    """Trust level between a viewer and a profile: owner > close > follower > public."""

    OWNER = "owner"
    CLOSE = "close"
    FOLLOWER = "follower"
    PUBLIC = "public"
    BLOCKED = "blocked"


# Tiers that may be stored on a relationship edge
EDGE_TIERS = frozenset({Tier.CLOSE, Tier.FOLLOWER, Tier.BLOCKED})

PolicyField = Literal["username", "avatar", "bio", "interests"]


class RelationshipEdge(BaseModel):
    """Directed edge held by the profile that follows ``peer_profile_id``."""

    peer_profile_id: UUID
    tier: Tier = Tier.FOLLOWER

    @field_validator("tier")
    @classmethod
    def edge_tier(cls, value: Tier) -> Tier:
        if value not in EDGE_TIERS:
            raise ValueError(f"tier {value.value!r} cannot be stored on an edge")
        return value


class Profile(BaseModel):
    """Full profile record as persisted.

    ``visibility`` is kept as the raw stored document; the visibility policy
    reads it leniently so malformed sections degrade instead of failing.
    """

    id: UUID
    owner_user_id: UUID
    username: str
    display_name: str | None = None
    bio: str | None = None
    avatar_ref: str = ""
    interests: list[str] = Field(default_factory=list)
    is_anonymous: bool = False
    visibility: dict[str, Any] = Field(default_factory=dict)
    relationships: list[RelationshipEdge] = Field(default_factory=list)
    # Stored edges with an unrecognised shape or tier; written back unchanged
    opaque_relationships: list[Any] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def edge_to(self, peer_profile_id: UUID) -> RelationshipEdge | None:
        for edge in self.relationships:
            if edge.peer_profile_id == peer_profile_id:
                return edge
        return None


class FieldExposureUpdate(BaseModel):
    """Fields exposed at a single tier."""

    fields: list[PolicyField] = Field(default_factory=list)

    @field_validator("fields")
    @classmethod
    def deduplicate(cls, value: list[str]) -> list[str]:
        seen = set()
        deduped: list[str] = []
        for item in value:
            if item not in seen:
                seen.add(item)
                deduped.append(item)
        return deduped


class VisibilityUpdate(BaseModel):
    """Per-tier exposure lists; omitted tiers keep their stored value."""

    public: FieldExposureUpdate | None = None
    follower: FieldExposureUpdate | None = None
    close_friend: FieldExposureUpdate | None = None

    def sections(self) -> dict[str, dict[str, list[str]]]:
        return {
            name: section.model_dump()
            for name, section in (
                ("public", self.public),
                ("follower", self.follower),
                ("close_friend", self.close_friend),
            )
            if section is not None
        }


class ProfileCreate(BaseModel):
    """Payload for adding a persona to the caller's account."""

    username: str = Field(min_length=1, max_length=50)
    display_name: str = Field(min_length=1, max_length=100)
    bio: str = Field(default="", max_length=500)
    interests: list[str] = Field(default_factory=list)
    is_anonymous: bool = False
    visibility: VisibilityUpdate | None = None

    @field_validator("username")
    @classmethod
    def normalize_username(cls, value: str) -> str:
        value = value.strip().lower()
        if not value:
            raise ValueError("username must not be blank")
        return value

    @field_validator("interests")
    @classmethod
    def strip_interests(cls, value: list[str]) -> list[str]:
        return [item.strip() for item in value if item.strip()]


class ProfileUpdate(BaseModel):
    """Partial update of a profile owned by the caller.

    Omitted keys are left alone. An explicit ``null`` clears ``bio``,
    ``avatar`` and ``interests``; it is rejected for the other keys.
    """

    display_name: str | None = Field(default=None, min_length=1, max_length=100)
    bio: str | None = Field(default=None, max_length=500)
    interests: list[str] | None = None
    is_anonymous: bool | None = None
    avatar: str | None = None
    visibility: VisibilityUpdate | None = None

    @field_validator("bio", "avatar", mode="before")
    @classmethod
    def clear_text(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("interests", mode="before")
    @classmethod
    def clear_interests(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("interests")
    @classmethod
    def strip_interests(cls, value: list[str]) -> list[str]:
        return [item.strip() for item in value if item.strip()]

    @field_validator("display_name", "is_anonymous", "visibility")
    @classmethod
    def reject_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("field cannot be null")
        return value


class ProfileView(BaseModel):
    """Redacted profile; only keys the viewer may see are set."""

    id: UUID
    username: str | None = None
    display_name: str | None = None
    bio: str | None = None
    avatar: str | None = None
    interests: list[str] | None = None
    is_anonymous: bool | None = None
    created_at: datetime | None = None
    visibility: dict[str, Any] | None = None


class ProfileViewResponse(BaseModel):
    profile: ProfileView
    relationship_level: Tier


class ProfileSummary(BaseModel):
    id: UUID
    username: str
    display_name: str | None = None
    is_anonymous: bool = False


class MyProfilesResponse(BaseModel):
    profiles: list[ProfileView]
    primary_profile_id: UUID | None = None


class RelationshipResponse(BaseModel):
    relationship: Literal["follower", "close", "none"]


__all__ = [
    "EDGE_TIERS",
    "FieldExposureUpdate",
    "MyProfilesResponse",
    "PolicyField",
    "Profile",
    "ProfileCreate",
    "ProfileSummary",
    "ProfileUpdate",
    "ProfileView",
    "ProfileViewResponse",
    "RelationshipEdge",
    "RelationshipResponse",
    "Tier",
    "VisibilityUpdate",
]
