"""Repository helpers for profile records.

A profile row carries its outbound relationship edges as a jsonb array, so a
profile and its edges are always read and written as one record.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from uuid import UUID

import asyncpg
from pydantic import ValidationError

from ..schemas.profiles import Profile, RelationshipEdge
from ..utils.logging import get_logger
from ..utils.metrics import QueryTimer

logger = get_logger(__name__)

PROFILE_COLUMNS = """
    id,
    owner_user_id,
    username,
    display_name,
    bio,
    avatar_ref,
    interests,
    is_anonymous,
    visibility,
    relationships,
    created_at,
    updated_at
"""


class ProfileRepository:
    """Encapsulates SQL operations on the ``profile`` table.

    Parameters:
        conn: An active :class:`asyncpg.Connection` used to execute SQL
            statements.
    """

    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn

    async def get_profile(self, profile_id: UUID) -> Profile | None:
        with QueryTimer("profile_get"):
            row = await self._conn.fetchrow(
                f"SELECT {PROFILE_COLUMNS} FROM profile WHERE id = $1",
                profile_id,
            )
        return self._row_to_profile(row) if row else None

    async def get_profile_for_update(self, profile_id: UUID) -> Profile | None:
        """Fetch a profile and hold its row lock until the transaction ends."""

        with QueryTimer("profile_get_for_update"):
            row = await self._conn.fetchrow(
                f"SELECT {PROFILE_COLUMNS} FROM profile WHERE id = $1 FOR UPDATE",
                profile_id,
            )
        return self._row_to_profile(row) if row else None

    async def find_profile_by_username(self, username: str) -> Profile | None:
        with QueryTimer("profile_find_by_username"):
            row = await self._conn.fetchrow(
                f"SELECT {PROFILE_COLUMNS} FROM profile WHERE username = $1",
                username.strip().lower(),
            )
        return self._row_to_profile(row) if row else None

    async def list_profiles_for_user(self, user_id: UUID) -> list[Profile]:
        with QueryTimer("profile_list_for_user"):
            rows = await self._conn.fetch(
                f"""
                SELECT {PROFILE_COLUMNS}
                FROM profile
                WHERE owner_user_id = $1
                ORDER BY created_at ASC
                """,
                user_id,
            )
        return [self._row_to_profile(row) for row in rows]

    async def get_profiles(self, profile_ids: Iterable[UUID]) -> dict[UUID, Profile]:
        """Fetch several profiles at once, keyed by id. Missing ids are absent."""

        ids = list(dict.fromkeys(profile_ids))
        if not ids:
            return {}
        with QueryTimer("profile_get_many"):
            rows = await self._conn.fetch(
                f"SELECT {PROFILE_COLUMNS} FROM profile WHERE id = ANY($1::uuid[])",
                ids,
            )
        profiles = (self._row_to_profile(row) for row in rows)
        return {profile.id: profile for profile in profiles}

    async def insert_profile(
        self,
        *,
        owner_user_id: UUID,
        username: str,
        display_name: str | None,
        bio: str = "",
        interests: Iterable[str] = (),
        is_anonymous: bool = False,
        visibility: dict[str, Any],
    ) -> Profile:
        """Insert a new profile with no relationship edges.

        Raises:
            asyncpg.UniqueViolationError: If the username is already taken.
        """

        with QueryTimer("profile_insert"):
            row = await self._conn.fetchrow(
                f"""
                INSERT INTO profile (
                    owner_user_id,
                    username,
                    display_name,
                    bio,
                    interests,
                    is_anonymous,
                    visibility,
                    relationships
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, '[]'::jsonb)
                RETURNING {PROFILE_COLUMNS}
                """,
                owner_user_id,
                username,
                display_name,
                bio,
                list(interests),
                is_anonymous,
                visibility,
            )
        return self._row_to_profile(row)

    async def save_profile(self, profile: Profile) -> Profile:
        """Upsert the whole record, edge list included."""

        relationships = [edge.model_dump(mode="json") for edge in profile.relationships]
        relationships.extend(profile.opaque_relationships)
        with QueryTimer("profile_save"):
            row = await self._conn.fetchrow(
                f"""
                INSERT INTO profile (
                    id,
                    owner_user_id,
                    username,
                    display_name,
                    bio,
                    avatar_ref,
                    interests,
                    is_anonymous,
                    visibility,
                    relationships
                ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                ON CONFLICT (id) DO UPDATE SET
                    display_name = EXCLUDED.display_name,
                    bio = EXCLUDED.bio,
                    avatar_ref = EXCLUDED.avatar_ref,
                    interests = EXCLUDED.interests,
                    is_anonymous = EXCLUDED.is_anonymous,
                    visibility = EXCLUDED.visibility,
                    relationships = EXCLUDED.relationships,
                    updated_at = now()
                RETURNING {PROFILE_COLUMNS}
                """,
                profile.id,
                profile.owner_user_id,
                profile.username,
                profile.display_name,
                profile.bio,
                profile.avatar_ref,
                list(profile.interests),
                profile.is_anonymous,
                profile.visibility,
                relationships,
            )
        return self._row_to_profile(row)

    @staticmethod
    def _row_to_profile(row: asyncpg.Record) -> Profile:
        visibility = row.get("visibility")
        edges, opaque = _parse_edges(row["id"], row.get("relationships"))
        return Profile(
            id=row["id"],
            owner_user_id=row["owner_user_id"],
            username=row["username"],
            display_name=row.get("display_name"),
            bio=row.get("bio"),
            avatar_ref=row.get("avatar_ref") or "",
            interests=list(row.get("interests") or []),
            is_anonymous=bool(row.get("is_anonymous")),
            visibility=visibility if isinstance(visibility, dict) else {},
            relationships=edges,
            opaque_relationships=opaque,
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


def _parse_edges(profile_id: UUID, raw: Any) -> tuple[list[RelationshipEdge], list[Any]]:
    """Split stored edges into valid edges and ones kept as opaque values.

    Repeated peers and self-edges are dropped. Edges that do not validate
    (for example an unknown tier) are returned untouched so a later save
    writes them back instead of erasing them.
    """

    edges: list[RelationshipEdge] = []
    opaque: list[Any] = []
    seen: set[UUID] = set()
    for item in raw or []:
        try:
            edge = RelationshipEdge.model_validate(item)
        except ValidationError as exc:
            logger.warning(
                "relationship_edge_unrecognised",
                extra={"profile_id": str(profile_id), "error": str(exc)},
            )
            opaque.append(item)
            continue
        if edge.peer_profile_id in seen or edge.peer_profile_id == profile_id:
            continue
        seen.add(edge.peer_profile_id)
        edges.append(edge)
    return edges, opaque


__all__ = ["ProfileRepository"]
