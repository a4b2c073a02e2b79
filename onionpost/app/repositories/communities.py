"""Community repository providing PostgreSQL data access helpers."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

import asyncpg

from ..schemas.content import Community
from ..utils.metrics import QueryTimer

COMMUNITY_COLUMNS = "id, name, description, creator_profile_id, members, created_at"


class CommunityRepository:
    """Repository encapsulating SQL operations for the ``community`` table."""

    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn

    async def create_community(
        self,
        *,
        name: str,
        description: str,
        creator_profile_id: UUID,
    ) -> Community:
        """Insert a community whose only member is its creator.

        Raises:
            asyncpg.UniqueViolationError: If the name is already taken.
        """

        with QueryTimer("community_insert"):
            row = await self._conn.fetchrow(
                f"""
                INSERT INTO community (name, description, creator_profile_id, members)
                VALUES ($1, $2, $3, $4)
                RETURNING {COMMUNITY_COLUMNS}
                """,
                name,
                description,
                creator_profile_id,
                [creator_profile_id],
            )
        return self._row_to_community(row)

    async def get_community(self, community_id: UUID) -> Community | None:
        with QueryTimer("community_get"):
            row = await self._conn.fetchrow(
                f"SELECT {COMMUNITY_COLUMNS} FROM community WHERE id = $1",
                community_id,
            )
        return self._row_to_community(row) if row else None

    async def find_community_by_name(self, name: str) -> Community | None:
        with QueryTimer("community_find_by_name"):
            row = await self._conn.fetchrow(
                f"SELECT {COMMUNITY_COLUMNS} FROM community WHERE name = $1",
                name,
            )
        return self._row_to_community(row) if row else None

    async def get_communities(self, community_ids: Iterable[UUID]) -> dict[UUID, Community]:
        ids = list(dict.fromkeys(community_ids))
        if not ids:
            return {}
        with QueryTimer("community_get_many"):
            rows = await self._conn.fetch(
                f"SELECT {COMMUNITY_COLUMNS} FROM community WHERE id = ANY($1::uuid[])",
                ids,
            )
        communities = (self._row_to_community(row) for row in rows)
        return {community.id: community for community in communities}

    async def list_communities(self) -> list[Community]:
        with QueryTimer("community_list"):
            rows = await self._conn.fetch(
                f"SELECT {COMMUNITY_COLUMNS} FROM community ORDER BY created_at ASC"
            )
        return [self._row_to_community(row) for row in rows]

    @staticmethod
    def _row_to_community(row: asyncpg.Record) -> Community:
        return Community(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            creator_profile_id=row["creator_profile_id"],
            members=list(row.get("members") or []),
            created_at=row.get("created_at"),
        )


__all__ = ["CommunityRepository"]
