"""Follow / close-friend transitions on a profile's outbound edges.

The ``apply_*`` functions are pure: they take the acting (viewer) profile and
return an updated copy together with the resulting relationship name. The
:class:`RelationshipService` wraps them in a transaction that row-locks the
viewer's profile, so concurrent edits to one edge list never interleave.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

import asyncpg

from ..exceptions import InvalidTarget, NotFound
from ..repositories.profiles import ProfileRepository
from ..schemas.profiles import Profile, RelationshipEdge, Tier
from ..utils.logging import get_logger
from ..utils.metrics import observe_relationship_change

logger = get_logger(__name__)

NO_RELATIONSHIP = "none"


def _reject_self(viewer_id: UUID, target_id: UUID, action: str) -> None:
    if viewer_id == target_id:
        raise InvalidTarget(f"You cannot {action} yourself")


def _opaque_peer(item: Any) -> UUID | None:
    if not isinstance(item, dict):
        return None
    try:
        return UUID(str(item.get("peer_profile_id")))
    except ValueError:
        return None


def _opaque_without(viewer: Profile, target_id: UUID) -> list[Any]:
    return [item for item in viewer.opaque_relationships if _opaque_peer(item) != target_id]


def _holds_edge(viewer: Profile, target_id: UUID) -> bool:
    if viewer.edge_to(target_id) is not None:
        return True
    return any(_opaque_peer(item) == target_id for item in viewer.opaque_relationships)


def _with_tier(viewer: Profile, target_id: UUID, tier: Tier) -> Profile:
    edges: list[RelationshipEdge] = []
    found = False
    for edge in viewer.relationships:
        if edge.peer_profile_id == target_id:
            if not found:
                edges.append(RelationshipEdge(peer_profile_id=target_id, tier=tier))
                found = True
            continue
        edges.append(edge)
    if not found:
        edges.append(RelationshipEdge(peer_profile_id=target_id, tier=tier))
    return viewer.model_copy(
        update={"relationships": edges, "opaque_relationships": _opaque_without(viewer, target_id)}
    )


def _without_edge(viewer: Profile, target_id: UUID) -> Profile:
    edges = [edge for edge in viewer.relationships if edge.peer_profile_id != target_id]
    return viewer.model_copy(
        update={"relationships": edges, "opaque_relationships": _opaque_without(viewer, target_id)}
    )


def apply_follow(viewer: Profile, target_id: UUID) -> tuple[Profile, str]:
    """Set the edge to ``follower``; an existing close edge is downgraded."""

    _reject_self(viewer.id, target_id, "follow")
    return _with_tier(viewer, target_id, Tier.FOLLOWER), Tier.FOLLOWER.value


def apply_unfollow(viewer: Profile, target_id: UUID) -> tuple[Profile, str]:
    """Drop any edge to ``target_id``. Absent edges are not an error."""

    return _without_edge(viewer, target_id), NO_RELATIONSHIP


def apply_add_close_friend(viewer: Profile, target_id: UUID) -> tuple[Profile, str]:
    _reject_self(viewer.id, target_id, "add as close friend")
    return _with_tier(viewer, target_id, Tier.CLOSE), Tier.CLOSE.value


def apply_remove_close_friend(viewer: Profile, target_id: UUID) -> tuple[Profile, str]:
    """Downgrade a close edge to follower; delete an edge of any other tier."""

    edge = viewer.edge_to(target_id)
    if edge is None:
        raise NotFound("Profile not in friends list")
    if edge.tier is Tier.CLOSE:
        return _with_tier(viewer, target_id, Tier.FOLLOWER), Tier.FOLLOWER.value
    return _without_edge(viewer, target_id), NO_RELATIONSHIP


class RelationshipService:
    """Persists relationship transitions for the acting profile.

    Parameters:
        conn: Request-scoped :class:`asyncpg.Connection`; each operation runs
            in its own transaction on it.
    """

    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn
        self._repo = ProfileRepository(conn)

    async def follow(self, viewer_id: UUID, target_id: UUID) -> str:
        _reject_self(viewer_id, target_id, "follow")
        async with self._conn.transaction():
            viewer = await self._lock_viewer(viewer_id)
            await self._require_target(target_id)
            updated, result = apply_follow(viewer, target_id)
            await self._repo.save_profile(updated)
        self._record("follow", viewer_id, target_id, result)
        return result

    async def unfollow(self, viewer_id: UUID, target_id: UUID) -> str:
        async with self._conn.transaction():
            viewer = await self._lock_viewer(viewer_id)
            if not _holds_edge(viewer, target_id):
                return NO_RELATIONSHIP
            updated, result = apply_unfollow(viewer, target_id)
            await self._repo.save_profile(updated)
        self._record("unfollow", viewer_id, target_id, result)
        return result

    async def add_close_friend(self, viewer_id: UUID, target_id: UUID) -> str:
        _reject_self(viewer_id, target_id, "add as close friend")
        async with self._conn.transaction():
            viewer = await self._lock_viewer(viewer_id)
            await self._require_target(target_id)
            updated, result = apply_add_close_friend(viewer, target_id)
            await self._repo.save_profile(updated)
        self._record("add_close_friend", viewer_id, target_id, result)
        return result

    async def remove_close_friend(self, viewer_id: UUID, target_id: UUID) -> str:
        async with self._conn.transaction():
            viewer = await self._lock_viewer(viewer_id)
            updated, result = apply_remove_close_friend(viewer, target_id)
            await self._repo.save_profile(updated)
        self._record("remove_close_friend", viewer_id, target_id, result)
        return result

    async def _lock_viewer(self, viewer_id: UUID) -> Profile:
        viewer = await self._repo.get_profile_for_update(viewer_id)
        if viewer is None:
            raise NotFound("Viewer profile not found")
        return viewer

    async def _require_target(self, target_id: UUID) -> None:
        if await self._repo.get_profile(target_id) is None:
            raise NotFound("Target profile not found")

    @staticmethod
    def _record(operation: str, viewer_id: UUID, target_id: UUID, result: str) -> None:
        observe_relationship_change(operation, result)
        logger.info(
            "relationship_changed",
            extra={
                "operation": operation,
                "viewer_profile_id": str(viewer_id),
                "target_profile_id": str(target_id),
                "relationship": result,
            },
        )


__all__ = [
    "NO_RELATIONSHIP",
    "RelationshipService",
    "apply_add_close_friend",
    "apply_follow",
    "apply_remove_close_friend",
    "apply_unfollow",
]
