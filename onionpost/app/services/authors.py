"""Render content authors through the onion visibility pipeline."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from ..repositories.profiles import ProfileRepository
from ..schemas.profiles import ProfileView
from .tiers import resolve_tier
from .visibility import VisibilityPolicy


class AuthorRenderer:
    """Redacts author profiles for one viewer.

    Each author is shown at the viewer's tier on that author's profile, exactly
    as ``GET /profiles/{id}`` would show it. An author whose profile no longer
    exists is reduced to its id.
    """

    def __init__(self, repo: ProfileRepository, policy: VisibilityPolicy) -> None:
        self._repo = repo
        self._policy = policy

    async def render(
        self,
        author_ids: Iterable[UUID],
        viewer_profile_id: UUID | None,
    ) -> dict[UUID, ProfileView]:
        ids = list(dict.fromkeys(author_ids))
        profiles = await self._repo.get_profiles(ids)
        views: dict[UUID, ProfileView] = {}
        for author_id in ids:
            profile = profiles.get(author_id)
            if profile is None:
                views[author_id] = ProfileView(id=author_id)
                continue
            views[author_id] = self._policy.view(profile, resolve_tier(profile, viewer_profile_id))
        return views


__all__ = ["AuthorRenderer"]
