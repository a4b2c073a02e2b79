"""Service layer for reading and editing profiles.

Reads go through the onion visibility pipeline: resolve the viewer's tier
against the target profile, then let :class:`VisibilityPolicy` redact the
record for that tier.
"""

from __future__ import annotations

from uuid import UUID

import asyncpg

from ..exceptions import Conflict, Forbidden, NotFound
from ..repositories.profiles import ProfileRepository
from ..schemas.profiles import (
    Profile,
    ProfileCreate,
    ProfileUpdate,
    ProfileView,
    ProfileViewResponse,
)
from ..utils.logging import get_logger
from .tiers import resolve_tier
from .visibility import VisibilityPolicy

logger = get_logger(__name__)


class ProfileService:
    """Coordinates profile persistence and visibility filtering.

    Parameters:
        conn: Request-scoped :class:`asyncpg.Connection`.
        policy: Visibility policy carrying the configured default exposure.
    """

    def __init__(self, conn: asyncpg.Connection, policy: VisibilityPolicy) -> None:
        self._conn = conn
        self._repo = ProfileRepository(conn)
        self._policy = policy

    async def get_profile(self, profile_id: UUID) -> Profile:
        profile = await self._repo.get_profile(profile_id)
        if profile is None:
            raise NotFound("Profile not found")
        return profile

    async def get_profile_view(
        self,
        target_id: UUID,
        viewer_profile_id: UUID | None,
    ) -> ProfileViewResponse:
        """Return ``target_id`` as seen by ``viewer_profile_id`` (``None`` = anonymous)."""

        target = await self.get_profile(target_id)
        tier = resolve_tier(target, viewer_profile_id)
        view = self._policy.view(target, tier)
        return ProfileViewResponse(profile=view, relationship_level=tier)

    def owner_view(self, profile: Profile) -> ProfileView:
        return self._policy.owner_view(profile)

    async def create_profile(self, owner_user_id: UUID, payload: ProfileCreate) -> Profile:
        """Create a persona; the configured default policy applies when none is given."""

        if await self._repo.find_profile_by_username(payload.username) is not None:
            raise Conflict("Username already taken")

        visibility = self._policy.default_document()
        if payload.visibility is not None:
            visibility = self._policy.merge(visibility, payload.visibility.sections())

        try:
            profile = await self._repo.insert_profile(
                owner_user_id=owner_user_id,
                username=payload.username,
                display_name=payload.display_name,
                bio=payload.bio,
                interests=payload.interests,
                is_anonymous=payload.is_anonymous,
                visibility=visibility,
            )
        except asyncpg.UniqueViolationError as exc:
            raise Conflict("Username already taken") from exc

        logger.info(
            "profile_created",
            extra={"profile_id": str(profile.id), "owner_user_id": str(owner_user_id)},
        )
        return profile

    async def update_profile(
        self,
        owner_user_id: UUID,
        profile_id: UUID,
        payload: ProfileUpdate,
    ) -> Profile:
        """Apply field and policy edits to a profile owned by ``owner_user_id``."""

        async with self._conn.transaction():
            profile = await self._repo.get_profile_for_update(profile_id)
            if profile is None:
                raise NotFound("Profile not found")
            if profile.owner_user_id != owner_user_id:
                raise Forbidden("Not allowed to modify this profile")

            changes = payload.model_dump(exclude_unset=True, exclude={"avatar", "visibility"})
            if "avatar" in payload.model_fields_set:
                changes["avatar_ref"] = payload.avatar
            if payload.visibility is not None:
                changes["visibility"] = self._policy.merge(
                    profile.visibility, payload.visibility.sections()
                )

            saved = await self._repo.save_profile(profile.model_copy(update=changes))

        logger.info(
            "profile_updated",
            extra={"profile_id": str(profile_id), "fields": sorted(changes)},
        )
        return saved

    async def list_profiles(self, user_id: UUID) -> list[Profile]:
        return await self._repo.list_profiles_for_user(user_id)

    async def get_owned_profile(self, user_id: UUID, profile_id: UUID) -> Profile:
        profile = await self.get_profile(profile_id)
        if profile.owner_user_id != user_id:
            raise Forbidden("Profile does not belong to the current user")
        return profile


__all__ = ["ProfileService"]
