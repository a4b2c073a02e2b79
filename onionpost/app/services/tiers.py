"""Resolve the relationship tier between a viewer and a profile."""

from __future__ import annotations

from uuid import UUID

from ..schemas.profiles import Profile, Tier


def resolve_tier(target: Profile, viewer_profile_id: UUID | None) -> Tier:
    """Return the viewer's tier with respect to ``target``.

    Anonymous viewers are ``public``; a profile viewing itself is ``owner``.
    Otherwise the tier comes from the edge ``target`` holds for the viewer,
    defaulting to ``public``. A ``blocked`` edge is returned unchanged and is
    disclosed as public by the visibility policy.
    """

    if viewer_profile_id is None:
        return Tier.PUBLIC
    if viewer_profile_id == target.id:
        return Tier.OWNER

    edge = target.edge_to(viewer_profile_id)
    if edge is None:
        return Tier.PUBLIC
    return edge.tier


__all__ = ["resolve_tier"]
