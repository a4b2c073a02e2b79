"""Onion visibility: tier-scoped field exposure for profile views.

Each profile stores one exposure list per tier section (``public``,
``follower``, ``close_friend``). A viewer at a given tier sees the union of
their own section and every section below it in ``TIER_ORDER``, so trust can
only ever add fields. The owner sees every field plus the policy document.

Everything here is total: malformed policy data narrows disclosure instead of
raising.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from ..exceptions import PolicyDegraded
from ..schemas.profiles import Profile, ProfileView, Tier
from ..utils.logging import get_logger

logger = get_logger(__name__)

TIER_ORDER: tuple[Tier, ...] = (Tier.PUBLIC, Tier.FOLLOWER, Tier.CLOSE)

TIER_SECTIONS: dict[Tier, str] = {
    Tier.PUBLIC: "public",
    Tier.FOLLOWER: "follower",
    Tier.CLOSE: "close_friend",
}

# Exposed name -> Profile attribute. Nothing outside this table is ever copied.
EXPOSABLE_FIELDS: dict[str, str] = {
    "username": "username",
    "display_name": "display_name",
    "bio": "bio",
    "avatar": "avatar_ref",
    "interests": "interests",
    "is_anonymous": "is_anonymous",
    "created_at": "created_at",
}


def _coerce_tier(tier: Tier | str | None) -> Tier:
    if isinstance(tier, Tier):
        return tier
    try:
        return Tier(tier)
    except ValueError:
        return Tier.PUBLIC


def _section_fields(visibility: Any, section: str) -> list[str]:
    """Return the exposure list of one section, raising on malformed data."""

    if not isinstance(visibility, Mapping):
        raise PolicyDegraded("visibility document is not a mapping")
    body = visibility.get(section)
    if body is None:
        return []
    if not isinstance(body, Mapping):
        raise PolicyDegraded(f"section {section!r} is not a mapping")
    fields = body.get("fields")
    if fields is None:
        return []
    if isinstance(fields, str) or not isinstance(fields, Iterable):
        raise PolicyDegraded(f"section {section!r} has no field list")
    return [item for item in fields if isinstance(item, str)]


class VisibilityPolicy:
    """Computes the redacted view of a profile for a resolved tier.

    Parameters:
        defaults: Per-section exposure lists applied to profiles created
            without an explicit policy, e.g. ``{"public": ["username"]}``.
    """

    def __init__(self, defaults: Mapping[str, Iterable[str]] | None = None) -> None:
        defaults = defaults or {}
        self._defaults = {
            section: list(defaults.get(section, [])) for section in TIER_SECTIONS.values()
        }

    def default_document(self) -> dict[str, dict[str, list[str]]]:
        """Policy document for a newly created profile."""

        return {section: {"fields": list(fields)} for section, fields in self._defaults.items()}

    def merge(
        self,
        stored: Any,
        updates: Mapping[str, Mapping[str, list[str]]],
    ) -> dict[str, dict[str, list[str]]]:
        """Replace the sections named in ``updates`` and keep the rest."""

        merged: dict[str, dict[str, list[str]]] = {}
        for section in TIER_SECTIONS.values():
            if section in updates:
                merged[section] = {"fields": list(updates[section].get("fields", []))}
                continue
            try:
                merged[section] = {"fields": _section_fields(stored, section)}
            except PolicyDegraded:
                merged[section] = {"fields": []}
        return merged

    def allowed_fields(self, visibility: Any, tier: Tier | str | None) -> frozenset[str]:
        """Cumulative set of field names a viewer at ``tier`` may see.

        Unknown tiers (including ``blocked``) get the public set. A malformed
        section contributes nothing.
        """

        tier = _coerce_tier(tier)
        if tier is Tier.OWNER:
            return frozenset(EXPOSABLE_FIELDS)
        if tier not in TIER_SECTIONS:
            tier = Tier.PUBLIC

        allowed: set[str] = set()
        for layer in TIER_ORDER[: TIER_ORDER.index(tier) + 1]:
            section = TIER_SECTIONS[layer]
            try:
                allowed.update(_section_fields(visibility, section))
            except PolicyDegraded as exc:
                logger.warning(
                    "visibility_policy_degraded",
                    extra={"section": section, "reason": str(exc)},
                )
        return frozenset(allowed)

    def project(self, profile: Profile, allowed: Iterable[str]) -> ProfileView:
        """Copy ``id`` plus the whitelisted fields named in ``allowed``."""

        return ProfileView(**self._copy_fields(profile, allowed))

    def owner_view(self, profile: Profile) -> ProfileView:
        data = self._copy_fields(profile, EXPOSABLE_FIELDS)
        data["visibility"] = profile.visibility
        return ProfileView(**data)

    @staticmethod
    def _copy_fields(profile: Profile, names: Iterable[str]) -> dict[str, Any]:
        data: dict[str, Any] = {"id": profile.id}
        for name in names:
            attribute = EXPOSABLE_FIELDS.get(name)
            if attribute is None:
                continue
            data[name] = getattr(profile, attribute)
        return data

    def view(self, profile: Profile, tier: Tier | str | None) -> ProfileView:
        """Redacted profile as seen from ``tier``."""

        if _coerce_tier(tier) is Tier.OWNER:
            return self.owner_view(profile)

        allowed = self.allowed_fields(profile.visibility, tier)
        logger.debug(
            "visibility_resolved",
            extra={
                "profile_id": str(profile.id),
                "tier": str(getattr(tier, "value", tier)),
                "fields": sorted(allowed),
            },
        )
        return self.project(profile, allowed)


__all__ = ["EXPOSABLE_FIELDS", "TIER_ORDER", "TIER_SECTIONS", "VisibilityPolicy"]
