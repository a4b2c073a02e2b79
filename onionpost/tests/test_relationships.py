"""Tests for follow / close-friend transitions and their persistence."""

from __future__ import annotations

import random
from uuid import uuid4

import pytest

from onionpost.app.exceptions import InvalidTarget, NotFound
from onionpost.app.schemas.profiles import Profile, Tier
from onionpost.app.services.relationships import (
    NO_RELATIONSHIP,
    RelationshipService,
    apply_add_close_friend,
    apply_follow,
    apply_remove_close_friend,
    apply_unfollow,
)


def blank_profile() -> Profile:
    return Profile(id=uuid4(), owner_user_id=uuid4(), username="viewer")


def tiers_for(profile: Profile, peer) -> list[Tier]:
    return [edge.tier for edge in profile.relationships if edge.peer_profile_id == peer]


class TestTransitions:
    def test_follow_inserts_follower_edge(self):
        viewer, target = blank_profile(), uuid4()
        updated, result = apply_follow(viewer, target)

        assert result == "follower"
        assert tiers_for(updated, target) == [Tier.FOLLOWER]
        assert viewer.relationships == []

    def test_follow_downgrades_close(self):
        viewer, target = blank_profile(), uuid4()
        viewer, _ = apply_add_close_friend(viewer, target)
        viewer, result = apply_follow(viewer, target)

        assert result == "follower"
        assert tiers_for(viewer, target) == [Tier.FOLLOWER]

    def test_follow_then_close_gives_single_close_edge(self):
        viewer, target = blank_profile(), uuid4()
        viewer, _ = apply_follow(viewer, target)
        viewer, result = apply_add_close_friend(viewer, target)

        assert result == "close"
        assert tiers_for(viewer, target) == [Tier.CLOSE]

    def test_close_then_unclose_downgrades_to_follower(self):
        viewer, target = blank_profile(), uuid4()
        viewer, _ = apply_add_close_friend(viewer, target)
        viewer, result = apply_remove_close_friend(viewer, target)

        assert result == "follower"
        assert tiers_for(viewer, target) == [Tier.FOLLOWER]

    def test_follow_then_unclose_deletes_edge(self):
        viewer, target = blank_profile(), uuid4()
        viewer, _ = apply_follow(viewer, target)
        viewer, result = apply_remove_close_friend(viewer, target)

        assert result == NO_RELATIONSHIP
        assert tiers_for(viewer, target) == []

    def test_unclose_without_edge_is_not_found(self):
        with pytest.raises(NotFound):
            apply_remove_close_friend(blank_profile(), uuid4())

    def test_unfollow_is_idempotent(self):
        viewer, target = blank_profile(), uuid4()
        viewer, _ = apply_follow(viewer, uuid4())
        once, _ = apply_unfollow(viewer, target)
        twice, _ = apply_unfollow(once, target)

        assert once.relationships == viewer.relationships
        assert twice.relationships == viewer.relationships

    def test_unfollow_removes_any_tier(self):
        viewer, target = blank_profile(), uuid4()
        viewer, _ = apply_add_close_friend(viewer, target)
        viewer, _ = apply_unfollow(viewer, target)
        assert tiers_for(viewer, target) == []

    @pytest.mark.parametrize("operation", [apply_follow, apply_add_close_friend])
    def test_self_target_rejected(self, operation):
        viewer = blank_profile()
        with pytest.raises(InvalidTarget):
            operation(viewer, viewer.id)

    def test_other_edges_keep_their_order(self):
        viewer = blank_profile()
        first, second, third = uuid4(), uuid4(), uuid4()
        for peer in (first, second, third):
            viewer, _ = apply_follow(viewer, peer)
        viewer, _ = apply_add_close_friend(viewer, second)

        assert [edge.peer_profile_id for edge in viewer.relationships] == [first, second, third]

    def test_random_sequences_keep_one_edge_per_peer(self):
        rng = random.Random(99)
        operations = [apply_follow, apply_unfollow, apply_add_close_friend, apply_remove_close_friend]
        peers = [uuid4() for _ in range(3)]
        viewer = blank_profile()
        for _ in range(300):
            operation = rng.choice(operations)
            try:
                viewer, _ = operation(viewer, rng.choice(peers))
            except NotFound:
                continue
            seen = [edge.peer_profile_id for edge in viewer.relationships]
            assert len(seen) == len(set(seen))


class TestRelationshipService:
    @pytest.mark.asyncio
    async def test_follow_persists_on_viewer_row_only(self, mock_pg_conn, fake_db):
        viewer = fake_db.add_profile("viewer")
        target = fake_db.add_profile("target")

        result = await RelationshipService(mock_pg_conn).follow(viewer.id, target.id)

        assert result == "follower"
        assert fake_db.edges(viewer.id) == [(target.id, "follower")]
        assert fake_db.edges(target.id) == []
        assert fake_db.locked == [viewer.id]

    @pytest.mark.asyncio
    async def test_follow_unknown_target(self, mock_pg_conn, fake_db):
        viewer = fake_db.add_profile("viewer")
        with pytest.raises(NotFound):
            await RelationshipService(mock_pg_conn).follow(viewer.id, uuid4())
        assert fake_db.edges(viewer.id) == []

    @pytest.mark.asyncio
    async def test_unknown_viewer(self, mock_pg_conn, fake_db):
        target = fake_db.add_profile("target")
        with pytest.raises(NotFound):
            await RelationshipService(mock_pg_conn).add_close_friend(uuid4(), target.id)

    @pytest.mark.asyncio
    async def test_self_follow_rejected_before_database(self, mock_pg_conn, fake_db):
        viewer = fake_db.add_profile("viewer")
        with pytest.raises(InvalidTarget):
            await RelationshipService(mock_pg_conn).follow(viewer.id, viewer.id)
        mock_pg_conn.fetchrow.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unfollow_without_edge_writes_nothing(self, mock_pg_conn, fake_db):
        viewer = fake_db.add_profile("viewer")
        result = await RelationshipService(mock_pg_conn).unfollow(viewer.id, uuid4())

        assert result == NO_RELATIONSHIP
        saved = [
            call
            for call in mock_pg_conn.fetchrow.await_args_list
            if "ON CONFLICT" in str(call.args[0])
        ]
        assert saved == []

    @pytest.mark.asyncio
    async def test_close_then_unclose_round(self, mock_pg_conn, fake_db):
        viewer = fake_db.add_profile("viewer")
        target = fake_db.add_profile("target")
        service = RelationshipService(mock_pg_conn)

        assert await service.add_close_friend(viewer.id, target.id) == "close"
        assert fake_db.edges(viewer.id) == [(target.id, "close")]
        assert await service.remove_close_friend(viewer.id, target.id) == "follower"
        assert fake_db.edges(viewer.id) == [(target.id, "follower")]
        assert await service.remove_close_friend(viewer.id, target.id) == NO_RELATIONSHIP
        assert fake_db.edges(viewer.id) == []
        with pytest.raises(NotFound):
            await service.remove_close_friend(viewer.id, target.id)

    @pytest.mark.asyncio
    async def test_unrecognised_edges_survive_a_transition(self, mock_pg_conn, fake_db):
        muted = uuid4()
        viewer = fake_db.add_profile(
            "viewer",
            relationships=[{"peer_profile_id": str(muted), "tier": "muted"}],
        )
        target = fake_db.add_profile("target")

        await RelationshipService(mock_pg_conn).follow(viewer.id, target.id)

        assert fake_db.edges(viewer.id) == [(target.id, "follower"), (muted, "muted")]

    @pytest.mark.asyncio
    async def test_transition_replaces_unrecognised_edge_to_same_peer(self, mock_pg_conn, fake_db):
        target = fake_db.add_profile("target")
        viewer = fake_db.add_profile(
            "viewer",
            relationships=[{"peer_profile_id": str(target.id), "tier": "muted"}],
        )

        result = await RelationshipService(mock_pg_conn).follow(viewer.id, target.id)

        assert result == "follower"
        assert fake_db.edges(viewer.id) == [(target.id, "follower")]

    @pytest.mark.asyncio
    async def test_unfollow_removes_unrecognised_edge(self, mock_pg_conn, fake_db):
        target = fake_db.add_profile("target")
        viewer = fake_db.add_profile(
            "viewer",
            relationships=[{"peer_profile_id": str(target.id), "tier": "muted"}],
        )

        result = await RelationshipService(mock_pg_conn).unfollow(viewer.id, target.id)

        assert result == NO_RELATIONSHIP
        assert fake_db.edges(viewer.id) == []
