"""Tests for health and monitoring endpoints."""

import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from onionpost.app.repositories import ProfileRepository, UserRepository
from onionpost.app.utils.metrics import NAMESPACE


def query_count(label: str) -> float:
    value = REGISTRY.get_sample_value(
        f"{NAMESPACE}_db_query_duration_seconds_count", {"query": label}
    )
    return value or 0.0


class TestHealth:
    def test_health_check(self, client: TestClient):
        response = client.get("/v1/healthz")

        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_health_check_ignores_bad_token(self, client: TestClient):
        """Health checks are exempt from bearer validation."""
        response = client.get("/v1/healthz", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 200


class TestMetrics:
    def test_metrics_endpoint(self, client: TestClient):
        response = client.get("/metrics")

        # May be disabled or enabled
        assert response.status_code in [200, 404]

        if response.status_code == 200:
            assert "text/plain" in response.headers.get("content-type", "")
            assert len(response.text) > 0

    def test_relationship_changes_are_counted(self, client: TestClient, fake_db, auth_headers):
        viewer = fake_db.add_profile("viewer")
        target = fake_db.add_profile("target")

        client.post(f"/v1/friends/follow/{target.id}", headers=auth_headers(viewer))
        response = client.get("/metrics")

        if response.status_code == 200:
            assert "onionpost_relationship_changes_total" in response.text

    def test_votes_are_counted(self, client: TestClient, fake_db, auth_headers):
        author = fake_db.add_profile("author")
        post = fake_db.add_post(fake_db.add_community("python", author), author)
        before = REGISTRY.get_sample_value(f"{NAMESPACE}_post_votes_total", {"vote": "down"}) or 0

        client.post(
            f"/v1/posts/{post['id']}/vote", json={"vote": "down"}, headers=auth_headers(author)
        )

        after = REGISTRY.get_sample_value(f"{NAMESPACE}_post_votes_total", {"vote": "down"})
        assert after == before + 1


class TestQueryTiming:
    @pytest.mark.asyncio
    async def test_username_lookup_is_timed(self, mock_pg_conn, fake_db):
        fake_db.add_profile("alice")
        before = query_count("profile_find_by_username")

        profile = await ProfileRepository(mock_pg_conn).find_profile_by_username("alice")

        assert profile is not None
        assert query_count("profile_find_by_username") == before + 1

    @pytest.mark.asyncio
    async def test_user_lookups_are_timed(self, mock_pg_conn, fake_db):
        user = fake_db.add_user("alice@example.com")
        before = {label: query_count(label) for label in ("user_fetch_credentials", "user_fetch")}

        await UserRepository.fetch_user_credentials(mock_pg_conn, "alice@example.com")
        await UserRepository.fetch_user(mock_pg_conn, user["id"])

        assert query_count("user_fetch_credentials") == before["user_fetch_credentials"] + 1
        assert query_count("user_fetch") == before["user_fetch"] + 1
