"""
Pytest configuration and shared fixtures for the OnionPost API tests.

Provides:
- FastAPI TestClient / httpx AsyncClient with the database dependency mocked
- An in-memory stand-in for the ``app_user``, ``profile``, ``community``,
  ``post`` and ``comment`` tables, wired
  into an ``AsyncMock`` asyncpg connection through SQL-matching side effects
- Profile factories and bearer-token helpers
"""

import copy
import logging
import os
from collections.abc import AsyncGenerator, Generator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

# Must be set before the app (and its settings) are imported
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from onionpost.app.db.postgres_async import get_pg  # noqa: E402
from onionpost.app.main import app  # noqa: E402
from onionpost.app.repositories.profiles import ProfileRepository  # noqa: E402
from onionpost.app.schemas.profiles import Profile  # noqa: E402
from onionpost.app.services.sessions import issue_session  # noqa: E402

# ============================================================================
# Logging Configuration for Tests
# ============================================================================


def setup_test_logging():
    logger = logging.getLogger("tests")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logger.addHandler(console_handler)

    logging.getLogger("onionpost").setLevel(logging.WARNING)
    return logger


test_logger = setup_test_logging()


def pytest_runtest_setup(item):
    test_logger.debug(f"Setting up test: {item.nodeid}")


# ============================================================================
# In-memory tables
# ============================================================================


def _now() -> datetime:
    return datetime.now(UTC)


class FakeDatabase:
    """Rows for every table, keyed by id."""

    def __init__(self) -> None:
        self.users: dict[UUID, dict[str, Any]] = {}
        self.profiles: dict[UUID, dict[str, Any]] = {}
        self.communities: dict[UUID, dict[str, Any]] = {}
        self.posts: dict[UUID, dict[str, Any]] = {}
        self.comments: dict[UUID, dict[str, Any]] = {}
        self.locked: list[UUID] = []

    # -- seeding ------------------------------------------------------------

    def add_user(self, email: str = "user@example.com", password_hash: str = "x") -> dict:
        row = {
            "id": uuid4(),
            "email": email,
            "password_hash": password_hash,
            "primary_profile_id": None,
            "created_at": _now(),
            "updated_at": _now(),
        }
        self.users[row["id"]] = row
        return row

    def add_profile(
        self,
        username: str,
        *,
        owner_user_id: UUID | None = None,
        visibility: Any = None,
        relationships: list[dict] | None = None,
        **fields: Any,
    ) -> Profile:
        row = {
            "id": uuid4(),
            "owner_user_id": owner_user_id or uuid4(),
            "username": username,
            "display_name": fields.get("display_name", username.title()),
            "bio": fields.get("bio", f"{username} bio"),
            "avatar_ref": fields.get("avatar_ref", f"https://cdn.example.com/{username}.png"),
            "interests": fields.get("interests", ["hiking", "chess"]),
            "is_anonymous": fields.get("is_anonymous", False),
            "visibility": visibility
            if visibility is not None
            else {
                "public": {"fields": ["username", "avatar"]},
                "follower": {"fields": ["bio"]},
                "close_friend": {"fields": ["interests"]},
            },
            "relationships": relationships or [],
            "created_at": _now(),
            "updated_at": _now(),
        }
        self.profiles[row["id"]] = row
        return self.profile(row["id"])

    def profile(self, profile_id: UUID) -> Profile:
        return ProfileRepository._row_to_profile(copy.deepcopy(self.profiles[profile_id]))

    def edges(self, profile_id: UUID) -> list[tuple[UUID, str]]:
        return [
            (UUID(str(edge["peer_profile_id"])), edge["tier"])
            for edge in self.profiles[profile_id]["relationships"]
        ]

    def add_community(
        self,
        name: str,
        creator: Profile,
        description: str = "A place to talk",
    ) -> dict:
        row = {
            "id": uuid4(),
            "name": name,
            "description": description,
            "creator_profile_id": creator.id,
            "members": [creator.id],
            "created_at": _now(),
        }
        self.communities[row["id"]] = row
        return row

    def add_post(
        self,
        community: dict,
        author: Profile,
        title: str = "Hello",
        *,
        upvotes: int = 0,
        downvotes: int = 0,
        tags: list[str] | None = None,
        created_at: datetime | None = None,
    ) -> dict:
        row = {
            "id": uuid4(),
            "title": title,
            "body": f"{title} body",
            "author_profile_id": author.id,
            "community_id": community["id"],
            "upvotes": upvotes,
            "downvotes": downvotes,
            "tags": tags or [],
            "created_at": created_at or _now(),
            "updated_at": created_at or _now(),
        }
        self.posts[row["id"]] = row
        return row

    def add_comment(
        self,
        post: dict,
        author: Profile,
        text: str,
        *,
        parent: dict | None = None,
        created_at: datetime | None = None,
    ) -> dict:
        row = {
            "id": uuid4(),
            "text": text,
            "author_profile_id": author.id,
            "post_id": post["id"],
            "parent_comment_id": parent["id"] if parent else None,
            "created_at": created_at or _now(),
        }
        self.comments[row["id"]] = row
        return row

    # -- SQL dispatch --------------------------------------------------------

    async def fetchrow(self, query, *args, **kwargs):
        sql = " ".join(str(query).upper().split())
        content = self._content_fetchrow(sql, args)
        if content is not None:
            return content
        if "INSERT INTO APP_USER" in sql:
            row = self.add_user(email=args[0], password_hash=args[1])
            return dict(row)
        if "UPDATE APP_USER" in sql:
            row = self.users.get(args[0])
            if row is None:
                return None
            row["primary_profile_id"] = args[1]
            row["updated_at"] = _now()
            return dict(row)
        if "FROM APP_USER WHERE EMAIL = $1" in sql:
            row = next((u for u in self.users.values() if u["email"] == args[0]), None)
            return dict(row) if row else None
        if "FROM APP_USER WHERE ID = $1" in sql:
            row = self.users.get(args[0])
            return dict(row) if row else None
        if "INSERT INTO PROFILE" in sql and "ON CONFLICT (ID)" in sql:
            return self._save_profile(args)
        if "INSERT INTO PROFILE" in sql:
            return self._insert_profile(args)
        if "FROM PROFILE WHERE ID = $1" in sql:
            row = self.profiles.get(args[0])
            if row is not None and "FOR UPDATE" in sql:
                self.locked.append(args[0])
            return copy.deepcopy(row) if row else None
        if "FROM PROFILE WHERE USERNAME = $1" in sql:
            row = next((p for p in self.profiles.values() if p["username"] == args[0]), None)
            return copy.deepcopy(row) if row else None
        return None

    async def fetch(self, query, *args, **kwargs):
        sql = " ".join(str(query).upper().split())
        if "FROM PROFILE WHERE ID = ANY" in sql:
            return [copy.deepcopy(self.profiles[i]) for i in args[0] if i in self.profiles]
        if "FROM COMMUNITY WHERE ID = ANY" in sql:
            return [copy.deepcopy(self.communities[i]) for i in args[0] if i in self.communities]
        if "FROM COMMUNITY ORDER BY" in sql:
            rows = sorted(self.communities.values(), key=lambda row: row["created_at"])
            return [dict(row) for row in rows]
        if "FROM POST WHERE" in sql:
            rows = [
                p for p in self.posts.values() if args[0] is None or p["community_id"] == args[0]
            ]
            if "ORDER BY UPVOTES DESC" in sql:
                rows.sort(key=lambda row: (row["upvotes"], row["created_at"]), reverse=True)
            else:
                rows.sort(key=lambda row: row["created_at"], reverse=True)
            return [copy.deepcopy(row) for row in rows]
        if "FROM COMMENT WHERE POST_ID = $1" in sql:
            rows = [c for c in self.comments.values() if c["post_id"] == args[0]]
            rows.sort(key=lambda row: row["created_at"], reverse=True)
            return [dict(row) for row in rows]
        if "FROM PROFILE WHERE OWNER_USER_ID = $1" in sql:
            rows = [p for p in self.profiles.values() if p["owner_user_id"] == args[0]]
            rows.sort(key=lambda row: row["created_at"])
            return [copy.deepcopy(row) for row in rows]
        return []

    def _content_fetchrow(self, sql: str, args) -> dict | None:
        if "INSERT INTO COMMUNITY" in sql:
            name, description, creator_profile_id, members = args
            row = {
                "id": uuid4(),
                "name": name,
                "description": description,
                "creator_profile_id": creator_profile_id,
                "members": list(members),
                "created_at": _now(),
            }
            self.communities[row["id"]] = row
            return dict(row)
        if "FROM COMMUNITY WHERE ID = $1" in sql:
            row = self.communities.get(args[0])
            return dict(row) if row else None
        if "FROM COMMUNITY WHERE NAME = $1" in sql:
            row = next((c for c in self.communities.values() if c["name"] == args[0]), None)
            return dict(row) if row else None
        if "INSERT INTO POST" in sql:
            title, body, author_profile_id, community_id, tags = args
            row = {
                "id": uuid4(),
                "title": title,
                "body": body,
                "author_profile_id": author_profile_id,
                "community_id": community_id,
                "upvotes": 0,
                "downvotes": 0,
                "tags": list(tags),
                "created_at": _now(),
                "updated_at": _now(),
            }
            self.posts[row["id"]] = row
            return copy.deepcopy(row)
        if "FROM POST WHERE ID = $1" in sql:
            row = self.posts.get(args[0])
            return copy.deepcopy(row) if row else None
        if "UPDATE POST" in sql:
            row = self.posts.get(args[0])
            if row is None:
                return None
            column = "upvotes" if "SET UPVOTES" in sql else "downvotes"
            row[column] += 1
            row["updated_at"] = _now()
            return copy.deepcopy(row)
        if "INSERT INTO COMMENT" in sql:
            text, author_profile_id, post_id, parent_comment_id = args
            row = {
                "id": uuid4(),
                "text": text,
                "author_profile_id": author_profile_id,
                "post_id": post_id,
                "parent_comment_id": parent_comment_id,
                "created_at": _now(),
            }
            self.comments[row["id"]] = row
            return dict(row)
        if "FROM COMMENT WHERE ID = $1" in sql:
            row = self.comments.get(args[0])
            return dict(row) if row else None
        return None

    def _insert_profile(self, args) -> dict:
        owner_user_id, username, display_name, bio, interests, is_anonymous, visibility = args
        row = {
            "id": uuid4(),
            "owner_user_id": owner_user_id,
            "username": username,
            "display_name": display_name,
            "bio": bio,
            "avatar_ref": "",
            "interests": list(interests),
            "is_anonymous": is_anonymous,
            "visibility": copy.deepcopy(visibility),
            "relationships": [],
            "created_at": _now(),
            "updated_at": _now(),
        }
        self.profiles[row["id"]] = row
        return copy.deepcopy(row)

    def _save_profile(self, args) -> dict:
        (
            profile_id,
            owner_user_id,
            username,
            display_name,
            bio,
            avatar_ref,
            interests,
            is_anonymous,
            visibility,
            relationships,
        ) = args
        existing = self.profiles.get(profile_id)
        row = {
            "id": profile_id,
            "owner_user_id": existing["owner_user_id"] if existing else owner_user_id,
            "username": existing["username"] if existing else username,
            "display_name": display_name,
            "bio": bio,
            "avatar_ref": avatar_ref,
            "interests": list(interests),
            "is_anonymous": is_anonymous,
            "visibility": copy.deepcopy(visibility),
            "relationships": copy.deepcopy(relationships),
            "created_at": existing["created_at"] if existing else _now(),
            "updated_at": _now(),
        }
        self.profiles[profile_id] = row
        return copy.deepcopy(row)


# ============================================================================
# Mock Database Fixtures
# ============================================================================


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def mock_pg_conn(fake_db):
    """AsyncMock asyncpg connection whose queries hit ``fake_db``."""
    test_logger.debug("Creating mock PostgreSQL connection")
    mock_conn = AsyncMock()

    @asynccontextmanager
    async def fake_transaction():
        yield

    mock_conn.fetchrow = AsyncMock(side_effect=fake_db.fetchrow)
    mock_conn.fetch = AsyncMock(side_effect=fake_db.fetch)
    mock_conn.fetchval = AsyncMock(return_value=None)
    mock_conn.execute = AsyncMock(return_value="SELECT 1")
    mock_conn.transaction = fake_transaction
    return mock_conn


@pytest.fixture
def override_db_dependencies(mock_pg_conn):
    """Inject the mocked connection and keep the lifespan off the network."""
    from onionpost.app import main as app_main

    original_init_pool = app_main.init_pool
    original_close_pool = app_main.close_pool
    app_main.init_pool = AsyncMock(return_value=AsyncMock())
    app_main.close_pool = AsyncMock()

    async def mock_get_pg():
        yield mock_pg_conn

    app.dependency_overrides[get_pg] = mock_get_pg

    yield mock_pg_conn

    app.dependency_overrides.clear()
    app_main.init_pool = original_init_pool
    app_main.close_pool = original_close_pool


# ============================================================================
# Test Client Fixtures
# ============================================================================


@pytest.fixture
def client(override_db_dependencies) -> Generator[TestClient, None, None]:
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def async_client(override_db_dependencies) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


# ============================================================================
# Helpers
# ============================================================================


@pytest.fixture
def auth_headers():
    """Build an ``Authorization`` header acting as ``profile``."""

    def _headers(profile: Profile) -> dict[str, str]:
        session = issue_session(profile.owner_user_id, profile)
        return {"Authorization": f"Bearer {session.access_token}"}

    return _headers
