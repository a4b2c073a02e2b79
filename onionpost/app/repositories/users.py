"""Repository helpers for user accounts."""

from __future__ import annotations

from uuid import UUID

import asyncpg

from ..utils.metrics import QueryTimer

USER_COLUMNS = "id, email, password_hash, primary_profile_id, created_at, updated_at"


class UserRepository:
    """CRUD helpers for the app_user table."""

    @staticmethod
    async def create_user(
        conn: asyncpg.Connection,
        email: str,
        password_hash: str,
    ) -> asyncpg.Record:
        with QueryTimer("user_create"):
            row = await conn.fetchrow(
                f"""
                INSERT INTO app_user (email, password_hash)
                VALUES ($1, $2)
                RETURNING {USER_COLUMNS}
                """,
                email,
                password_hash,
            )
        return row

    @staticmethod
    async def set_primary_profile(
        conn: asyncpg.Connection,
        user_id: UUID,
        profile_id: UUID,
    ) -> asyncpg.Record:
        with QueryTimer("user_set_primary_profile"):
            row = await conn.fetchrow(
                f"""
                UPDATE app_user
                SET primary_profile_id = $2,
                    updated_at = now()
                WHERE id = $1
                RETURNING {USER_COLUMNS}
                """,
                user_id,
                profile_id,
            )
        return row

    @staticmethod
    async def fetch_user_credentials(conn: asyncpg.Connection, email: str) -> asyncpg.Record | None:
        with QueryTimer("user_fetch_credentials"):
            row = await conn.fetchrow(
                f"SELECT {USER_COLUMNS} FROM app_user WHERE email = $1",
                email,
            )
        return row

    @staticmethod
    async def fetch_user(conn: asyncpg.Connection, user_id: UUID) -> asyncpg.Record | None:
        with QueryTimer("user_fetch"):
            row = await conn.fetchrow(
                f"SELECT {USER_COLUMNS} FROM app_user WHERE id = $1",
                user_id,
            )
        return row


__all__ = ["UserRepository"]
