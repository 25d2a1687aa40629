"""PostgreSQL persistence for user accounts."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence, Tuple

import asyncpg

from lostphones.domain.accounts.models import AccountType, Role, User
from lostphones.domain.accounts.repository import MUTABLE_FIELDS, UserRepository
from lostphones.domain.errors import Conflict
from lostphones.domain.pagination import PageRequest

USER_COLUMNS = (
    "id, username, password_hash, role, account_type, email, phone_number, "
    "is_banned, last_login, created_at, updated_at"
)


def row_to_user(row: asyncpg.Record) -> User:
    return User(
        id=str(row["id"]),
        username=row["username"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        account_type=AccountType(row["account_type"]),
        email=row["email"],
        phone_number=row["phone_number"],
        is_banned=bool(row["is_banned"]),
        last_login=row["last_login"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def unique_conflict(exc: asyncpg.UniqueViolationError) -> Conflict:
    """Map a unique index name to the conflict the API reports."""
    constraint = exc.constraint_name or ""
    if "email" in constraint:
        return Conflict("email_taken")
    if "username" in constraint:
        return Conflict("username_taken")
    if "shop_name" in constraint:
        return Conflict("shop_name_taken")
    return Conflict()


async def insert_user(conn: asyncpg.Connection | asyncpg.Pool, user: User) -> None:
    await conn.execute(
        """
        INSERT INTO users (id, username, password_hash, role, account_type, email, phone_number,
                           is_banned, last_login, created_at, updated_at)
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
        """,
        user.id,
        user.username,
        user.password_hash,
        user.role.value,
        user.account_type.value,
        user.email,
        user.phone_number,
        user.is_banned,
        user.last_login,
        user.created_at,
        user.updated_at,
    )


class PostgresUserRepository(UserRepository):
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def get(self, user_id: str) -> Optional[User]:
        row = await self._pool.fetchrow(f"SELECT {USER_COLUMNS} FROM users WHERE id = $1", user_id)
        return row_to_user(row) if row else None

    async def get_by_identifier(self, identifier: str) -> Optional[User]:
        row = await self._pool.fetchrow(
            f"""
            SELECT {USER_COLUMNS} FROM users
            WHERE lower(username) = lower($1) OR lower(email) = lower($1) OR phone_number = $1
            ORDER BY (lower(username) = lower($1)) DESC
            LIMIT 1
            """,
            identifier,
        )
        return row_to_user(row) if row else None

    async def username_taken(self, username: str, *, exclude_id: Optional[str] = None) -> bool:
        return bool(
            await self._pool.fetchval(
                "SELECT EXISTS (SELECT 1 FROM users WHERE lower(username) = lower($1) AND id IS DISTINCT FROM $2)",
                username,
                exclude_id,
            )
        )

    async def email_taken(self, email: str, *, exclude_id: Optional[str] = None) -> bool:
        return bool(
            await self._pool.fetchval(
                "SELECT EXISTS (SELECT 1 FROM users WHERE lower(email) = lower($1) AND id IS DISTINCT FROM $2)",
                email,
                exclude_id,
            )
        )

    async def create(self, user: User) -> User:
        try:
            await insert_user(self._pool, user)
        except asyncpg.UniqueViolationError as exc:
            raise unique_conflict(exc) from exc
        return user

    async def update(self, user_id: str, changes: Mapping[str, Any]) -> Optional[User]:
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise KeyError(f"immutable user fields: {sorted(unknown)}")
        params: list[Any] = [user_id]
        assignments: list[str] = []
        for key, value in changes.items():
            params.append(value.value if isinstance(value, Role) else value)
            assignments.append(f"{key} = ${len(params)}")
        assignments.append("updated_at = now()")
        try:
            row = await self._pool.fetchrow(
                f"UPDATE users SET {', '.join(assignments)} WHERE id = $1 RETURNING {USER_COLUMNS}",
                *params,
            )
        except asyncpg.UniqueViolationError as exc:
            raise unique_conflict(exc) from exc
        return row_to_user(row) if row else None

    async def delete(self, user_id: str) -> bool:
        status = await self._pool.execute("DELETE FROM users WHERE id = $1", user_id)
        return status.endswith(" 1")

    async def list(
        self,
        page: PageRequest,
        *,
        search: Optional[str] = None,
        role: Optional[Role] = None,
        is_banned: Optional[bool] = None,
    ) -> Tuple[Sequence[User], int]:
        where = """
            ($1::text IS NULL OR username ILIKE '%' || $1 || '%' OR email ILIKE '%' || $1 || '%'
             OR phone_number ILIKE '%' || $1 || '%')
            AND ($2::text IS NULL OR role = $2)
            AND ($3::boolean IS NULL OR is_banned = $3)
        """
        params = (search or None, role.value if role else None, is_banned)
        async with self._pool.acquire() as conn:
            async with conn.transaction(isolation="repeatable_read", readonly=True):
                total = await conn.fetchval(f"SELECT count(*) FROM users WHERE {where}", *params)
                rows = await conn.fetch(
                    f"""
                    SELECT {USER_COLUMNS} FROM users WHERE {where}
                    ORDER BY created_at DESC, id DESC LIMIT $4 OFFSET $5
                    """,
                    *params,
                    page.limit,
                    page.offset,
                )
        return [row_to_user(row) for row in rows], int(total or 0)

    async def count(self, *, role: Optional[Role] = None, is_banned: Optional[bool] = None) -> int:
        value = await self._pool.fetchval(
            "SELECT count(*) FROM users WHERE ($1::text IS NULL OR role = $1) AND ($2::boolean IS NULL OR is_banned = $2)",
            role.value if role else None,
            is_banned,
        )
        return int(value or 0)

    async def recent(self, limit: int) -> Sequence[User]:
        rows = await self._pool.fetch(
            f"SELECT {USER_COLUMNS} FROM users ORDER BY created_at DESC, id DESC LIMIT $1", limit
        )
        return [row_to_user(row) for row in rows]
