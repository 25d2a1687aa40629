"""PostgreSQL persistence for shops and their moderation status."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Sequence, Tuple

import asyncpg

from lostphones.domain.accounts.models import Role, User
from lostphones.domain.pagination import PageRequest
from lostphones.domain.shops.models import Shop, ShopStatus
from lostphones.domain.shops.repository import PROFILE_FIELDS, ShopRepository
from lostphones.infra.user_repo import insert_user, unique_conflict

SHOP_COLUMNS = (
    "id, user_id, shop_name, owner_name, contact_number, address, location, description, status, "
    "approved_at, approved_by, decided_at, decided_by, decision_reason, created_at, updated_at"
)


def _row_to_shop(row: asyncpg.Record) -> Shop:
    return Shop(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        shop_name=row["shop_name"],
        owner_name=row["owner_name"],
        contact_number=row["contact_number"],
        address=row["address"],
        location=row["location"],
        description=row["description"],
        status=ShopStatus(row["status"]),
        approved_at=row["approved_at"],
        approved_by=str(row["approved_by"]) if row["approved_by"] is not None else None,
        decided_at=row["decided_at"],
        decided_by=str(row["decided_by"]) if row["decided_by"] is not None else None,
        decision_reason=row["decision_reason"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresShopRepository(ShopRepository):
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def get(self, shop_id: str) -> Optional[Shop]:
        row = await self._pool.fetchrow(f"SELECT {SHOP_COLUMNS} FROM shops WHERE id = $1", shop_id)
        return _row_to_shop(row) if row else None

    async def get_active_for_user(self, user_id: str) -> Optional[Shop]:
        row = await self._pool.fetchrow(
            f"""
            SELECT {SHOP_COLUMNS} FROM shops
            WHERE user_id = $1 AND status <> 'rejected'
            ORDER BY created_at DESC
            LIMIT 1
            """,
            user_id,
        )
        return _row_to_shop(row) if row else None

    async def list_for_user(self, user_id: str) -> Sequence[Shop]:
        rows = await self._pool.fetch(f"SELECT {SHOP_COLUMNS} FROM shops WHERE user_id = $1", user_id)
        return [_row_to_shop(row) for row in rows]

    async def name_taken(self, shop_name: str, *, exclude_id: Optional[str] = None) -> bool:
        return bool(
            await self._pool.fetchval(
                "SELECT EXISTS (SELECT 1 FROM shops WHERE lower(shop_name) = lower($1) AND id IS DISTINCT FROM $2)",
                shop_name.strip(),
                exclude_id,
            )
        )

    async def create_with_owner(self, user: User, shop: Shop) -> Tuple[User, Shop]:
        async with self._pool.acquire() as conn:
            try:
                async with conn.transaction():
                    await insert_user(conn, user)
                    await conn.execute(
                        """
                        INSERT INTO shops (id, user_id, shop_name, owner_name, contact_number, address,
                                           location, description, status, created_at, updated_at)
                        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
                        """,
                        shop.id,
                        shop.user_id,
                        shop.shop_name,
                        shop.owner_name,
                        shop.contact_number,
                        shop.address,
                        shop.location,
                        shop.description,
                        shop.status.value,
                        shop.created_at,
                        shop.updated_at,
                    )
            except asyncpg.UniqueViolationError as exc:
                raise unique_conflict(exc) from exc
        return user, shop

    async def transition(
        self,
        shop_id: str,
        *,
        expected: ShopStatus,
        status: ShopStatus,
        actor_id: str,
        at: datetime,
        reason: Optional[str] = None,
        owner_role: Optional[Role] = None,
    ) -> Optional[Shop]:
        approved = status is ShopStatus.APPROVED
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                # guarded on the source status so concurrent decisions cannot both apply
                row = await conn.fetchrow(
                    f"""
                    UPDATE shops
                    SET status = $3,
                        decided_at = $4,
                        decided_by = $5,
                        decision_reason = CASE WHEN $6 THEN decision_reason ELSE $7 END,
                        approved_at = CASE WHEN $6 THEN $4 ELSE approved_at END,
                        approved_by = CASE WHEN $6 THEN $5 ELSE approved_by END,
                        updated_at = $4
                    WHERE id = $1 AND status = $2
                    RETURNING {SHOP_COLUMNS}
                    """,
                    shop_id,
                    expected.value,
                    status.value,
                    at,
                    actor_id,
                    approved,
                    reason,
                )
                if row is None:
                    return None
                if owner_role is not None:
                    await conn.execute(
                        "UPDATE users SET role = $2, updated_at = $3 WHERE id = $1",
                        row["user_id"],
                        owner_role.value,
                        at,
                    )
        return _row_to_shop(row)

    async def update_profile(self, shop_id: str, changes: Mapping[str, Any]) -> Optional[Shop]:
        unknown = set(changes) - PROFILE_FIELDS
        if unknown:
            raise KeyError(f"immutable shop fields: {sorted(unknown)}")
        params: list[Any] = [shop_id]
        assignments: list[str] = []
        for key, value in changes.items():
            params.append(value)
            assignments.append(f"{key} = ${len(params)}")
        assignments.append("updated_at = now()")
        try:
            row = await self._pool.fetchrow(
                f"UPDATE shops SET {', '.join(assignments)} WHERE id = $1 RETURNING {SHOP_COLUMNS}",
                *params,
            )
        except asyncpg.UniqueViolationError as exc:
            raise unique_conflict(exc) from exc
        return _row_to_shop(row) if row else None

    async def delete(self, shop_id: str, *, owner_role: Role) -> Optional[Shop]:
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(f"DELETE FROM shops WHERE id = $1 RETURNING {SHOP_COLUMNS}", shop_id)
                if row is None:
                    return None
                await conn.execute(
                    "UPDATE users SET role = $2, updated_at = now() WHERE id = $1",
                    row["user_id"],
                    owner_role.value,
                )
        return _row_to_shop(row)

    async def list(
        self,
        page: PageRequest,
        *,
        status: Optional[ShopStatus] = None,
        search: Optional[str] = None,
    ) -> Tuple[Sequence[Shop], int]:
        where = """
            ($1::text IS NULL OR status = $1)
            AND ($2::text IS NULL OR shop_name ILIKE '%' || $2 || '%' OR owner_name ILIKE '%' || $2 || '%'
                 OR location ILIKE '%' || $2 || '%')
        """
        params = (status.value if status else None, (search or "").strip() or None)
        async with self._pool.acquire() as conn:
            async with conn.transaction(isolation="repeatable_read", readonly=True):
                total = await conn.fetchval(f"SELECT count(*) FROM shops WHERE {where}", *params)
                rows = await conn.fetch(
                    f"""
                    SELECT {SHOP_COLUMNS} FROM shops WHERE {where}
                    ORDER BY created_at DESC, id DESC LIMIT $3 OFFSET $4
                    """,
                    *params,
                    page.limit,
                    page.offset,
                )
        return [_row_to_shop(row) for row in rows], int(total or 0)

    async def count(self, *, status: Optional[ShopStatus] = None) -> int:
        value = await self._pool.fetchval(
            "SELECT count(*) FROM shops WHERE ($1::text IS NULL OR status = $1)",
            status.value if status else None,
        )
        return int(value or 0)
