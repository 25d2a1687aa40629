"""PostgreSQL persistence for home page banners."""

from __future__ import annotations

from typing import Optional, Sequence

import asyncpg

from lostphones.domain.banners.models import Banner
from lostphones.domain.banners.repository import BannerRepository

_COLUMNS = (
    "id, image_url, image_key, title, subtitle, button_text, button_link, "
    "is_active, display_order, created_at, updated_at"
)


def _row_to_banner(row: asyncpg.Record) -> Banner:
    return Banner(
        id=str(row["id"]),
        image_url=row["image_url"],
        image_key=row["image_key"],
        title=row["title"],
        subtitle=row["subtitle"],
        button_text=row["button_text"],
        button_link=row["button_link"],
        is_active=bool(row["is_active"]),
        display_order=int(row["display_order"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresBannerRepository(BannerRepository):
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def list_banners(self, *, active_only: bool = False) -> Sequence[Banner]:
        rows = await self._pool.fetch(
            f"""
            SELECT {_COLUMNS} FROM banners
            WHERE is_active OR NOT $1
            ORDER BY display_order, created_at, id
            """,
            active_only,
        )
        return [_row_to_banner(row) for row in rows]

    async def get(self, banner_id: str) -> Optional[Banner]:
        row = await self._pool.fetchrow(f"SELECT {_COLUMNS} FROM banners WHERE id = $1", banner_id)
        return _row_to_banner(row) if row else None

    async def save(self, banner: Banner) -> Banner:
        row = await self._pool.fetchrow(
            f"""
            INSERT INTO banners ({_COLUMNS})
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
            ON CONFLICT (id) DO UPDATE SET
                image_url = EXCLUDED.image_url,
                image_key = EXCLUDED.image_key,
                title = EXCLUDED.title,
                subtitle = EXCLUDED.subtitle,
                button_text = EXCLUDED.button_text,
                button_link = EXCLUDED.button_link,
                is_active = EXCLUDED.is_active,
                display_order = EXCLUDED.display_order,
                updated_at = EXCLUDED.updated_at
            RETURNING {_COLUMNS}
            """,
            banner.id,
            banner.image_url,
            banner.image_key,
            banner.title,
            banner.subtitle,
            banner.button_text,
            banner.button_link,
            banner.is_active,
            banner.display_order,
            banner.created_at,
            banner.updated_at,
        )
        return _row_to_banner(row)

    async def delete(self, banner_id: str) -> bool:
        status = await self._pool.execute("DELETE FROM banners WHERE id = $1", banner_id)
        return status.endswith(" 1")
