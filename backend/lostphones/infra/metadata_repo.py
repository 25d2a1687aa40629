"""PostgreSQL persistence for brand/model/color and district/town vocabularies."""

from __future__ import annotations

from typing import Optional, Sequence

import asyncpg

from lostphones.domain.errors import Conflict
from lostphones.domain.metadata.models import District, PhoneBrand, PhoneColor, PhoneModel, Town
from lostphones.domain.metadata.repository import MetadataRepository


def _row_to_brand(row: asyncpg.Record) -> PhoneBrand:
    return PhoneBrand(id=str(row["id"]), name=row["name"], logo=row["logo"], created_at=row["created_at"])


def _row_to_model(row: asyncpg.Record) -> PhoneModel:
    return PhoneModel(
        id=str(row["id"]),
        name=row["name"],
        brand_id=str(row["brand_id"]),
        image=row["image"],
        created_at=row["created_at"],
    )


def _row_to_color(row: asyncpg.Record) -> PhoneColor:
    return PhoneColor(
        id=str(row["id"]),
        name=row["name"],
        model_id=str(row["model_id"]),
        hex_code=row["hex_code"],
        created_at=row["created_at"],
    )


def _row_to_district(row: asyncpg.Record) -> District:
    return District(
        id=str(row["id"]), name=row["name"], is_active=bool(row["is_active"]), created_at=row["created_at"]
    )


def _row_to_town(row: asyncpg.Record) -> Town:
    return Town(
        id=str(row["id"]),
        name=row["name"],
        district_id=str(row["district_id"]),
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
    )


class PostgresMetadataRepository(MetadataRepository):
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def _exists(self, sql: str, *params: object) -> bool:
        return bool(await self._pool.fetchval(f"SELECT EXISTS ({sql})", *params))

    async def _upsert(self, sql: str, *params: object) -> asyncpg.Record:
        try:
            row = await self._pool.fetchrow(sql, *params)
        except asyncpg.UniqueViolationError as exc:
            raise Conflict("name_taken") from exc
        if row is None:  # pragma: no cover - RETURNING always yields the row
            raise RuntimeError("Failed to save metadata")
        return row

    # brands

    async def list_brands(self, *, search: Optional[str] = None) -> Sequence[PhoneBrand]:
        rows = await self._pool.fetch(
            """
            SELECT id, name, logo, created_at FROM phone_brands
            WHERE $1::text IS NULL OR name ILIKE '%' || $1 || '%'
            ORDER BY lower(name)
            """,
            search or None,
        )
        return [_row_to_brand(row) for row in rows]

    async def get_brand(self, brand_id: str) -> Optional[PhoneBrand]:
        row = await self._pool.fetchrow("SELECT id, name, logo, created_at FROM phone_brands WHERE id = $1", brand_id)
        return _row_to_brand(row) if row else None

    async def brand_name_taken(self, name: str, *, exclude_id: Optional[str] = None) -> bool:
        return await self._exists(
            "SELECT 1 FROM phone_brands WHERE lower(name) = lower($1) AND id IS DISTINCT FROM $2",
            name.strip(),
            exclude_id,
        )

    async def save_brand(self, brand: PhoneBrand) -> PhoneBrand:
        row = await self._upsert(
            """
            INSERT INTO phone_brands (id, name, logo, created_at) VALUES ($1, $2, $3, $4)
            ON CONFLICT (id) DO UPDATE SET name = EXCLUDED.name, logo = EXCLUDED.logo
            RETURNING id, name, logo, created_at
            """,
            brand.id,
            brand.name,
            brand.logo,
            brand.created_at,
        )
        return _row_to_brand(row)

    async def delete_brand(self, brand_id: str) -> None:
        await self._pool.execute("DELETE FROM phone_brands WHERE id = $1", brand_id)

    # models

    async def list_models(
        self, *, brand_id: Optional[str] = None, search: Optional[str] = None
    ) -> Sequence[PhoneModel]:
        rows = await self._pool.fetch(
            """
            SELECT id, name, brand_id, image, created_at FROM phone_models
            WHERE ($1::text IS NULL OR brand_id = $1)
              AND ($2::text IS NULL OR name ILIKE '%' || $2 || '%')
            ORDER BY lower(name)
            """,
            brand_id,
            search or None,
        )
        return [_row_to_model(row) for row in rows]

    async def get_model(self, model_id: str) -> Optional[PhoneModel]:
        row = await self._pool.fetchrow(
            "SELECT id, name, brand_id, image, created_at FROM phone_models WHERE id = $1", model_id
        )
        return _row_to_model(row) if row else None

    async def model_name_taken(self, brand_id: str, name: str, *, exclude_id: Optional[str] = None) -> bool:
        return await self._exists(
            "SELECT 1 FROM phone_models WHERE brand_id = $1 AND lower(name) = lower($2) AND id IS DISTINCT FROM $3",
            brand_id,
            name.strip(),
            exclude_id,
        )

    async def save_model(self, model: PhoneModel) -> PhoneModel:
        row = await self._upsert(
            """
            INSERT INTO phone_models (id, name, brand_id, image, created_at) VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (id) DO UPDATE
                SET name = EXCLUDED.name, brand_id = EXCLUDED.brand_id, image = EXCLUDED.image
            RETURNING id, name, brand_id, image, created_at
            """,
            model.id,
            model.name,
            model.brand_id,
            model.image,
            model.created_at,
        )
        return _row_to_model(row)

    async def delete_model(self, model_id: str) -> None:
        await self._pool.execute("DELETE FROM phone_models WHERE id = $1", model_id)

    async def count_models(self, brand_id: str) -> int:
        return int(await self._pool.fetchval("SELECT count(*) FROM phone_models WHERE brand_id = $1", brand_id))

    # colors

    async def list_colors(
        self, *, model_id: Optional[str] = None, search: Optional[str] = None
    ) -> Sequence[PhoneColor]:
        rows = await self._pool.fetch(
            """
            SELECT id, name, model_id, hex_code, created_at FROM phone_colors
            WHERE ($1::text IS NULL OR model_id = $1)
              AND ($2::text IS NULL OR name ILIKE '%' || $2 || '%')
            ORDER BY lower(name)
            """,
            model_id,
            search or None,
        )
        return [_row_to_color(row) for row in rows]

    async def get_color(self, color_id: str) -> Optional[PhoneColor]:
        row = await self._pool.fetchrow(
            "SELECT id, name, model_id, hex_code, created_at FROM phone_colors WHERE id = $1", color_id
        )
        return _row_to_color(row) if row else None

    async def color_name_taken(self, model_id: str, name: str, *, exclude_id: Optional[str] = None) -> bool:
        return await self._exists(
            "SELECT 1 FROM phone_colors WHERE model_id = $1 AND lower(name) = lower($2) AND id IS DISTINCT FROM $3",
            model_id,
            name.strip(),
            exclude_id,
        )

    async def save_color(self, color: PhoneColor) -> PhoneColor:
        row = await self._upsert(
            """
            INSERT INTO phone_colors (id, name, model_id, hex_code, created_at) VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (id) DO UPDATE
                SET name = EXCLUDED.name, model_id = EXCLUDED.model_id, hex_code = EXCLUDED.hex_code
            RETURNING id, name, model_id, hex_code, created_at
            """,
            color.id,
            color.name,
            color.model_id,
            color.hex_code,
            color.created_at,
        )
        return _row_to_color(row)

    async def delete_color(self, color_id: str) -> None:
        await self._pool.execute("DELETE FROM phone_colors WHERE id = $1", color_id)

    async def count_colors(self, model_id: str) -> int:
        return int(await self._pool.fetchval("SELECT count(*) FROM phone_colors WHERE model_id = $1", model_id))

    # districts

    async def list_districts(self, *, active_only: bool = False) -> Sequence[District]:
        rows = await self._pool.fetch(
            """
            SELECT id, name, is_active, created_at FROM districts
            WHERE is_active OR NOT $1
            ORDER BY lower(name)
            """,
            active_only,
        )
        return [_row_to_district(row) for row in rows]

    async def get_district(self, district_id: str) -> Optional[District]:
        row = await self._pool.fetchrow(
            "SELECT id, name, is_active, created_at FROM districts WHERE id = $1", district_id
        )
        return _row_to_district(row) if row else None

    async def district_name_taken(self, name: str, *, exclude_id: Optional[str] = None) -> bool:
        return await self._exists(
            "SELECT 1 FROM districts WHERE lower(name) = lower($1) AND id IS DISTINCT FROM $2",
            name.strip(),
            exclude_id,
        )

    async def save_district(self, district: District) -> District:
        row = await self._upsert(
            """
            INSERT INTO districts (id, name, is_active, created_at) VALUES ($1, $2, $3, $4)
            ON CONFLICT (id) DO UPDATE SET name = EXCLUDED.name, is_active = EXCLUDED.is_active
            RETURNING id, name, is_active, created_at
            """,
            district.id,
            district.name,
            district.is_active,
            district.created_at,
        )
        return _row_to_district(row)

    async def delete_district(self, district_id: str) -> None:
        await self._pool.execute("DELETE FROM districts WHERE id = $1", district_id)

    # towns

    async def list_towns(
        self, *, district_id: Optional[str] = None, active_only: bool = False
    ) -> Sequence[Town]:
        rows = await self._pool.fetch(
            """
            SELECT id, name, district_id, is_active, created_at FROM towns
            WHERE ($1::text IS NULL OR district_id = $1) AND (is_active OR NOT $2)
            ORDER BY lower(name)
            """,
            district_id,
            active_only,
        )
        return [_row_to_town(row) for row in rows]

    async def get_town(self, town_id: str) -> Optional[Town]:
        row = await self._pool.fetchrow(
            "SELECT id, name, district_id, is_active, created_at FROM towns WHERE id = $1", town_id
        )
        return _row_to_town(row) if row else None

    async def town_name_taken(self, district_id: str, name: str, *, exclude_id: Optional[str] = None) -> bool:
        return await self._exists(
            "SELECT 1 FROM towns WHERE district_id = $1 AND lower(name) = lower($2) AND id IS DISTINCT FROM $3",
            district_id,
            name.strip(),
            exclude_id,
        )

    async def save_town(self, town: Town) -> Town:
        row = await self._upsert(
            """
            INSERT INTO towns (id, name, district_id, is_active, created_at) VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (id) DO UPDATE
                SET name = EXCLUDED.name, district_id = EXCLUDED.district_id, is_active = EXCLUDED.is_active
            RETURNING id, name, district_id, is_active, created_at
            """,
            town.id,
            town.name,
            town.district_id,
            town.is_active,
            town.created_at,
        )
        return _row_to_town(row)

    async def delete_town(self, town_id: str) -> None:
        await self._pool.execute("DELETE FROM towns WHERE id = $1", town_id)

    async def count_towns(self, district_id: str) -> int:
        return int(await self._pool.fetchval("SELECT count(*) FROM towns WHERE district_id = $1", district_id))
