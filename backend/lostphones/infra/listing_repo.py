"""PostgreSQL persistence for listings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

import asyncpg

from lostphones.domain.listings.models import ContactInfo, ImageRef, Listing, ListingStatus
from lostphones.domain.listings.query import ListingQuery
from lostphones.domain.listings.repository import MUTABLE_FIELDS, ListingRepository

TS_CONFIG = "english"

_COLUMNS = (
    "id",
    "title",
    "description",
    "brand",
    "phone_model",
    "color",
    "imei",
    "district",
    "town",
    "lost_location",
    "lost_date",
    "contact_name",
    "contact_phone",
    "contact_email",
    "images",
    "status",
    "author_id",
    "shop_id",
    "views",
    "is_public",
    "tags",
    "created_at",
    "updated_at",
)

_SORT_COLUMNS = {
    "created_at": "l.created_at",
    "lost_date": "l.lost_date",
    "views": "l.views",
    "title": "lower(l.title)",
}


def _select(alias: str = "l") -> str:
    columns = ", ".join(f"{alias}.{column}" for column in _COLUMNS)
    return (
        f"SELECT {columns}, u.username AS author_username, s.shop_name AS shop_name "
        f"FROM {{source}} {alias} "
        f"LEFT JOIN users u ON u.id = {alias}.author_id "
        f"LEFT JOIN shops s ON s.id = {alias}.shop_id"
    )


def _like(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _images(raw: Any) -> Tuple[ImageRef, ...]:
    if not raw:
        return ()
    return tuple(ImageRef(url=str(item["url"]), key=str(item["key"])) for item in raw)


def _row_to_listing(row: asyncpg.Record) -> Listing:
    return Listing(
        id=str(row["id"]),
        title=row["title"],
        description=row["description"],
        brand=row["brand"],
        phone_model=row["phone_model"],
        color=row["color"],
        imei=row["imei"],
        district=row["district"],
        town=row["town"],
        lost_location=row["lost_location"],
        lost_date=row["lost_date"],
        contact=ContactInfo(
            name=row["contact_name"],
            phone=row["contact_phone"],
            email=row["contact_email"],
        ),
        images=_images(row["images"]),
        status=ListingStatus(row["status"]),
        author_id=str(row["author_id"]) if row["author_id"] is not None else None,
        shop_id=str(row["shop_id"]) if row["shop_id"] is not None else None,
        views=int(row["views"]),
        is_public=bool(row["is_public"]),
        tags=tuple(row["tags"] or ()),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        author_username=row.get("author_username"),
        shop_name=row.get("shop_name"),
    )


@dataclass(slots=True, frozen=True)
class CompiledListingQuery:
    where: str
    params: Tuple[Any, ...]
    order_by: str


def compile_listing_query(query: ListingQuery) -> CompiledListingQuery:
    """Render a ``ListingQuery`` as a WHERE/ORDER BY pair over ``listings l``."""
    clauses: list[str] = []
    params: list[Any] = []

    def bind(value: Any) -> str:
        params.append(value)
        return f"${len(params)}"

    if query.public_only:
        clauses.append("l.is_public")
    if query.status is not None:
        clauses.append(f"l.status = {bind(query.status.value)}")
    if query.author_id is not None:
        clauses.append(f"l.author_id = {bind(query.author_id)}")
    if query.shop_id is not None:
        clauses.append(f"l.shop_id = {bind(query.shop_id)}")
    for column, value in (("l.imei", query.imei), ("l.brand", query.brand), ("l.phone_model", query.model)):
        if value:
            clauses.append(f"{column} ILIKE {bind(_like(value))}")
    if query.location:
        placeholder = bind(_like(query.location))
        clauses.append(
            f"(l.lost_location ILIKE {placeholder} OR l.town ILIKE {placeholder} OR l.district ILIKE {placeholder})"
        )

    rank: Optional[str] = None
    if query.terms:
        # terms are split on non-word characters, so joining them is a valid tsquery
        tsquery = f"to_tsquery('{TS_CONFIG}', {bind(' | '.join(query.terms))})"
        clauses.append(f"l.search_vector @@ {tsquery}")
        rank = f"ts_rank(l.search_vector, {tsquery})"

    direction = "DESC" if query.effective_descending else "ASC"
    sort_by = query.effective_sort
    column = rank if sort_by == "relevance" and rank else _SORT_COLUMNS[sort_by]
    return CompiledListingQuery(
        where=" AND ".join(clauses) if clauses else "TRUE",
        params=tuple(params),
        order_by=f"{column} {direction}, l.id {direction}",
    )


def _affected(status: str) -> int:
    # asyncpg returns the command tag, e.g. "UPDATE 3"
    try:
        return int(status.split()[-1])
    except (IndexError, ValueError):
        return 0


class PostgresListingRepository(ListingRepository):
    """Stores listings in the ``listings`` table."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def find(self, query: ListingQuery) -> Tuple[Sequence[Listing], int]:
        compiled = compile_listing_query(query)
        count_sql = f"SELECT count(*) FROM listings l WHERE {compiled.where}"
        n = len(compiled.params)
        page_sql = (
            _select().format(source="listings")
            + f" WHERE {compiled.where} ORDER BY {compiled.order_by} LIMIT ${n + 1} OFFSET ${n + 2}"
        )
        async with self._pool.acquire() as conn:
            # one snapshot for both the total and the page
            async with conn.transaction(isolation="repeatable_read", readonly=True):
                total = await conn.fetchval(count_sql, *compiled.params)
                rows = await conn.fetch(page_sql, *compiled.params, query.page.limit, query.page.offset)
        return [_row_to_listing(row) for row in rows], int(total or 0)

    async def get(self, listing_id: str) -> Optional[Listing]:
        row = await self._pool.fetchrow(_select().format(source="listings") + " WHERE l.id = $1", listing_id)
        return _row_to_listing(row) if row else None

    async def increment_views(self, listing_id: str) -> Optional[Listing]:
        sql = (
            "WITH bumped AS (UPDATE listings SET views = views + 1 WHERE id = $1 RETURNING *) "
            + _select().format(source="bumped")
        )
        row = await self._pool.fetchrow(sql, listing_id)
        return _row_to_listing(row) if row else None

    async def create(self, listing: Listing) -> Listing:
        await self._pool.execute(
            """
            INSERT INTO listings (
                id, title, description, brand, phone_model, color, imei, district, town,
                lost_location, lost_date, contact_name, contact_phone, contact_email, images,
                status, author_id, shop_id, views, is_public, tags, created_at, updated_at
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15::jsonb,
                    $16, $17, $18, $19, $20, $21, $22, $23)
            """,
            listing.id,
            listing.title,
            listing.description,
            listing.brand,
            listing.phone_model,
            listing.color,
            listing.imei,
            listing.district,
            listing.town,
            listing.lost_location,
            listing.lost_date,
            listing.contact.name,
            listing.contact.phone,
            listing.contact.email,
            [{"url": image.url, "key": image.key} for image in listing.images],
            listing.status.value,
            listing.author_id,
            listing.shop_id,
            listing.views,
            listing.is_public,
            list(listing.tags),
            listing.created_at,
            listing.updated_at,
        )
        created = await self.get(listing.id)
        if created is None:  # pragma: no cover - the insert above either succeeds or raises
            raise RuntimeError("Failed to insert listing")
        return created

    async def update(self, listing_id: str, changes: Mapping[str, Any]) -> Optional[Listing]:
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise KeyError(f"immutable listing fields: {sorted(unknown)}")
        assignments: list[str] = []
        params: list[Any] = [listing_id]
        for key, value in changes.items():
            if key == "contact":
                pairs = (("contact_name", value.name), ("contact_phone", value.phone), ("contact_email", value.email))
            elif key == "status":
                pairs = (("status", value.value),)
            elif key == "tags":
                pairs = (("tags", list(value)),)
            else:
                pairs = ((key, value),)
            for column, column_value in pairs:
                params.append(column_value)
                assignments.append(f"{column} = ${len(params)}")
        assignments.append("updated_at = now()")
        status = await self._pool.execute(
            f"UPDATE listings SET {', '.join(assignments)} WHERE id = $1", *params
        )
        if _affected(status) == 0:
            return None
        return await self.get(listing_id)

    async def set_status(self, listing_id: str, status: ListingStatus) -> Optional[Listing]:
        return await self.update(listing_id, {"status": status})

    async def delete(self, listing_id: str) -> Optional[Listing]:
        row = await self._pool.fetchrow(
            f"DELETE FROM listings WHERE id = $1 RETURNING {', '.join(_COLUMNS)}", listing_id
        )
        return _row_to_listing(row) if row else None

    async def _delete_where(self, clause: str, *params: Any) -> Sequence[Listing]:
        rows = await self._pool.fetch(
            f"DELETE FROM listings WHERE {clause} RETURNING {', '.join(_COLUMNS)}", *params
        )
        return [_row_to_listing(row) for row in rows]

    async def delete_by_author(self, user_id: str) -> Sequence[Listing]:
        return await self._delete_where("author_id = $1", user_id)

    async def delete_by_shop(self, shop_id: str) -> Sequence[Listing]:
        return await self._delete_where("shop_id = $1", shop_id)

    async def bulk_set_status(
        self, listing_ids: Sequence[str], status: ListingStatus, *, from_statuses: Iterable[ListingStatus]
    ) -> int:
        result = await self._pool.execute(
            """
            UPDATE listings SET status = $2, updated_at = now()
            WHERE id = ANY($1::text[]) AND status = ANY($3::text[])
            """,
            list(listing_ids),
            status.value,
            [item.value for item in from_statuses],
        )
        return _affected(result)

    async def bulk_delete(self, listing_ids: Sequence[str]) -> Sequence[Listing]:
        return await self._delete_where("id = ANY($1::text[])", list(listing_ids))

    async def count(self, *, status: Optional[ListingStatus] = None, public_only: bool = False) -> int:
        value = await self._pool.fetchval(
            "SELECT count(*) FROM listings WHERE ($1::text IS NULL OR status = $1) AND (NOT $2 OR is_public)",
            status.value if status else None,
            public_only,
        )
        return int(value or 0)

    async def recent(self, limit: int) -> Sequence[Listing]:
        rows = await self._pool.fetch(
            _select().format(source="listings") + " ORDER BY l.created_at DESC, l.id DESC LIMIT $1", limit
        )
        return [_row_to_listing(row) for row in rows]
