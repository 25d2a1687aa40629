"""Listing storage contract and the in-memory implementation."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence, Tuple

from lostphones.domain.listings.models import Listing, ListingStatus
from lostphones.domain.listings.query import ListingQuery, paginate

# Columns a caller may change through ``update``.
MUTABLE_FIELDS = frozenset(
    {
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
        "contact",
        "tags",
        "status",
    }
)


class ListingRepository(Protocol):
    async def find(self, query: ListingQuery) -> Tuple[Sequence[Listing], int]:
        ...

    async def get(self, listing_id: str) -> Optional[Listing]:
        ...

    async def increment_views(self, listing_id: str) -> Optional[Listing]:
        ...

    async def create(self, listing: Listing) -> Listing:
        ...

    async def update(self, listing_id: str, changes: Mapping[str, Any]) -> Optional[Listing]:
        ...

    async def set_status(self, listing_id: str, status: ListingStatus) -> Optional[Listing]:
        ...

    async def delete(self, listing_id: str) -> Optional[Listing]:
        ...

    async def delete_by_author(self, user_id: str) -> Sequence[Listing]:
        ...

    async def delete_by_shop(self, shop_id: str) -> Sequence[Listing]:
        ...

    async def bulk_set_status(
        self, listing_ids: Sequence[str], status: ListingStatus, *, from_statuses: Iterable[ListingStatus]
    ) -> int:
        ...

    async def bulk_delete(self, listing_ids: Sequence[str]) -> Sequence[Listing]:
        ...

    async def count(self, *, status: Optional[ListingStatus] = None, public_only: bool = False) -> int:
        ...

    async def recent(self, limit: int) -> Sequence[Listing]:
        ...


class InMemoryListingRepository(ListingRepository):
    def __init__(self) -> None:
        self.items: dict[str, Listing] = {}
        self._lock = asyncio.Lock()

    async def find(self, query: ListingQuery) -> Tuple[Sequence[Listing], int]:
        return paginate(query, list(self.items.values()))

    async def get(self, listing_id: str) -> Optional[Listing]:
        return self.items.get(listing_id)

    async def increment_views(self, listing_id: str) -> Optional[Listing]:
        async with self._lock:
            listing = self.items.get(listing_id)
            if listing is None:
                return None
            listing = replace(listing, views=listing.views + 1)
            self.items[listing_id] = listing
            return listing

    async def create(self, listing: Listing) -> Listing:
        self.items[listing.id] = listing
        return listing

    async def update(self, listing_id: str, changes: Mapping[str, Any]) -> Optional[Listing]:
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise KeyError(f"immutable listing fields: {sorted(unknown)}")
        async with self._lock:
            listing = self.items.get(listing_id)
            if listing is None:
                return None
            listing = replace(listing, **changes, updated_at=datetime.now(timezone.utc))
            self.items[listing_id] = listing
            return listing

    async def set_status(self, listing_id: str, status: ListingStatus) -> Optional[Listing]:
        return await self.update(listing_id, {"status": status})

    async def delete(self, listing_id: str) -> Optional[Listing]:
        return self.items.pop(listing_id, None)

    async def delete_by_author(self, user_id: str) -> Sequence[Listing]:
        doomed = [listing.id for listing in self.items.values() if listing.author_id == user_id]
        return [self.items.pop(listing_id) for listing_id in doomed]

    async def delete_by_shop(self, shop_id: str) -> Sequence[Listing]:
        doomed = [listing.id for listing in self.items.values() if listing.shop_id == shop_id]
        return [self.items.pop(listing_id) for listing_id in doomed]

    async def bulk_set_status(
        self, listing_ids: Sequence[str], status: ListingStatus, *, from_statuses: Iterable[ListingStatus]
    ) -> int:
        allowed = frozenset(from_statuses)
        changed = 0
        for listing_id in listing_ids:
            listing = self.items.get(listing_id)
            if listing is not None and listing.status in allowed:
                await self.set_status(listing_id, status)
                changed += 1
        return changed

    async def bulk_delete(self, listing_ids: Sequence[str]) -> Sequence[Listing]:
        return [self.items.pop(listing_id) for listing_id in listing_ids if listing_id in self.items]

    async def count(self, *, status: Optional[ListingStatus] = None, public_only: bool = False) -> int:
        return sum(
            1
            for listing in self.items.values()
            if (status is None or listing.status is status) and (listing.is_public or not public_only)
        )

    async def recent(self, limit: int) -> Sequence[Listing]:
        ordered = sorted(self.items.values(), key=lambda listing: (listing.created_at, listing.id), reverse=True)
        return ordered[:limit]
