"""Shop storage. Writes touching both the shop and its owner are atomic."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Protocol, Sequence, Tuple

from lostphones.domain.accounts.models import Role, User
from lostphones.domain.accounts.repository import InMemoryUserRepository
from lostphones.domain.errors import Conflict
from lostphones.domain.pagination import PageRequest
from lostphones.domain.shops.models import Shop, ShopStatus

PROFILE_FIELDS = frozenset(
    {"shop_name", "owner_name", "contact_number", "address", "location", "description"}
)


class ShopRepository(Protocol):
    async def get(self, shop_id: str) -> Optional[Shop]:
        ...

    async def get_active_for_user(self, user_id: str) -> Optional[Shop]:
        """The user's shop unless it was rejected."""
        ...

    async def name_taken(self, shop_name: str, *, exclude_id: Optional[str] = None) -> bool:
        ...

    async def create_with_owner(self, user: User, shop: Shop) -> Tuple[User, Shop]:
        ...

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
        """Move ``expected`` to ``status``. Returns None when the shop was not in ``expected``."""
        ...

    async def update_profile(self, shop_id: str, changes: Mapping[str, Any]) -> Optional[Shop]:
        ...

    async def delete(self, shop_id: str, *, owner_role: Role) -> Optional[Shop]:
        ...

    async def list_for_user(self, user_id: str) -> Sequence[Shop]:
        """Every shop record owned by the user, rejected ones included."""
        ...

    async def list(
        self,
        page: PageRequest,
        *,
        status: Optional[ShopStatus] = None,
        search: Optional[str] = None,
    ) -> Tuple[Sequence[Shop], int]:
        ...

    async def count(self, *, status: Optional[ShopStatus] = None) -> int:
        ...


def _decision_fields(status: ShopStatus, actor_id: str, at: datetime, reason: Optional[str]) -> dict[str, Any]:
    fields: dict[str, Any] = {"status": status, "decided_at": at, "decided_by": actor_id, "updated_at": at}
    if status is ShopStatus.APPROVED:
        fields.update(approved_at=at, approved_by=actor_id)
    else:
        fields["decision_reason"] = reason
    return fields


class InMemoryShopRepository(ShopRepository):
    def __init__(self, users: InMemoryUserRepository) -> None:
        self.items: dict[str, Shop] = {}
        self._users = users
        self._lock = asyncio.Lock()

    async def get(self, shop_id: str) -> Optional[Shop]:
        return self.items.get(shop_id)

    async def get_active_for_user(self, user_id: str) -> Optional[Shop]:
        for shop in self.items.values():
            if shop.user_id == user_id and shop.status is not ShopStatus.REJECTED:
                return shop
        return None

    async def name_taken(self, shop_name: str, *, exclude_id: Optional[str] = None) -> bool:
        key = shop_name.strip().casefold()
        return any(
            shop.shop_name.casefold() == key and shop.id != exclude_id for shop in self.items.values()
        )

    async def create_with_owner(self, user: User, shop: Shop) -> Tuple[User, Shop]:
        async with self._lock:
            if await self._users.username_taken(user.username):
                raise Conflict("username_taken")
            if user.email and await self._users.email_taken(user.email):
                raise Conflict("email_taken")
            if await self.name_taken(shop.shop_name):
                raise Conflict("shop_name_taken")
            await self._users.create(user)
            self.items[shop.id] = shop
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
        async with self._lock:
            shop = self.items.get(shop_id)
            if shop is None or shop.status is not expected:
                return None
            shop = replace(shop, **_decision_fields(status, actor_id, at, reason))
            self.items[shop_id] = shop
            if owner_role is not None:
                await self._users.update(shop.user_id, {"role": owner_role})
            return shop

    async def update_profile(self, shop_id: str, changes: Mapping[str, Any]) -> Optional[Shop]:
        unknown = set(changes) - PROFILE_FIELDS
        if unknown:
            raise KeyError(f"immutable shop fields: {sorted(unknown)}")
        shop = self.items.get(shop_id)
        if shop is None:
            return None
        shop = replace(shop, **changes, updated_at=datetime.now(timezone.utc))
        self.items[shop_id] = shop
        return shop

    async def delete(self, shop_id: str, *, owner_role: Role) -> Optional[Shop]:
        async with self._lock:
            shop = self.items.pop(shop_id, None)
            if shop is not None:
                await self._users.update(shop.user_id, {"role": owner_role})
            return shop

    async def list_for_user(self, user_id: str) -> Sequence[Shop]:
        return [shop for shop in self.items.values() if shop.user_id == user_id]

    async def list(
        self,
        page: PageRequest,
        *,
        status: Optional[ShopStatus] = None,
        search: Optional[str] = None,
    ) -> Tuple[Sequence[Shop], int]:
        needle = (search or "").strip().casefold()
        matched = [
            shop
            for shop in self.items.values()
            if (status is None or shop.status is status)
            and (
                not needle
                or needle in shop.shop_name.casefold()
                or needle in shop.owner_name.casefold()
                or needle in shop.location.casefold()
            )
        ]
        matched.sort(key=lambda shop: (shop.created_at, shop.id), reverse=True)
        return matched[page.offset : page.offset + page.limit], len(matched)

    async def count(self, *, status: Optional[ShopStatus] = None) -> int:
        return sum(1 for shop in self.items.values() if status is None or shop.status is status)
