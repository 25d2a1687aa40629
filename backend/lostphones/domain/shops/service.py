"""Shop approval lifecycle.

States: pending -> approved | rejected, approved -> revoked. A rejected shop
keeps its record for audit; its owner drops back to a regular user. A revoked
shop keeps the shop role but can neither log in nor post.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple
from uuid import uuid4

from lostphones.domain.access import Principal, require_admin, require_authenticated
from lostphones.domain.accounts.models import AccountType, Role, User
from lostphones.domain.accounts.repository import UserRepository
from lostphones.domain.errors import (
    AlreadyApproved,
    Conflict,
    Forbidden,
    NotFound,
    PendingApproval,
    ValidationError,
)
from lostphones.domain.listings.query import build_listing_query
from lostphones.domain.listings.repository import ListingRepository
from lostphones.domain.pagination import Page, page_request
from lostphones.domain.shops.models import Shop, ShopStatus
from lostphones.domain.shops.repository import ShopRepository
from lostphones.domain.shops.schemas import RegisterShopRequest, ShopProfileUpdateRequest
from lostphones.infra.password import hash_password
from lostphones.infra.storage import ObjectStorage, discard_images
from lostphones.obs import metrics

logger = logging.getLogger(__name__)

DEFAULT_SHOP_PAGE_LIMIT = 10
STATUS_FILTERS = ("pending", "approved", "rejected", "revoked", "all")

# target -> (required source state, owner role to set on success)
_TRANSITIONS: dict[ShopStatus, Tuple[ShopStatus, Optional[Role]]] = {
    ShopStatus.APPROVED: (ShopStatus.PENDING, None),
    ShopStatus.REJECTED: (ShopStatus.PENDING, Role.USER),
    ShopStatus.REVOKED: (ShopStatus.APPROVED, None),
}


@dataclass(slots=True)
class ShopDetail:
    shop: Shop
    owner: Optional[User]
    listing_count: int


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ShopModerationService:
    def __init__(
        self,
        shops: ShopRepository,
        users: UserRepository,
        listings: ListingRepository,
        storage: ObjectStorage,
    ) -> None:
        self._shops = shops
        self._users = users
        self._listings = listings
        self._storage = storage

    async def register(self, payload: RegisterShopRequest) -> Tuple[User, Shop]:
        """Create the owner account and a pending shop together."""
        if await self._users.username_taken(payload.username):
            raise Conflict("username_taken")
        if await self._users.email_taken(str(payload.email)):
            raise Conflict("email_taken")
        if await self._shops.name_taken(payload.shop_name):
            raise Conflict("shop_name_taken")
        now = _now()
        user = User(
            id=str(uuid4()),
            username=payload.username,
            password_hash=hash_password(payload.password),
            role=Role.SHOP,
            account_type=AccountType.SHOP,
            email=str(payload.email).lower(),
            phone_number=payload.contact_number,
            created_at=now,
            updated_at=now,
        )
        shop = Shop(
            id=str(uuid4()),
            user_id=user.id,
            shop_name=payload.shop_name.strip(),
            owner_name=payload.owner_name.strip(),
            contact_number=payload.contact_number,
            address=payload.address.strip(),
            location=payload.location.strip(),
            description=payload.description or None,
            created_at=now,
            updated_at=now,
        )
        user, shop = await self._shops.create_with_owner(user, shop)
        metrics.inc_shop_transition(ShopStatus.PENDING.value)
        logger.info("shop registered", extra={"shop_id": shop.id, "user_id": user.id})
        return user, shop

    async def check_login(self, user: User) -> Optional[Shop]:
        """Login gate for shop accounts. Returns the shop for approved owners."""
        if user.role is not Role.SHOP:
            return None
        shop = await self._shops.get_active_for_user(user.id)
        if shop is None:
            raise NotFound("shop")
        if shop.status is ShopStatus.PENDING:
            raise PendingApproval()
        if shop.status is not ShopStatus.APPROVED:
            raise Forbidden(f"shop_{shop.status.value}")
        return shop

    async def _transition(
        self, actor: Principal, shop_id: str, target: ShopStatus, reason: Optional[str] = None
    ) -> Shop:
        require_admin(actor)
        source, owner_role = _TRANSITIONS[target]
        shop = await self._shops.get(shop_id)
        if shop is None:
            raise NotFound("shop")
        if shop.status is source:
            updated = await self._shops.transition(
                shop_id,
                expected=source,
                status=target,
                actor_id=actor.id,
                at=_now(),
                reason=reason,
                owner_role=owner_role,
            )
            if updated is not None:
                metrics.inc_shop_transition(target.value)
                logger.info(
                    "shop status changed",
                    extra={"shop_id": shop_id, "from": source.value, "to": target.value, "actor_id": actor.id},
                )
                return updated
            # another writer moved the shop first
            shop = await self._shops.get(shop_id)
            if shop is None:
                raise NotFound("shop")
        if target is ShopStatus.APPROVED and shop.status is ShopStatus.APPROVED:
            raise AlreadyApproved()
        raise Conflict(f"shop_is_{shop.status.value}")

    async def approve(self, actor: Principal, shop_id: str) -> Shop:
        return await self._transition(actor, shop_id, ShopStatus.APPROVED)

    async def reject(self, actor: Principal, shop_id: str, *, reason: Optional[str] = None) -> Shop:
        return await self._transition(actor, shop_id, ShopStatus.REJECTED, reason)

    async def revoke(self, actor: Principal, shop_id: str, *, reason: Optional[str] = None) -> Shop:
        return await self._transition(actor, shop_id, ShopStatus.REVOKED, reason)

    async def delete(self, actor: Principal, shop_id: str) -> None:
        """Remove a shop with its listings and demote the owner to a regular user."""
        require_admin(actor)
        if await self._shops.get(shop_id) is None:
            raise NotFound("shop")
        removed = await self._listings.delete_by_shop(shop_id)
        for listing in removed:
            await discard_images(self._storage, listing.images)
        await self._shops.delete(shop_id, owner_role=Role.USER)
        logger.info(
            "shop deleted", extra={"shop_id": shop_id, "actor_id": actor.id, "listings_removed": len(removed)}
        )

    async def list_shops(
        self,
        actor: Principal,
        *,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page[Shop]:
        require_admin(actor)
        status_value = (status or "all").strip().lower()
        if status_value not in STATUS_FILTERS:
            raise ValidationError.single("status", f"status must be one of {', '.join(STATUS_FILTERS)}")
        request = page_request(page, limit, default_limit=DEFAULT_SHOP_PAGE_LIMIT)
        status_filter = None if status_value == "all" else ShopStatus(status_value)
        items, total = await self._shops.list(request, status=status_filter, search=search)
        return Page.of(items, total, request)

    async def get_detail(self, actor: Principal, shop_id: str) -> ShopDetail:
        require_admin(actor)
        shop = await self._shops.get(shop_id)
        if shop is None:
            raise NotFound("shop")
        owner = await self._users.get(shop.user_id)
        query = build_listing_query(shop_id=shop.id, status="all", include_hidden=True, limit=1)
        _, listing_count = await self._listings.find(query)
        return ShopDetail(shop=shop, owner=owner, listing_count=listing_count)

    async def get_my_shop(self, principal: Optional[Principal]) -> Shop:
        principal = require_authenticated(principal)
        if principal.role is not Role.SHOP:
            raise Forbidden("not_a_shop")
        shop = await self._shops.get_active_for_user(principal.id)
        if shop is None:
            raise NotFound("shop")
        return shop

    async def update_my_shop(self, principal: Optional[Principal], payload: ShopProfileUpdateRequest) -> Shop:
        shop = await self.get_my_shop(principal)
        changes = {
            key: value.strip() if isinstance(value, str) else value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key == "description"
        }
        new_name = changes.get("shop_name")
        if new_name and await self._shops.name_taken(new_name, exclude_id=shop.id):
            raise Conflict("shop_name_taken")
        if not changes:
            return shop
        updated = await self._shops.update_profile(shop.id, changes)
        if updated is None:
            raise NotFound("shop")
        return updated
