"""Listing search, detail, authoring and admin maintenance."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple
from uuid import uuid4

from pydantic import BaseModel

from lostphones.domain.access import (
    Principal,
    ensure_can_post,
    ensure_owner_or_admin,
    require_admin,
    require_authenticated,
)
from lostphones.domain.accounts.models import Role
from lostphones.domain.errors import Conflict, FieldViolation, NotFound, ValidationError
from lostphones.domain.listings.models import ContactInfo, Listing, ListingStatus, can_transition
from lostphones.domain.listings.query import (
    DEFAULT_MY_LISTINGS_LIMIT,
    DEFAULT_SEARCH_LIMIT,
    build_listing_query,
)
from lostphones.domain.listings.repository import ListingRepository
from lostphones.domain.listings.schemas import AdminListingUpdate, ListingCreate, ListingUpdate
from lostphones.domain.pagination import Page
from lostphones.domain.shops.models import Shop
from lostphones.domain.shops.repository import ShopRepository
from lostphones.domain.validation import validate
from lostphones.infra.storage import (
    ImageUpload,
    ObjectStorage,
    discard_images,
    image_violations,
    upload_images,
)
from lostphones.obs import metrics
from lostphones.settings import settings

logger = logging.getLogger(__name__)

_IMEI_PREFIX = re.compile(r"[0-9]{1,15}")


@dataclass(slots=True, frozen=True)
class ListingStatistics:
    total: int
    active: int
    resolved: int


def _parse(model: type[BaseModel], raw: Mapping[str, Any], violations: list[FieldViolation]) -> Optional[Any]:
    try:
        return validate(model, raw)
    except ValidationError as exc:
        violations.extend(exc.violations)
        return None


def _changes(payload: BaseModel) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    for key, value in payload.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        if key == "contact":
            value = ContactInfo(name=value["name"], phone=value["phone"], email=value.get("email"))
        elif key == "tags":
            value = tuple(value)
        elif key == "status":
            value = ListingStatus(value)
        changes[key] = value
    return changes


class ListingService:
    def __init__(
        self,
        listings: ListingRepository,
        shops: ShopRepository,
        storage: ObjectStorage,
    ) -> None:
        self._listings = listings
        self._shops = shops
        self._storage = storage

    # public reads

    async def search(self, **params: Any) -> Page[Listing]:
        """Public search. Parameters are those of ``build_listing_query``."""
        params.pop("include_hidden", None)
        params.pop("author_id", None)
        query = build_listing_query(default_limit=DEFAULT_SEARCH_LIMIT, **params)
        metrics.inc_listing_search("text" if query.terms else "filter")
        items, total = await self._listings.find(query)
        return Page.of(items, total, query.page)

    async def search_by_imei(
        self, imei: str, *, page: Optional[int] = None, limit: Optional[int] = None
    ) -> Page[Listing]:
        imei = (imei or "").strip()
        if not _IMEI_PREFIX.fullmatch(imei):
            raise ValidationError.single("imei", "imei must contain between 1 and 15 digits")
        query = build_listing_query(imei=imei, status=ListingStatus.ACTIVE.value, page=page, limit=limit)
        metrics.inc_listing_search("imei")
        items, total = await self._listings.find(query)
        return Page.of(items, total, query.page)

    async def get_detail(self, listing_id: str) -> Listing:
        """Fetch a public listing. Every successful fetch counts as a view."""
        listing = await self._listings.get(listing_id)
        if listing is None or not listing.is_public or listing.status is ListingStatus.DELETED:
            raise NotFound("listing")
        viewed = await self._listings.increment_views(listing_id)
        if viewed is None:
            raise NotFound("listing")
        metrics.inc_listing_view()
        return viewed

    async def statistics(self) -> ListingStatistics:
        return ListingStatistics(
            total=await self._listings.count(public_only=True),
            active=await self._listings.count(status=ListingStatus.ACTIVE, public_only=True),
            resolved=await self._listings.count(status=ListingStatus.RESOLVED, public_only=True),
        )

    # authoring

    async def _producer_shop(self, principal: Principal) -> Optional[Shop]:
        if principal.role is not Role.SHOP:
            return None
        return await self._shops.get_active_for_user(principal.id)

    async def my_listings(
        self,
        principal: Optional[Principal],
        *,
        status: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page[Listing]:
        principal = require_authenticated(principal)
        shop = await self._producer_shop(principal)
        query = build_listing_query(
            status=status,
            page=page,
            limit=limit,
            author_id=None if shop else principal.id,
            shop_id=shop.id if shop else None,
            include_hidden=True,
            default_status="all",
            default_limit=DEFAULT_MY_LISTINGS_LIMIT,
        )
        items, total = await self._listings.find(query)
        return Page.of(items, total, query.page)

    async def create(
        self,
        principal: Optional[Principal],
        raw: Mapping[str, Any],
        images: Sequence[ImageUpload] = (),
    ) -> Listing:
        """Validate, upload images, then persist. Nothing is persisted if the upload fails."""
        principal = require_authenticated(principal)
        shop = await self._producer_shop(principal)
        ensure_can_post(principal, shop)

        violations: list[FieldViolation] = []
        payload: Optional[ListingCreate] = _parse(ListingCreate, raw, violations)
        violations.extend(image_violations(images, field="images", max_count=settings.max_listing_images))
        if violations or payload is None:
            raise ValidationError(violations)

        stored = await upload_images(self._storage, images, prefix=f"listings/{principal.id}")
        listing = Listing(
            id=str(uuid4()),
            title=payload.title,
            description=payload.description,
            brand=payload.brand,
            phone_model=payload.phone_model,
            color=payload.color,
            imei=payload.imei,
            district=payload.district,
            town=payload.town,
            lost_location=payload.lost_location,
            lost_date=payload.lost_date,
            contact=ContactInfo(
                name=payload.contact.name,
                phone=payload.contact.phone,
                email=str(payload.contact.email).lower() if payload.contact.email else None,
            ),
            images=tuple(stored),
            author_id=None if shop else principal.id,
            shop_id=shop.id if shop else None,
            tags=tuple(payload.tags),
            author_username=None if shop else principal.username,
            shop_name=shop.shop_name if shop else None,
        )
        try:
            created = await self._listings.create(listing)
        except Exception:
            await discard_images(self._storage, stored)
            raise
        producer = "shop" if shop else "user"
        metrics.inc_listing_created(producer)
        logger.info(
            "listing created",
            extra={"listing_id": created.id, "producer": producer, "images": len(stored)},
        )
        return created

    async def _owner_id(self, listing: Listing) -> Optional[str]:
        if listing.author_id is not None:
            return listing.author_id
        shop = await self._shops.get(listing.shop_id) if listing.shop_id else None
        return shop.user_id if shop else None

    async def _load_owned(self, principal: Optional[Principal], listing_id: str) -> Tuple[Principal, Listing]:
        principal = require_authenticated(principal)
        listing = await self._listings.get(listing_id)
        if listing is None:
            raise NotFound("listing")
        ensure_owner_or_admin(principal, await self._owner_id(listing))
        return principal, listing

    async def _apply(self, listing: Listing, changes: Mapping[str, Any]) -> Listing:
        target = changes.get("status")
        if target is not None and target is not listing.status:
            if not can_transition(listing.status, target):
                raise Conflict("invalid_status_transition")
            metrics.inc_listing_status(target.value)
        elif "status" in changes:
            changes = {key: value for key, value in changes.items() if key != "status"}
        if not changes:
            return listing
        updated = await self._listings.update(listing.id, changes)
        if updated is None:
            raise NotFound("listing")
        return updated

    async def update(self, principal: Optional[Principal], listing_id: str, raw: Mapping[str, Any]) -> Listing:
        _, listing = await self._load_owned(principal, listing_id)
        violations: list[FieldViolation] = []
        payload = _parse(ListingUpdate, raw, violations)
        if violations or payload is None:
            raise ValidationError(violations)
        return await self._apply(listing, _changes(payload))

    async def resolve(self, principal: Optional[Principal], listing_id: str) -> Listing:
        actor, listing = await self._load_owned(principal, listing_id)
        resolved = await self._apply(listing, {"status": ListingStatus.RESOLVED})
        logger.info("listing resolved", extra={"listing_id": listing_id, "actor_id": actor.id})
        return resolved

    async def delete(self, principal: Optional[Principal], listing_id: str) -> None:
        """Remove the listing and its stored images."""
        actor, listing = await self._load_owned(principal, listing_id)
        await self._remove(listing.id)
        logger.info("listing deleted", extra={"listing_id": listing_id, "actor_id": actor.id})

    async def _remove(self, listing_id: str) -> None:
        removed = await self._listings.delete(listing_id)
        if removed is None:
            raise NotFound("listing")
        await discard_images(self._storage, removed.images)

    # admin

    async def admin_search(self, actor: Principal, **params: Any) -> Page[Listing]:
        """Every listing regardless of visibility; status defaults to all."""
        require_admin(actor)
        params.setdefault("default_status", "all")
        query = build_listing_query(include_hidden=True, **params)
        items, total = await self._listings.find(query)
        return Page.of(items, total, query.page)

    async def admin_update(self, actor: Principal, listing_id: str, raw: Mapping[str, Any]) -> Listing:
        require_admin(actor)
        listing = await self._listings.get(listing_id)
        if listing is None:
            raise NotFound("listing")
        violations: list[FieldViolation] = []
        payload = _parse(AdminListingUpdate, raw, violations)
        if violations or payload is None:
            raise ValidationError(violations)
        updated = await self._apply(listing, _changes(payload))
        logger.info("listing updated by admin", extra={"listing_id": listing_id, "actor_id": actor.id})
        return updated

    async def admin_delete(self, actor: Principal, listing_id: str) -> None:
        require_admin(actor)
        await self._remove(listing_id)
        logger.info("listing deleted by admin", extra={"listing_id": listing_id, "actor_id": actor.id})

    async def bulk(self, actor: Principal, action: str, listing_ids: Sequence[str]) -> int:
        """Resolve or delete many listings. Returns how many were affected."""
        require_admin(actor)
        if action == "resolve":
            changed = await self._listings.bulk_set_status(
                listing_ids, ListingStatus.RESOLVED, from_statuses=(ListingStatus.ACTIVE,)
            )
            if changed:
                metrics.inc_listing_status(ListingStatus.RESOLVED.value)
        elif action == "delete":
            removed = await self._listings.bulk_delete(listing_ids)
            for listing in removed:
                await discard_images(self._storage, listing.images)
            changed = len(removed)
        else:
            raise ValidationError.single("action", "action must be resolve or delete")
        logger.info(
            "bulk listing action", extra={"action": action, "affected": changed, "actor_id": actor.id}
        )
        return changed
