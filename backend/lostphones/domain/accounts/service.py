"""Registration, login, profile and admin user management."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple
from uuid import uuid4

from lostphones.domain.access import Principal, ensure_can_manage_user, require_admin, require_authenticated
from lostphones.domain.accounts.models import AccountType, Role, User
from lostphones.domain.accounts.repository import UserRepository
from lostphones.domain.accounts.schemas import (
    LoginRequest,
    PasswordChangeRequest,
    ProfileUpdateRequest,
    RegisterRequest,
)
from lostphones.domain.errors import (
    Conflict,
    DomainError,
    Forbidden,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from lostphones.domain.listings.query import build_listing_query
from lostphones.domain.listings.repository import ListingRepository
from lostphones.domain.pagination import Page, page_request
from lostphones.domain.shops.models import Shop
from lostphones.domain.shops.repository import ShopRepository
from lostphones.domain.shops.service import ShopModerationService
from lostphones.infra import jwt as jwt_helper
from lostphones.infra.password import check_needs_rehash, hash_password, verify_password
from lostphones.infra.storage import ObjectStorage, discard_images
from lostphones.obs import metrics
from lostphones.settings import settings

logger = logging.getLogger(__name__)

DEFAULT_USER_PAGE_LIMIT = 10
ASSIGNABLE_ROLES = (Role.USER, Role.ADMIN)


@dataclass(slots=True)
class Session:
    user: User
    token: str
    expires_in: int
    shop: Optional[Shop] = None


@dataclass(slots=True)
class UserDetail:
    user: User
    shop: Optional[Shop]
    listing_count: int


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _issue(user: User, shop: Optional[Shop] = None) -> Session:
    token = jwt_helper.encode_access(user.id, user.role.value)
    return Session(user=user, token=token, expires_in=settings.access_ttl_minutes * 60, shop=shop)


class AccountService:
    def __init__(
        self,
        users: UserRepository,
        shops: ShopRepository,
        moderation: ShopModerationService,
        listings: ListingRepository,
        storage: ObjectStorage,
    ) -> None:
        self._users = users
        self._shops = shops
        self._moderation = moderation
        self._listings = listings
        self._storage = storage

    # authentication

    async def register(self, payload: RegisterRequest) -> Session:
        email = str(payload.email).lower() if payload.email else None
        if await self._users.username_taken(payload.username):
            raise Conflict("username_taken")
        if email and await self._users.email_taken(email):
            raise Conflict("email_taken")
        user = await self._users.create(
            User(
                id=str(uuid4()),
                username=payload.username,
                password_hash=hash_password(payload.password),
                role=Role.USER,
                account_type=AccountType.USER,
                email=email,
                phone_number=payload.phone_number,
            )
        )
        logger.info("user registered", extra={"user_id": user.id})
        return _issue(user)

    async def login(self, payload: LoginRequest) -> Session:
        user = await self._users.get_by_identifier(payload.identifier.strip())
        if user is None or not verify_password(user.password_hash, payload.password):
            metrics.inc_login_reject("invalid_credentials")
            raise Unauthenticated("invalid_credentials")
        if user.is_banned:
            metrics.inc_login_reject("banned")
            raise Forbidden("banned")
        try:
            shop = await self._moderation.check_login(user)
        except DomainError as exc:
            metrics.inc_login_reject(exc.kind)
            logger.info("shop login refused", extra={"user_id": user.id, "reason": exc.kind})
            raise
        changes: dict[str, object] = {"last_login": _now()}
        if check_needs_rehash(user.password_hash):
            changes["password_hash"] = hash_password(payload.password)
        user = await self._users.update(user.id, changes) or user
        return _issue(user, shop)

    async def resolve_principal(self, user_id: str) -> Principal:
        """Load the caller behind a verified token. Role comes from storage, not the token."""
        user = await self._users.get(user_id)
        if user is None:
            raise Unauthenticated("unknown_user")
        if user.is_banned:
            raise Forbidden("banned")
        return Principal(id=user.id, role=user.role, username=user.username)

    # self-service profile

    async def get_profile(self, principal: Optional[Principal]) -> Tuple[User, Optional[Shop]]:
        principal = require_authenticated(principal)
        user = await self._users.get(principal.id)
        if user is None:
            raise NotFound("user")
        shop = await self._shops.get_active_for_user(user.id) if user.role is Role.SHOP else None
        return user, shop

    async def update_profile(self, principal: Optional[Principal], payload: ProfileUpdateRequest) -> User:
        principal = require_authenticated(principal)
        changes = {key: value for key, value in payload.model_dump(exclude_unset=True).items() if value is not None}
        if "email" in changes:
            changes["email"] = str(changes["email"]).lower()
            if await self._users.email_taken(changes["email"], exclude_id=principal.id):
                raise Conflict("email_taken")
        if "username" in changes and await self._users.username_taken(changes["username"], exclude_id=principal.id):
            raise Conflict("username_taken")
        user = await self._users.update(principal.id, changes) if changes else await self._users.get(principal.id)
        if user is None:
            raise NotFound("user")
        return user

    async def change_password(self, principal: Optional[Principal], payload: PasswordChangeRequest) -> None:
        principal = require_authenticated(principal)
        user = await self._users.get(principal.id)
        if user is None:
            raise NotFound("user")
        if not verify_password(user.password_hash, payload.current_password):
            raise ValidationError.single("current_password", "current password is incorrect")
        await self._users.update(user.id, {"password_hash": hash_password(payload.new_password)})
        logger.info("password changed", extra={"user_id": user.id})

    # admin

    async def list_users(
        self,
        actor: Principal,
        *,
        search: Optional[str] = None,
        role: Optional[Role] = None,
        is_banned: Optional[bool] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Page[User]:
        require_admin(actor)
        request = page_request(page, limit, default_limit=DEFAULT_USER_PAGE_LIMIT)
        items, total = await self._users.list(request, search=search, role=role, is_banned=is_banned)
        return Page.of(items, total, request)

    async def get_user_detail(self, actor: Principal, user_id: str) -> UserDetail:
        require_admin(actor)
        user = await self._users.get(user_id)
        if user is None:
            raise NotFound("user")
        shop = await self._shops.get_active_for_user(user.id)
        query = build_listing_query(author_id=user.id, status="all", include_hidden=True, limit=1)
        _, listing_count = await self._listings.find(query)
        if shop is not None:
            shop_query = build_listing_query(shop_id=shop.id, status="all", include_hidden=True, limit=1)
            _, shop_count = await self._listings.find(shop_query)
            listing_count += shop_count
        return UserDetail(user=user, shop=shop, listing_count=listing_count)

    async def _managed_target(self, actor: Principal, user_id: str) -> User:
        require_admin(actor)
        target = await self._users.get(user_id)
        if target is None:
            raise NotFound("user")
        ensure_can_manage_user(actor, target)
        return target

    async def toggle_ban(self, actor: Principal, user_id: str) -> User:
        target = await self._managed_target(actor, user_id)
        return await self.set_banned(actor, target, not target.is_banned)

    async def set_banned(self, actor: Principal, target: User, banned: bool) -> User:
        updated = await self._users.update(target.id, {"is_banned": banned})
        if updated is None:
            raise NotFound("user")
        logger.info(
            "user ban changed", extra={"user_id": target.id, "is_banned": banned, "actor_id": actor.id}
        )
        return updated

    async def set_role(self, actor: Principal, user_id: str, role: Role) -> User:
        if role not in ASSIGNABLE_ROLES:
            raise ValidationError.single("role", "role must be user or admin")
        target = await self._managed_target(actor, user_id)
        updated = await self._users.update(target.id, {"role": role})
        if updated is None:
            raise NotFound("user")
        logger.info("user role changed", extra={"user_id": target.id, "role": role.value, "actor_id": actor.id})
        return updated

    async def delete_user(self, actor: Principal, user_id: str) -> None:
        target = await self._managed_target(actor, user_id)
        await self.remove_account(target)
        logger.info("user deleted", extra={"user_id": target.id, "actor_id": actor.id})

    async def remove_account(self, target: User) -> None:
        """Delete the user with their listings, shops and stored images."""
        removed = list(await self._listings.delete_by_author(target.id))
        for shop in await self._shops.list_for_user(target.id):
            removed.extend(await self._listings.delete_by_shop(shop.id))
            await self._shops.delete(shop.id, owner_role=Role.USER)
        for listing in removed:
            await discard_images(self._storage, listing.images)
        await self._users.delete(target.id)
