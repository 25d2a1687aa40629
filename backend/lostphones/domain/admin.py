"""Admin dashboard figures and bulk user actions.

Bulk listing actions live on ``ListingService.bulk``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from lostphones.domain.access import Principal, require_admin
from lostphones.domain.accounts.models import Role, User
from lostphones.domain.accounts.repository import UserRepository
from lostphones.domain.accounts.service import AccountService
from lostphones.domain.errors import ValidationError
from lostphones.domain.listings.models import Listing, ListingStatus
from lostphones.domain.listings.repository import ListingRepository
from lostphones.domain.shops.models import ShopStatus
from lostphones.domain.shops.repository import ShopRepository

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5
USER_ACTIONS = ("ban", "unban", "delete_users")


@dataclass(slots=True)
class Dashboard:
    total_users: int
    banned_users: int
    total_listings: int
    active_listings: int
    resolved_listings: int
    pending_shops: int
    approved_shops: int
    recent_listings: Sequence[Listing]
    recent_users: Sequence[User]


class AdminService:
    def __init__(
        self,
        users: UserRepository,
        shops: ShopRepository,
        listings: ListingRepository,
        accounts: AccountService,
    ) -> None:
        self._users = users
        self._shops = shops
        self._listings = listings
        self._accounts = accounts

    async def dashboard(self, actor: Principal) -> Dashboard:
        require_admin(actor)
        return Dashboard(
            total_users=await self._users.count(),
            banned_users=await self._users.count(is_banned=True),
            total_listings=await self._listings.count(),
            active_listings=await self._listings.count(status=ListingStatus.ACTIVE),
            resolved_listings=await self._listings.count(status=ListingStatus.RESOLVED),
            pending_shops=await self._shops.count(status=ShopStatus.PENDING),
            approved_shops=await self._shops.count(status=ShopStatus.APPROVED),
            recent_listings=await self._listings.recent(RECENT_LIMIT),
            recent_users=await self._users.recent(RECENT_LIMIT),
        )

    async def bulk_action(
        self,
        actor: Principal,
        action: str,
        *,
        user_ids: Sequence[str] = (),
    ) -> int:
        """Apply one action to many users. Admin accounts and the caller are skipped."""
        require_admin(actor)
        if action not in USER_ACTIONS:
            raise ValidationError.single("action", f"action must be one of {', '.join(USER_ACTIONS)}")
        if not user_ids:
            raise ValidationError.single("user_ids", "user_ids must not be empty")

        affected = 0
        for user_id in dict.fromkeys(user_ids):
            target = await self._users.get(user_id)
            if target is None or target.id == actor.id or target.role is Role.ADMIN:
                continue
            if action == "delete_users":
                await self._accounts.remove_account(target)
            else:
                await self._accounts.set_banned(actor, target, action == "ban")
            affected += 1
        logger.info("bulk user action", extra={"action": action, "affected": affected, "actor_id": actor.id})
        return affected
