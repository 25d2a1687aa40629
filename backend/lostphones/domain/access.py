"""Role and ownership rules applied by every service.

Check order is fixed: authentication, then the role gate of the surface, then
target existence (``NotFound``), then target-specific authorization
(``Forbidden``). Callers load the target between the second and last step.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from lostphones.domain.accounts.models import Role, User
from lostphones.domain.errors import Forbidden, Unauthenticated
from lostphones.domain.shops.models import Shop, ShopStatus


@dataclass(slots=True, frozen=True)
class Principal:
    """Verified caller identity. Role reflects the stored user, not the token."""

    id: str
    role: Role
    username: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def require_authenticated(principal: Optional[Principal]) -> Principal:
    if principal is None:
        raise Unauthenticated()
    return principal


def require_admin(principal: Optional[Principal]) -> Principal:
    principal = require_authenticated(principal)
    if not principal.is_admin:
        raise Forbidden("admin_required")
    return principal


def ensure_can_post(principal: Principal, shop: Optional[Shop]) -> None:
    """Posting gate. Shop accounts may only post while approved."""
    if principal.role is not Role.SHOP:
        return
    if shop is None or shop.status is not ShopStatus.APPROVED:
        raise Forbidden("shop_not_approved")


def ensure_owner_or_admin(principal: Principal, owner_id: Optional[str]) -> None:
    if principal.is_admin:
        return
    if owner_id is None or owner_id != principal.id:
        raise Forbidden("not_owner")


def ensure_can_manage_user(actor: Principal, target: User) -> None:
    """Admins never act on their own account or on another admin."""
    if target.id == actor.id:
        raise Forbidden("self_target")
    if target.role is Role.ADMIN:
        raise Forbidden("admin_target")
