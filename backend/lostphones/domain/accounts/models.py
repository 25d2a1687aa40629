"""User accounts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class Role(str, Enum):
    USER = "user"
    SHOP = "shop"
    ADMIN = "admin"


class AccountType(str, Enum):
    """What the account registered as. Never changes after registration."""

    USER = "user"
    SHOP = "shop"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class User:
    id: str
    username: str
    password_hash: str
    role: Role = Role.USER
    account_type: AccountType = AccountType.USER
    email: Optional[str] = None
    phone_number: Optional[str] = None
    is_banned: bool = False
    last_login: Optional[datetime] = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_shop(self) -> bool:
        return self.role is Role.SHOP
