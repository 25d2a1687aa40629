"""User storage."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Protocol, Sequence, Tuple

from lostphones.domain.accounts.models import Role, User
from lostphones.domain.pagination import PageRequest

MUTABLE_FIELDS = frozenset(
    {"username", "email", "phone_number", "password_hash", "role", "is_banned", "last_login"}
)


class UserRepository(Protocol):
    async def get(self, user_id: str) -> Optional[User]:
        ...

    async def get_by_identifier(self, identifier: str) -> Optional[User]:
        """Look a user up by username, email or phone number."""
        ...

    async def username_taken(self, username: str, *, exclude_id: Optional[str] = None) -> bool:
        ...

    async def email_taken(self, email: str, *, exclude_id: Optional[str] = None) -> bool:
        ...

    async def create(self, user: User) -> User:
        ...

    async def update(self, user_id: str, changes: Mapping[str, Any]) -> Optional[User]:
        ...

    async def delete(self, user_id: str) -> bool:
        ...

    async def list(
        self,
        page: PageRequest,
        *,
        search: Optional[str] = None,
        role: Optional[Role] = None,
        is_banned: Optional[bool] = None,
    ) -> Tuple[Sequence[User], int]:
        ...

    async def count(self, *, role: Optional[Role] = None, is_banned: Optional[bool] = None) -> int:
        ...

    async def recent(self, limit: int) -> Sequence[User]:
        ...


def _same(left: Optional[str], right: Optional[str]) -> bool:
    if not left or not right:
        return False
    return left.casefold() == right.casefold()


class InMemoryUserRepository(UserRepository):
    def __init__(self) -> None:
        self.items: dict[str, User] = {}

    async def get(self, user_id: str) -> Optional[User]:
        return self.items.get(user_id)

    async def get_by_identifier(self, identifier: str) -> Optional[User]:
        for user in self.items.values():
            if _same(user.username, identifier) or _same(user.email, identifier) or user.phone_number == identifier:
                return user
        return None

    async def username_taken(self, username: str, *, exclude_id: Optional[str] = None) -> bool:
        return any(_same(user.username, username) and user.id != exclude_id for user in self.items.values())

    async def email_taken(self, email: str, *, exclude_id: Optional[str] = None) -> bool:
        return any(_same(user.email, email) and user.id != exclude_id for user in self.items.values())

    async def create(self, user: User) -> User:
        self.items[user.id] = user
        return user

    async def update(self, user_id: str, changes: Mapping[str, Any]) -> Optional[User]:
        unknown = set(changes) - MUTABLE_FIELDS
        if unknown:
            raise KeyError(f"immutable user fields: {sorted(unknown)}")
        user = self.items.get(user_id)
        if user is None:
            return None
        user = replace(user, **changes, updated_at=datetime.now(timezone.utc))
        self.items[user_id] = user
        return user

    async def delete(self, user_id: str) -> bool:
        return self.items.pop(user_id, None) is not None

    async def list(
        self,
        page: PageRequest,
        *,
        search: Optional[str] = None,
        role: Optional[Role] = None,
        is_banned: Optional[bool] = None,
    ) -> Tuple[Sequence[User], int]:
        needle = (search or "").casefold()
        matched = [
            user
            for user in self.items.values()
            if (role is None or user.role is role)
            and (is_banned is None or user.is_banned is is_banned)
            and (
                not needle
                or needle in user.username.casefold()
                or needle in (user.email or "").casefold()
                or needle in (user.phone_number or "")
            )
        ]
        matched.sort(key=lambda user: (user.created_at, user.id), reverse=True)
        return matched[page.offset : page.offset + page.limit], len(matched)

    async def count(self, *, role: Optional[Role] = None, is_banned: Optional[bool] = None) -> int:
        return sum(
            1
            for user in self.items.values()
            if (role is None or user.role is role) and (is_banned is None or user.is_banned is is_banned)
        )

    async def recent(self, limit: int) -> Sequence[User]:
        ordered = sorted(self.items.values(), key=lambda user: (user.created_at, user.id), reverse=True)
        return ordered[:limit]
