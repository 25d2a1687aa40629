"""Lost phone listings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple


class ListingStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"
    DELETED = "deleted"


# One-way: nothing returns a listing to active.
ALLOWED_TRANSITIONS: dict[ListingStatus, frozenset[ListingStatus]] = {
    ListingStatus.ACTIVE: frozenset({ListingStatus.RESOLVED, ListingStatus.DELETED}),
    ListingStatus.RESOLVED: frozenset({ListingStatus.DELETED}),
    ListingStatus.DELETED: frozenset(),
}


def can_transition(current: ListingStatus, target: ListingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True, frozen=True)
class ContactInfo:
    name: str
    phone: str
    email: Optional[str] = None


@dataclass(slots=True, frozen=True)
class ImageRef:
    url: str
    key: str


@dataclass(slots=True)
class Listing:
    id: str
    title: str
    description: str
    brand: str
    phone_model: str
    color: str
    imei: str
    district: str
    town: str
    lost_location: str
    lost_date: datetime
    contact: ContactInfo
    images: Tuple[ImageRef, ...] = ()
    status: ListingStatus = ListingStatus.ACTIVE
    author_id: Optional[str] = None
    shop_id: Optional[str] = None
    views: int = 0
    is_public: bool = True
    tags: Tuple[str, ...] = ()
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    author_username: Optional[str] = None
    shop_name: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.author_id is None) == (self.shop_id is None):
            raise ValueError("listing requires exactly one of author_id or shop_id")

    @property
    def is_shop_created(self) -> bool:
        return self.shop_id is not None
