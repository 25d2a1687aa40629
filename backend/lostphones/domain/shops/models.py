"""Shop registrations and their moderation status."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class ShopStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REVOKED = "revoked"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class Shop:
    id: str
    user_id: str
    shop_name: str
    owner_name: str
    contact_number: str
    address: str
    location: str
    description: Optional[str] = None
    status: ShopStatus = ShopStatus.PENDING
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    decided_at: Optional[datetime] = None
    decided_by: Optional[str] = None
    decision_reason: Optional[str] = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @property
    def is_approved(self) -> bool:
        return self.status is ShopStatus.APPROVED
