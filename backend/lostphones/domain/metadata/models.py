"""Reference vocabularies used by listing fields."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class PhoneBrand:
    id: str
    name: str
    logo: Optional[str] = None
    created_at: datetime = field(default_factory=_now)


@dataclass(slots=True)
class PhoneModel:
    id: str
    name: str
    brand_id: str
    image: Optional[str] = None
    created_at: datetime = field(default_factory=_now)


@dataclass(slots=True)
class PhoneColor:
    id: str
    name: str
    model_id: str
    hex_code: Optional[str] = None
    created_at: datetime = field(default_factory=_now)


@dataclass(slots=True)
class District:
    id: str
    name: str
    is_active: bool = True
    created_at: datetime = field(default_factory=_now)


@dataclass(slots=True)
class Town:
    id: str
    name: str
    district_id: str
    is_active: bool = True
    created_at: datetime = field(default_factory=_now)
