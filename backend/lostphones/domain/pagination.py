"""Page/limit pagination shared by listing and moderation queries."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Generic, Sequence, TypeVar

from lostphones.domain.errors import FieldViolation, ValidationError

T = TypeVar("T")

MAX_LIMIT = 100


@dataclass(slots=True, frozen=True)
class PageRequest:
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_request(page: int | None, limit: int | None, *, default_limit: int = 10) -> PageRequest:
    """Validate raw page/limit values. Pages are 1-indexed."""

    page_value = 1 if page is None else page
    limit_value = default_limit if limit is None else limit
    violations: list[FieldViolation] = []
    if page_value < 1:
        violations.append(FieldViolation("page", "page must be at least 1"))
    if limit_value < 1 or limit_value > MAX_LIMIT:
        violations.append(FieldViolation("limit", f"limit must be between 1 and {MAX_LIMIT}"))
    if violations:
        raise ValidationError(violations)
    return PageRequest(page=page_value, limit=limit_value)


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit > 0 else 0


@dataclass(slots=True)
class Page(Generic[T]):
    items: Sequence[T]
    total: int
    current_page: int
    limit: int
    total_pages: int = field(init=False)

    def __post_init__(self) -> None:
        self.total_pages = total_pages(self.total, self.limit)

    @classmethod
    def of(cls, items: Sequence[T], total: int, request: PageRequest) -> "Page[T]":
        return cls(items=list(items), total=total, current_page=request.page, limit=request.limit)
