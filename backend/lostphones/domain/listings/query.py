"""Turns optional search parameters into a ``ListingQuery`` descriptor.

Building a query is pure. The PostgreSQL repository compiles the descriptor to
SQL; the in-memory repository evaluates it with ``matches`` and ``order``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Tuple

from lostphones.domain.errors import FieldViolation, ValidationError
from lostphones.domain.listings.models import Listing, ListingStatus
from lostphones.domain.pagination import PageRequest, page_request

SORT_FIELDS = ("created_at", "lost_date", "views", "title", "relevance")
SORT_ORDERS = ("asc", "desc")
STATUS_ALL = "all"

DEFAULT_SEARCH_LIMIT = 10
DEFAULT_MY_LISTINGS_LIMIT = 12

_TERM_SPLIT = re.compile(r"\W+", re.UNICODE)


def search_terms(text: Optional[str]) -> Tuple[str, ...]:
    if not text:
        return ()
    terms = (term.casefold() for term in _TERM_SPLIT.split(text))
    return tuple(dict.fromkeys(term for term in terms if term))


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle.casefold() in haystack.casefold()


@dataclass(slots=True, frozen=True)
class ListingQuery:
    search: Optional[str] = None
    terms: Tuple[str, ...] = ()
    imei: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    location: Optional[str] = None
    # None means every status
    status: Optional[ListingStatus] = ListingStatus.ACTIVE
    author_id: Optional[str] = None
    shop_id: Optional[str] = None
    public_only: bool = True
    sort_by: str = "created_at"
    descending: bool = True
    page: PageRequest = field(default_factory=PageRequest)

    @property
    def effective_sort(self) -> str:
        """Relevance only ranks when there is text to rank against."""
        if self.sort_by == "relevance" and not self.terms:
            return "created_at"
        return self.sort_by

    @property
    def effective_descending(self) -> bool:
        if self.sort_by == "relevance" and not self.terms:
            return True
        return self.descending

    def matches(self, listing: Listing) -> bool:
        if self.public_only and not listing.is_public:
            return False
        if self.status is not None and listing.status is not self.status:
            return False
        if self.author_id is not None and listing.author_id != self.author_id:
            return False
        if self.shop_id is not None and listing.shop_id != self.shop_id:
            return False
        if self.imei and not _contains(listing.imei, self.imei):
            return False
        if self.brand and not _contains(listing.brand, self.brand):
            return False
        if self.model and not _contains(listing.phone_model, self.model):
            return False
        if self.location and not any(
            _contains(value, self.location) for value in (listing.lost_location, listing.town, listing.district)
        ):
            return False
        if self.terms and self.score(listing) == 0:
            return False
        return True

    def score(self, listing: Listing) -> float:
        """Number of search terms that appear as whole words in the searchable fields.

        Words are compared case-insensitively without stemming, so "phones" does
        not match "phone" here although the Postgres english text search does.
        """
        if not self.terms:
            return 0.0
        words = set(
            search_terms(
                " ".join(
                    (listing.title, listing.description, listing.phone_model, listing.brand, listing.lost_location)
                )
            )
        )
        return float(sum(1 for term in self.terms if term in words))

    def order(self, listings: Iterable[Listing]) -> list[Listing]:
        sort_by = self.effective_sort

        def key(listing: Listing):
            if sort_by == "relevance":
                primary = self.score(listing)
            elif sort_by == "title":
                primary = listing.title.casefold()
            else:
                primary = getattr(listing, sort_by)
            return (primary, listing.id)

        return sorted(listings, key=key, reverse=self.effective_descending)


def build_listing_query(
    *,
    search: Optional[str] = None,
    imei: Optional[str] = None,
    brand: Optional[str] = None,
    model: Optional[str] = None,
    location: Optional[str] = None,
    status: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    author_id: Optional[str] = None,
    shop_id: Optional[str] = None,
    include_hidden: bool = False,
    default_limit: int = DEFAULT_SEARCH_LIMIT,
    default_status: str = ListingStatus.ACTIVE.value,
) -> ListingQuery:
    """Validate raw parameters and build a query. Every violation is reported at once."""
    violations: list[FieldViolation] = []

    status_value = (_clean(status) or default_status).lower()
    status_filter: Optional[ListingStatus] = None
    if status_value != STATUS_ALL:
        try:
            status_filter = ListingStatus(status_value)
        except ValueError:
            violations.append(
                FieldViolation("status", "status must be one of active, resolved, deleted, all")
            )

    sort_value = _clean(sort_by) or "created_at"
    if sort_value not in SORT_FIELDS:
        violations.append(FieldViolation("sort_by", f"sort_by must be one of {', '.join(SORT_FIELDS)}"))
    order_value = (_clean(sort_order) or "desc").lower()
    if order_value not in SORT_ORDERS:
        violations.append(FieldViolation("sort_order", "sort_order must be asc or desc"))

    page_value: Optional[PageRequest] = None
    try:
        page_value = page_request(page, limit, default_limit=default_limit)
    except ValidationError as exc:
        violations.extend(exc.violations)

    if violations:
        raise ValidationError(violations)

    search_value = _clean(search)
    return ListingQuery(
        search=search_value,
        terms=search_terms(search_value),
        imei=_clean(imei),
        brand=_clean(brand),
        model=_clean(model),
        location=_clean(location),
        status=status_filter,
        author_id=author_id,
        shop_id=shop_id,
        public_only=not include_hidden,
        sort_by=sort_value,
        descending=order_value == "desc",
        page=page_value,
    )


def paginate(query: ListingQuery, listings: Sequence[Listing]) -> Tuple[list[Listing], int]:
    """Filter, order and slice an in-memory collection."""
    matched = query.order(listing for listing in listings if query.matches(listing))
    start = query.page.offset
    return matched[start : start + query.page.limit], len(matched)
