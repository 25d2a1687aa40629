from datetime import datetime, timedelta, timezone

import pytest

from lostphones.domain.errors import ValidationError
from lostphones.domain.listings.models import ContactInfo, Listing, ListingStatus
from lostphones.domain.listings.query import build_listing_query, paginate, search_terms
from lostphones.domain.pagination import page_request
from lostphones.infra.listing_repo import compile_listing_query

BASE = datetime(2024, 3, 1, tzinfo=timezone.utc)


def make_listing(listing_id: str, **overrides) -> Listing:
    data = dict(
        id=listing_id,
        title="Lost phone",
        description="Lost somewhere in town",
        brand="Samsung",
        phone_model="Galaxy S21",
        color="Black",
        imei="356938035643809",
        district="Colombo",
        town="Maharagama",
        lost_location="Bus stand",
        lost_date=BASE,
        contact=ContactInfo(name="Kasun", phone="+94771234567"),
        author_id="u1",
        created_at=BASE,
    )
    data.update(overrides)
    return Listing(**data)


def test_defaults_select_active_public_newest_first():
    query = build_listing_query()
    assert query.status is ListingStatus.ACTIVE
    assert query.public_only is True
    assert query.effective_sort == "created_at"
    assert query.effective_descending is True
    assert (query.page.page, query.page.limit) == (1, 10)


def test_status_all_removes_constraint():
    assert build_listing_query(status="all").status is None
    assert build_listing_query(status="Resolved").status is ListingStatus.RESOLVED


def test_invalid_parameters_are_reported_together():
    with pytest.raises(ValidationError) as excinfo:
        build_listing_query(status="lost", sort_by="price", sort_order="up", page=0, limit=101)
    assert set(excinfo.value.fields) == {"status", "sort_by", "sort_order", "page", "limit"}


@pytest.mark.parametrize("limit", [0, 101])
def test_limit_bounds(limit):
    with pytest.raises(ValidationError) as excinfo:
        build_listing_query(limit=limit)
    assert excinfo.value.fields == ["limit"]


def test_page_bounds_match_shared_pagination_rules():
    with pytest.raises(ValidationError) as excinfo:
        build_listing_query(sort_by="price", page=0)
    messages = {violation.field: violation.message for violation in excinfo.value.violations}
    assert messages == {
        "sort_by": "sort_by must be one of created_at, lost_date, views, title, relevance",
        "page": "page must be at least 1",
    }
    assert build_listing_query(page=3, limit=None, default_limit=12).page == page_request(3, None, default_limit=12)


def test_relevance_without_search_falls_back_to_newest():
    query = build_listing_query(sort_by="relevance", sort_order="asc")
    assert query.effective_sort == "created_at"
    assert query.effective_descending is True


def test_search_terms_are_split_and_deduplicated():
    assert search_terms("iPhone  13, iphone!") == ("iphone", "13")
    assert search_terms("   ") == ()


def test_location_matches_town_or_district_or_place():
    listings = [
        make_listing("a", town="Nugegoda"),
        make_listing("b", district="Nugegoda West"),
        make_listing("c", lost_location="near nugegoda market"),
        make_listing("d"),
    ]
    items, total = paginate(build_listing_query(location="NUGEGODA"), listings)
    assert total == 3
    assert {item.id for item in items} == {"a", "b", "c"}


def test_filters_are_anded():
    listings = [
        make_listing("a", brand="Apple", phone_model="iPhone 13", town="Nugegoda"),
        make_listing("b", brand="Apple", phone_model="iPhone 12", town="Nugegoda"),
        make_listing("c", brand="Samsung", phone_model="iPhone 13", town="Nugegoda"),
    ]
    items, total = paginate(build_listing_query(brand="apple", model="13", location="nugegoda"), listings)
    assert total == 1
    assert items[0].id == "a"


def test_hidden_and_other_statuses_are_excluded_on_public_surfaces():
    listings = [
        make_listing("a"),
        make_listing("b", is_public=False),
        make_listing("c", status=ListingStatus.RESOLVED),
    ]
    items, _ = paginate(build_listing_query(), listings)
    assert [item.id for item in items] == ["a"]
    items, total = paginate(build_listing_query(status="all", include_hidden=True), listings)
    assert total == 3


def test_text_search_is_an_or_of_terms_ranked_by_matches():
    listings = [
        make_listing("a", title="Lost iPhone", phone_model="iPhone 13"),
        make_listing("b", title="Lost Pixel", phone_model="Pixel 7", brand="Google"),
        make_listing("c", title="Found wallet", description="Brown leather", lost_location="Galle"),
    ]
    query = build_listing_query(search="iphone 13 pixel", sort_by="relevance")
    items, total = paginate(query, listings)
    assert total == 2
    assert [item.id for item in items] == ["a", "b"]


def test_text_search_matches_whole_words_only():
    listings = [
        make_listing("a", title="Lost phone near the station"),
        make_listing("b", title="Lost headphones", description="Wireless earbuds in a case"),
    ]
    items, total = paginate(build_listing_query(search="phone"), listings)
    assert [item.id for item in items] == ["a"]
    assert total == 1
    assert build_listing_query(search="Phone").score(listings[1]) == 0.0


def test_ordering_breaks_ties_on_id_and_paginates_past_the_end():
    listings = [make_listing(listing_id) for listing_id in ("b", "c", "a")]
    query = build_listing_query(sort_by="views", sort_order="asc", limit=2)
    items, total = paginate(query, listings)
    assert [item.id for item in items] == ["a", "b"]
    assert total == 3
    items, total = paginate(build_listing_query(page=5, limit=2), listings)
    assert items == []
    assert total == 3


def test_sort_by_lost_date_descending():
    listings = [
        make_listing("old", lost_date=BASE - timedelta(days=3)),
        make_listing("new", lost_date=BASE + timedelta(days=3)),
    ]
    items, _ = paginate(build_listing_query(sort_by="lost_date"), listings)
    assert [item.id for item in items] == ["new", "old"]


def test_compiled_sql_binds_every_value():
    query = build_listing_query(search="iphone 13", brand="50%_off", location="Nugegoda", sort_by="relevance")
    compiled = compile_listing_query(query)
    assert "l.is_public" in compiled.where
    assert "l.status = $1" in compiled.where
    assert "l.brand ILIKE $2" in compiled.where
    assert "l.town ILIKE $3" in compiled.where
    assert "l.search_vector @@ to_tsquery('english', $4)" in compiled.where
    assert compiled.params == ("active", "%50\\%\\_off%", "%Nugegoda%", "iphone | 13")
    assert compiled.order_by.startswith("ts_rank(")
    assert compiled.order_by.endswith("l.id DESC")


def test_compiled_sql_without_filters():
    compiled = compile_listing_query(build_listing_query(status="all", include_hidden=True, sort_by="title", sort_order="asc"))
    assert compiled.where == "TRUE"
    assert compiled.params == ()
    assert compiled.order_by == "lower(l.title) ASC, l.id ASC"
