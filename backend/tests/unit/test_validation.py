import pytest

from lostphones.domain.errors import ValidationError
from lostphones.domain.listings.schemas import ListingCreate, parse_lost_date
from lostphones.domain.pagination import Page, page_request, total_pages
from lostphones.domain.validation import validate, violations_from_errors


def test_violations_drop_location_roots_and_value_error_prefix():
    errors = [
        {"loc": ("body", "contact", "email"), "msg": "value is not a valid email address"},
        {"loc": ("body", "contact", "email"), "msg": "second error for the same field"},
        {"loc": ("query", "page"), "msg": "Value error, page must be at least 1"},
        {"loc": (), "msg": "Field required"},
    ]
    violations = violations_from_errors(errors)
    assert [violation.as_dict() for violation in violations] == [
        {"field": "contact.email", "message": "value is not a valid email address"},
        {"field": "page", "message": "page must be at least 1"},
        {"field": "body", "message": "Field required"},
    ]


def test_validate_raises_domain_error_with_every_field(listing_data):
    raw = listing_data(title="", description="", imei="abc")
    raw["contact"] = {"name": "Kasun", "phone": "0771234567", "email": "not-an-email"}
    with pytest.raises(ValidationError) as excinfo:
        validate(ListingCreate, raw)
    assert {"title", "description", "imei", "contact.email"} <= set(excinfo.value.fields)
    payload = excinfo.value.payload()
    assert payload["kind"] == "validation_error"
    assert payload["errors"]


def test_blank_contact_email_is_dropped(listing_data):
    raw = listing_data()
    raw["contact"]["email"] = "  "
    assert validate(ListingCreate, raw).contact.email is None


def test_lost_date_accepts_dates_and_zulu_times():
    assert parse_lost_date("2024-03-01").tzinfo is not None
    assert parse_lost_date("2024-03-01T18:30:00Z").hour == 18
    with pytest.raises(ValueError):
        parse_lost_date("last friday")


def test_tags_are_normalised(listing_data):
    listing = validate(ListingCreate, listing_data(tags=" Urgent, reward ,,"))
    assert listing.tags == ["urgent", "reward"]


def test_page_request_bounds():
    assert page_request(None, None, default_limit=12).limit == 12
    with pytest.raises(ValidationError) as excinfo:
        page_request(0, 500)
    assert set(excinfo.value.fields) == {"page", "limit"}


@pytest.mark.parametrize("total,limit,expected", [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2)])
def test_total_pages(total, limit, expected):
    assert total_pages(total, limit) == expected


def test_page_past_the_end_is_empty_not_an_error():
    page = Page.of([], 5, page_request(3, 10))
    assert page.items == []
    assert page.total_pages == 1
    assert page.current_page == 3
