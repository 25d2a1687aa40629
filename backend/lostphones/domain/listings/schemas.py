"""Pydantic schemas for listing payloads and responses."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field

from lostphones.domain.listings.models import ListingStatus
from lostphones.domain.validation import IMEI_PATTERN

Title = Annotated[str, Field(min_length=5, max_length=100)]
Description = Annotated[str, Field(min_length=10, max_length=1000)]
Imei = Annotated[str, Field(pattern=IMEI_PATTERN)]
Brand = Annotated[str, Field(min_length=1, max_length=50)]
PhoneModelName = Annotated[str, Field(min_length=1, max_length=100)]
Color = Annotated[str, Field(min_length=1, max_length=30)]
PlaceName = Annotated[str, Field(min_length=1, max_length=100)]
LostLocation = Annotated[str, Field(min_length=1, max_length=200)]
Tag = Annotated[str, Field(min_length=1, max_length=30)]


def parse_lost_date(value: Any) -> Any:
	if value is None or isinstance(value, datetime):
		return value
	if not isinstance(value, str) or not value.strip():
		raise ValueError("lost_date must be an ISO 8601 date")
	try:
		parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
	except ValueError as exc:
		raise ValueError("lost_date must be an ISO 8601 date") from exc
	if parsed.tzinfo is None:
		parsed = parsed.replace(tzinfo=timezone.utc)
	return parsed


def _blank_to_none(value: Any) -> Any:
	if isinstance(value, str) and not value.strip():
		return None
	return value


def _normalise_tags(value: Any) -> Any:
	if value is None:
		return value
	if isinstance(value, str):
		value = value.split(",")
	return [str(tag).strip().lower() for tag in value if str(tag).strip()]


LostDate = Annotated[datetime, BeforeValidator(parse_lost_date)]
Tags = Annotated[List[Tag], Field(max_length=10), BeforeValidator(_normalise_tags)]


class ContactIn(BaseModel):
	model_config = ConfigDict(str_strip_whitespace=True)

	name: Annotated[str, Field(min_length=1, max_length=100)]
	phone: Annotated[str, Field(min_length=1, max_length=30)]
	email: Annotated[Optional[EmailStr], BeforeValidator(_blank_to_none)] = None


class ListingCreate(BaseModel):
	model_config = ConfigDict(str_strip_whitespace=True)

	title: Title
	description: Description
	brand: Brand
	phone_model: PhoneModelName
	color: Color
	imei: Imei
	district: PlaceName
	town: PlaceName
	lost_location: LostLocation
	lost_date: LostDate
	contact: ContactIn
	tags: Tags = Field(default_factory=list)

class ListingUpdate(BaseModel):
	model_config = ConfigDict(str_strip_whitespace=True)

	title: Optional[Title] = None
	description: Optional[Description] = None
	brand: Optional[Brand] = None
	phone_model: Optional[PhoneModelName] = None
	color: Optional[Color] = None
	imei: Optional[Imei] = None
	district: Optional[PlaceName] = None
	town: Optional[PlaceName] = None
	lost_location: Optional[LostLocation] = None
	lost_date: Optional[LostDate] = None
	contact: Optional[ContactIn] = None
	tags: Optional[Tags] = None

class AdminListingUpdate(ListingUpdate):
	status: Optional[ListingStatus] = None


class ContactOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	name: str
	phone: str
	email: Optional[str] = None


class ImageOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	url: str
	key: str


class ListingOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

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
	contact: ContactOut
	images: List[ImageOut]
	status: ListingStatus
	author_id: Optional[str] = None
	author_username: Optional[str] = None
	shop_id: Optional[str] = None
	shop_name: Optional[str] = None
	is_shop_created: bool
	views: int
	tags: List[str]
	created_at: datetime
	updated_at: datetime


class ListingPageOut(BaseModel):
	items: List[ListingOut]
	total: int
	total_pages: int
	current_page: int
	limit: int


class ListingStatisticsOut(BaseModel):
	total: int
	active: int
	resolved: int


class BulkListingAction(BaseModel):
	action: Annotated[str, Field(pattern=r"^(resolve|delete)$")]
	listing_ids: Annotated[List[str], Field(min_length=1, max_length=100)]
