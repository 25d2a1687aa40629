"""Pydantic schemas for shop registration and moderation."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from lostphones.domain.accounts.models import Role
from lostphones.domain.shops.models import ShopStatus
from lostphones.domain.validation import PHONE_PATTERN, USERNAME_PATTERN


class RegisterShopRequest(BaseModel):
	username: Annotated[str, Field(min_length=3, max_length=30, pattern=USERNAME_PATTERN)]
	email: EmailStr
	password: Annotated[str, Field(min_length=6, max_length=128)]
	shop_name: Annotated[str, Field(min_length=3, max_length=100)]
	owner_name: Annotated[str, Field(min_length=3, max_length=100)]
	contact_number: Annotated[str, Field(pattern=PHONE_PATTERN)]
	address: Annotated[str, Field(min_length=5, max_length=200)]
	location: Annotated[str, Field(min_length=3, max_length=100)]
	description: Optional[Annotated[str, Field(max_length=500)]] = None


class ShopProfileUpdateRequest(BaseModel):
	shop_name: Optional[Annotated[str, Field(min_length=3, max_length=100)]] = None
	owner_name: Optional[Annotated[str, Field(min_length=3, max_length=100)]] = None
	contact_number: Optional[Annotated[str, Field(pattern=PHONE_PATTERN)]] = None
	address: Optional[Annotated[str, Field(min_length=5, max_length=200)]] = None
	location: Optional[Annotated[str, Field(min_length=3, max_length=100)]] = None
	description: Optional[Annotated[str, Field(max_length=500)]] = None


class ShopDecisionRequest(BaseModel):
	reason: Optional[Annotated[str, Field(max_length=500)]] = None


class ShopOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	user_id: str
	shop_name: str
	owner_name: str
	contact_number: str
	address: str
	location: str
	description: Optional[str] = None
	status: ShopStatus
	is_approved: bool
	approved_at: Optional[datetime] = None
	approved_by: Optional[str] = None
	decided_at: Optional[datetime] = None
	decision_reason: Optional[str] = None
	created_at: datetime


class ShopOwnerOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	username: str
	email: Optional[str] = None
	phone_number: Optional[str] = None
	role: Role
	is_banned: bool


class ShopDetailOut(BaseModel):
	shop: ShopOut
	owner: Optional[ShopOwnerOut] = None
	listing_count: int = 0


class ShopListResponse(BaseModel):
	items: List[ShopOut]
	total: int
	total_pages: int
	current_page: int
	limit: int
