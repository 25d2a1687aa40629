"""Pydantic schemas for registration, login and profile flows."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from lostphones.domain.accounts.models import AccountType, Role
from lostphones.domain.shops.schemas import ShopOut
from lostphones.domain.validation import PHONE_PATTERN, USERNAME_PATTERN

Username = Annotated[str, Field(min_length=3, max_length=30, pattern=USERNAME_PATTERN)]
Password = Annotated[str, Field(min_length=6, max_length=128)]
PhoneNumber = Annotated[str, Field(pattern=PHONE_PATTERN)]


class RegisterRequest(BaseModel):
	username: Username
	email: Optional[EmailStr] = None
	password: Password
	phone_number: PhoneNumber


class LoginRequest(BaseModel):
	identifier: Annotated[str, Field(min_length=1, max_length=254)]
	password: Annotated[str, Field(min_length=1, max_length=128)]


class ProfileUpdateRequest(BaseModel):
	username: Optional[Username] = None
	email: Optional[EmailStr] = None
	phone_number: Optional[PhoneNumber] = None


class PasswordChangeRequest(BaseModel):
	current_password: Annotated[str, Field(min_length=1, max_length=128)]
	new_password: Password


class RoleChangeRequest(BaseModel):
	role: Role


class UserOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	username: str
	email: Optional[str] = None
	phone_number: Optional[str] = None
	role: Role
	account_type: AccountType
	is_banned: bool
	last_login: Optional[datetime] = None
	created_at: datetime


class AuthResponse(BaseModel):
	token: str
	token_type: Literal["bearer"] = "bearer"
	expires_in: int
	user: UserOut
	shop: Optional[ShopOut] = None


class ProfileOut(BaseModel):
	user: UserOut
	shop: Optional[ShopOut] = None


class ShopRegistrationOut(BaseModel):
	user: UserOut
	shop: ShopOut


class UserListResponse(BaseModel):
	items: List[UserOut]
	total: int
	total_pages: int
	current_page: int
	limit: int
