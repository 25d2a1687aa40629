"""Pydantic models for the metadata endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BrandOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	name: str
	logo: Optional[str] = None
	created_at: Optional[datetime] = None


class ModelOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	name: str
	brand_id: str
	image: Optional[str] = None


class ColorOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	name: str
	model_id: str
	hex_code: Optional[str] = None


class DistrictOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	name: str
	is_active: bool


class TownOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	name: str
	district_id: str
	is_active: bool


# Name lengths are checked by the service so every violation surfaces the same way.


class BrandIn(BaseModel):
	name: str
	logo: Optional[str] = None


class BrandPatch(BaseModel):
	name: Optional[str] = None
	logo: Optional[str] = None


class ModelIn(BaseModel):
	name: str
	brand_id: str
	image: Optional[str] = None


class ModelPatch(BaseModel):
	name: Optional[str] = None
	brand_id: Optional[str] = None
	image: Optional[str] = None


class ColorIn(BaseModel):
	name: str
	model_id: str
	hex_code: Optional[str] = Field(default=None, max_length=7)


class ColorPatch(BaseModel):
	name: Optional[str] = None
	model_id: Optional[str] = None
	hex_code: Optional[str] = Field(default=None, max_length=7)


class DistrictIn(BaseModel):
	name: str
	is_active: bool = True


class DistrictPatch(BaseModel):
	name: Optional[str] = None
	is_active: Optional[bool] = None


class TownIn(BaseModel):
	name: str
	district_id: str
	is_active: bool = True


class TownPatch(BaseModel):
	name: Optional[str] = None
	district_id: Optional[str] = None
	is_active: Optional[bool] = None
