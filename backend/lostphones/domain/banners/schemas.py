"""Pydantic schemas for banner payloads and responses."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

IMAGE_URL_PATTERN = r"^(https?://|/)\S+$"


def _blank_to_none(value: Any) -> Any:
	if isinstance(value, str) and not value.strip():
		return None
	return value


def _optional_text(max_length: int, **constraints: Any) -> Any:
	return Annotated[
		Optional[Annotated[str, Field(max_length=max_length, **constraints)]], BeforeValidator(_blank_to_none)
	]


Title = _optional_text(100)
Subtitle = _optional_text(200)
ButtonText = _optional_text(50)
Link = _optional_text(500)
ImageUrl = _optional_text(500, pattern=IMAGE_URL_PATTERN)
DisplayOrder = Annotated[int, Field(ge=0, le=10_000)]


class BannerIn(BaseModel):
	model_config = ConfigDict(str_strip_whitespace=True)

	title: Title = None
	subtitle: Subtitle = None
	image_url: ImageUrl = None
	button_text: ButtonText = None
	button_link: Link = None
	is_active: bool = True
	display_order: DisplayOrder = 0


class BannerPatch(BaseModel):
	"""Partial update. Blank or null text fields clear the stored value."""

	model_config = ConfigDict(str_strip_whitespace=True)

	title: Title = None
	subtitle: Subtitle = None
	image_url: ImageUrl = None
	button_text: ButtonText = None
	button_link: Link = None
	is_active: Optional[bool] = None
	display_order: Optional[DisplayOrder] = None


class BannerOut(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	title: Optional[str] = None
	subtitle: Optional[str] = None
	image_url: str
	button_text: Optional[str] = None
	button_link: Optional[str] = None
	is_active: bool
	display_order: int
	created_at: datetime
	updated_at: datetime
