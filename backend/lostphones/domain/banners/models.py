"""Promotional banners shown on the home page."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from lostphones.domain.listings.models import ImageRef


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class Banner:
    id: str
    image_url: str
    # None when the image is hosted elsewhere and was given as a URL
    image_key: Optional[str] = None
    title: Optional[str] = None
    subtitle: Optional[str] = None
    button_text: Optional[str] = None
    button_link: Optional[str] = None
    is_active: bool = True
    display_order: int = 0
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @property
    def stored_image(self) -> Optional[ImageRef]:
        if self.image_key is None:
            return None
        return ImageRef(url=self.image_url, key=self.image_key)


def display_key(banner: Banner) -> tuple[int, datetime, str]:
    """Ascending display order; older banners first on ties."""
    return (banner.display_order, banner.created_at, banner.id)
