"""Storage contract for home page banners."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from lostphones.domain.banners.models import Banner, display_key


class BannerRepository(Protocol):
    async def list_banners(self, *, active_only: bool = False) -> Sequence[Banner]:
        ...

    async def get(self, banner_id: str) -> Optional[Banner]:
        ...

    async def save(self, banner: Banner) -> Banner:
        ...

    async def delete(self, banner_id: str) -> bool:
        ...


class InMemoryBannerRepository(BannerRepository):
    def __init__(self) -> None:
        self.banners: dict[str, Banner] = {}

    async def list_banners(self, *, active_only: bool = False) -> Sequence[Banner]:
        items = [banner for banner in self.banners.values() if banner.is_active or not active_only]
        return sorted(items, key=display_key)

    async def get(self, banner_id: str) -> Optional[Banner]:
        return self.banners.get(banner_id)

    async def save(self, banner: Banner) -> Banner:
        self.banners[banner.id] = banner
        return banner

    async def delete(self, banner_id: str) -> bool:
        return self.banners.pop(banner_id, None) is not None
