"""Public home page banners."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter

from lostphones import container
from lostphones.domain.banners.schemas import BannerOut

router = APIRouter(prefix="/banners", tags=["banners"])


@router.get("", response_model=List[BannerOut])
async def list_banners() -> List[BannerOut]:
	banners = await container.get_banner_service().list_active()
	return [BannerOut.model_validate(banner) for banner in banners]
