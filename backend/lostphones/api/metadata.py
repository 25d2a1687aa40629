"""Public read endpoints for the phone and location reference data."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Query

from lostphones import container
from lostphones.domain.metadata.schemas import BrandOut, ColorOut, DistrictOut, ModelOut, TownOut

router = APIRouter(prefix="/metadata", tags=["metadata"])


@router.get("/brands", response_model=List[BrandOut])
async def list_brands(search: Optional[str] = Query(default=None)) -> List[BrandOut]:
	brands = await container.get_metadata_service().list_brands(search=search)
	return [BrandOut.model_validate(brand) for brand in brands]


@router.get("/models", response_model=List[ModelOut])
async def list_models(
	brand_id: Optional[str] = Query(default=None),
	search: Optional[str] = Query(default=None),
) -> List[ModelOut]:
	models = await container.get_metadata_service().list_models(brand_id=brand_id, search=search)
	return [ModelOut.model_validate(model) for model in models]


@router.get("/colors", response_model=List[ColorOut])
async def list_colors(
	model_id: Optional[str] = Query(default=None),
	search: Optional[str] = Query(default=None),
) -> List[ColorOut]:
	colors = await container.get_metadata_service().list_colors(model_id=model_id, search=search)
	return [ColorOut.model_validate(color) for color in colors]


@router.get("/districts", response_model=List[DistrictOut])
async def list_districts() -> List[DistrictOut]:
	districts = await container.get_metadata_service().list_districts()
	return [DistrictOut.model_validate(district) for district in districts]


@router.get("/towns", response_model=List[TownOut])
async def list_towns(district_id: Optional[str] = Query(default=None)) -> List[TownOut]:
	towns = await container.get_metadata_service().list_towns(district_id=district_id)
	return [TownOut.model_validate(town) for town in towns]
