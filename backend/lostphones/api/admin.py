"""Administrator endpoints: dashboard, shop moderation, users, listings, metadata and banners."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status
from pydantic import BaseModel, Field

from lostphones import container
from lostphones.api.listings import listing_out, page_out, read_submission
from lostphones.domain.access import Principal
from lostphones.domain.accounts.models import Role
from lostphones.domain.accounts.schemas import RoleChangeRequest, UserListResponse, UserOut
from lostphones.domain.banners.schemas import BannerOut
from lostphones.domain.listings.schemas import BulkListingAction, ListingOut, ListingPageOut
from lostphones.domain.metadata.schemas import (
	BrandIn,
	BrandOut,
	BrandPatch,
	ColorIn,
	ColorOut,
	ColorPatch,
	DistrictIn,
	DistrictOut,
	DistrictPatch,
	ModelIn,
	ModelOut,
	ModelPatch,
	TownIn,
	TownOut,
	TownPatch,
)
from lostphones.domain.shops.schemas import (
	ShopDecisionRequest,
	ShopDetailOut,
	ShopListResponse,
	ShopOut,
	ShopOwnerOut,
)
from lostphones.infra.auth import get_admin_user

router = APIRouter(prefix="/admin", tags=["admin"])


class DashboardOut(BaseModel):
	total_users: int
	banned_users: int
	total_listings: int
	active_listings: int
	resolved_listings: int
	pending_shops: int
	approved_shops: int
	recent_listings: List[ListingOut]
	recent_users: List[UserOut]


class UserDetailOut(BaseModel):
	user: UserOut
	shop: Optional[ShopOut] = None
	listing_count: int


class BulkActionRequest(BaseModel):
	action: str
	user_ids: List[str] = Field(default_factory=list, max_length=100)


class BulkActionOut(BaseModel):
	action: str
	affected: int


def _no_content() -> Response:
	return Response(status_code=status.HTTP_204_NO_CONTENT)


# dashboard


@router.get("/dashboard", response_model=DashboardOut)
async def dashboard(actor: Principal = Depends(get_admin_user)) -> DashboardOut:
	data = await container.get_admin_service().dashboard(actor)
	return DashboardOut(
		total_users=data.total_users,
		banned_users=data.banned_users,
		total_listings=data.total_listings,
		active_listings=data.active_listings,
		resolved_listings=data.resolved_listings,
		pending_shops=data.pending_shops,
		approved_shops=data.approved_shops,
		recent_listings=[listing_out(item) for item in data.recent_listings],
		recent_users=[UserOut.model_validate(user) for user in data.recent_users],
	)


@router.post("/bulk-action", response_model=BulkActionOut)
async def bulk_action(payload: BulkActionRequest, actor: Principal = Depends(get_admin_user)) -> BulkActionOut:
	affected = await container.get_admin_service().bulk_action(actor, payload.action, user_ids=payload.user_ids)
	return BulkActionOut(action=payload.action, affected=affected)


# shops


@router.get("/shops", response_model=ShopListResponse)
async def list_shops(
	status_filter: Optional[str] = Query(default=None, alias="status"),
	search: Optional[str] = Query(default=None),
	page: Optional[int] = Query(default=None),
	limit: Optional[int] = Query(default=None),
	actor: Principal = Depends(get_admin_user),
) -> ShopListResponse:
	result = await container.get_shop_service().list_shops(
		actor, status=status_filter, search=search, page=page, limit=limit
	)
	return ShopListResponse(
		items=[ShopOut.model_validate(shop) for shop in result.items],
		total=result.total,
		total_pages=result.total_pages,
		current_page=result.current_page,
		limit=result.limit,
	)


@router.get("/shops/{shop_id}", response_model=ShopDetailOut)
async def get_shop(shop_id: str, actor: Principal = Depends(get_admin_user)) -> ShopDetailOut:
	detail = await container.get_shop_service().get_detail(actor, shop_id)
	return ShopDetailOut(
		shop=ShopOut.model_validate(detail.shop),
		owner=ShopOwnerOut.model_validate(detail.owner) if detail.owner else None,
		listing_count=detail.listing_count,
	)


@router.patch("/shops/{shop_id}/approve", response_model=ShopOut)
async def approve_shop(shop_id: str, actor: Principal = Depends(get_admin_user)) -> ShopOut:
	shop = await container.get_shop_service().approve(actor, shop_id)
	return ShopOut.model_validate(shop)


@router.patch("/shops/{shop_id}/reject", response_model=ShopOut)
async def reject_shop(
	shop_id: str,
	payload: Optional[ShopDecisionRequest] = Body(default=None),
	actor: Principal = Depends(get_admin_user),
) -> ShopOut:
	reason = payload.reason if payload else None
	shop = await container.get_shop_service().reject(actor, shop_id, reason=reason)
	return ShopOut.model_validate(shop)


@router.patch("/shops/{shop_id}/revoke", response_model=ShopOut)
async def revoke_shop(
	shop_id: str,
	payload: Optional[ShopDecisionRequest] = Body(default=None),
	actor: Principal = Depends(get_admin_user),
) -> ShopOut:
	reason = payload.reason if payload else None
	shop = await container.get_shop_service().revoke(actor, shop_id, reason=reason)
	return ShopOut.model_validate(shop)


@router.delete("/shops/{shop_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_shop(shop_id: str, actor: Principal = Depends(get_admin_user)) -> Response:
	await container.get_shop_service().delete(actor, shop_id)
	return _no_content()


# users


@router.get("/users", response_model=UserListResponse)
async def list_users(
	search: Optional[str] = Query(default=None),
	role: Optional[Role] = Query(default=None),
	is_banned: Optional[bool] = Query(default=None),
	page: Optional[int] = Query(default=None),
	limit: Optional[int] = Query(default=None),
	actor: Principal = Depends(get_admin_user),
) -> UserListResponse:
	result = await container.get_account_service().list_users(
		actor, search=search, role=role, is_banned=is_banned, page=page, limit=limit
	)
	return UserListResponse(
		items=[UserOut.model_validate(user) for user in result.items],
		total=result.total,
		total_pages=result.total_pages,
		current_page=result.current_page,
		limit=result.limit,
	)


@router.get("/users/{user_id}", response_model=UserDetailOut)
async def get_user(user_id: str, actor: Principal = Depends(get_admin_user)) -> UserDetailOut:
	detail = await container.get_account_service().get_user_detail(actor, user_id)
	return UserDetailOut(
		user=UserOut.model_validate(detail.user),
		shop=ShopOut.model_validate(detail.shop) if detail.shop else None,
		listing_count=detail.listing_count,
	)


@router.patch("/users/{user_id}/ban", response_model=UserOut)
async def toggle_ban(user_id: str, actor: Principal = Depends(get_admin_user)) -> UserOut:
	user = await container.get_account_service().toggle_ban(actor, user_id)
	return UserOut.model_validate(user)


@router.patch("/users/{user_id}/role", response_model=UserOut)
async def change_role(
	user_id: str,
	payload: RoleChangeRequest,
	actor: Principal = Depends(get_admin_user),
) -> UserOut:
	user = await container.get_account_service().set_role(actor, user_id, payload.role)
	return UserOut.model_validate(user)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: str, actor: Principal = Depends(get_admin_user)) -> Response:
	await container.get_account_service().delete_user(actor, user_id)
	return _no_content()


# listings


@router.get("/listings", response_model=ListingPageOut)
async def list_listings(
	search: Optional[str] = Query(default=None),
	imei: Optional[str] = Query(default=None),
	brand: Optional[str] = Query(default=None),
	model: Optional[str] = Query(default=None),
	location: Optional[str] = Query(default=None),
	status_filter: Optional[str] = Query(default=None, alias="status"),
	author_id: Optional[str] = Query(default=None),
	shop_id: Optional[str] = Query(default=None),
	sort_by: Optional[str] = Query(default=None),
	sort_order: Optional[str] = Query(default=None),
	page: Optional[int] = Query(default=None),
	limit: Optional[int] = Query(default=None),
	actor: Principal = Depends(get_admin_user),
) -> ListingPageOut:
	result = await container.get_listing_service().admin_search(
		actor,
		search=search,
		imei=imei,
		brand=brand,
		model=model,
		location=location,
		status=status_filter,
		author_id=author_id,
		shop_id=shop_id,
		sort_by=sort_by,
		sort_order=sort_order,
		page=page,
		limit=limit,
	)
	return page_out(result)


@router.post("/listings/bulk", response_model=BulkActionOut)
async def bulk_listings(payload: BulkListingAction, actor: Principal = Depends(get_admin_user)) -> BulkActionOut:
	affected = await container.get_listing_service().bulk(actor, payload.action, payload.listing_ids)
	return BulkActionOut(action=payload.action, affected=affected)


@router.put("/listings/{listing_id}", response_model=ListingOut)
async def update_listing(
	listing_id: str,
	payload: Dict[str, Any] = Body(...),
	actor: Principal = Depends(get_admin_user),
) -> ListingOut:
	listing = await container.get_listing_service().admin_update(actor, listing_id, payload)
	return listing_out(listing)


@router.delete("/listings/{listing_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_listing(listing_id: str, actor: Principal = Depends(get_admin_user)) -> Response:
	await container.get_listing_service().admin_delete(actor, listing_id)
	return _no_content()


# metadata


@router.get("/brands", response_model=List[BrandOut])
async def admin_list_brands(
	search: Optional[str] = Query(default=None),
	actor: Principal = Depends(get_admin_user),
) -> List[BrandOut]:
	brands = await container.get_metadata_service().list_brands(search=search)
	return [BrandOut.model_validate(brand) for brand in brands]


@router.post("/brands", response_model=BrandOut, status_code=status.HTTP_201_CREATED)
async def create_brand(payload: BrandIn, actor: Principal = Depends(get_admin_user)) -> BrandOut:
	brand = await container.get_metadata_service().create_brand(actor, name=payload.name, logo=payload.logo)
	return BrandOut.model_validate(brand)


@router.put("/brands/{brand_id}", response_model=BrandOut)
async def update_brand(brand_id: str, payload: BrandPatch, actor: Principal = Depends(get_admin_user)) -> BrandOut:
	brand = await container.get_metadata_service().update_brand(
		actor, brand_id, name=payload.name, logo=payload.logo
	)
	return BrandOut.model_validate(brand)


@router.delete("/brands/{brand_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_brand(brand_id: str, actor: Principal = Depends(get_admin_user)) -> Response:
	await container.get_metadata_service().delete_brand(actor, brand_id)
	return _no_content()


@router.get("/models", response_model=List[ModelOut])
async def admin_list_models(
	brand_id: Optional[str] = Query(default=None),
	search: Optional[str] = Query(default=None),
	actor: Principal = Depends(get_admin_user),
) -> List[ModelOut]:
	models = await container.get_metadata_service().list_models(brand_id=brand_id, search=search)
	return [ModelOut.model_validate(model) for model in models]


@router.post("/models", response_model=ModelOut, status_code=status.HTTP_201_CREATED)
async def create_model(payload: ModelIn, actor: Principal = Depends(get_admin_user)) -> ModelOut:
	model = await container.get_metadata_service().create_model(
		actor, brand_id=payload.brand_id, name=payload.name, image=payload.image
	)
	return ModelOut.model_validate(model)


@router.put("/models/{model_id}", response_model=ModelOut)
async def update_model(model_id: str, payload: ModelPatch, actor: Principal = Depends(get_admin_user)) -> ModelOut:
	model = await container.get_metadata_service().update_model(
		actor, model_id, name=payload.name, brand_id=payload.brand_id, image=payload.image
	)
	return ModelOut.model_validate(model)


@router.delete("/models/{model_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_model(model_id: str, actor: Principal = Depends(get_admin_user)) -> Response:
	await container.get_metadata_service().delete_model(actor, model_id)
	return _no_content()


@router.get("/colors", response_model=List[ColorOut])
async def admin_list_colors(
	model_id: Optional[str] = Query(default=None),
	search: Optional[str] = Query(default=None),
	actor: Principal = Depends(get_admin_user),
) -> List[ColorOut]:
	colors = await container.get_metadata_service().list_colors(model_id=model_id, search=search)
	return [ColorOut.model_validate(color) for color in colors]


@router.post("/colors", response_model=ColorOut, status_code=status.HTTP_201_CREATED)
async def create_color(payload: ColorIn, actor: Principal = Depends(get_admin_user)) -> ColorOut:
	color = await container.get_metadata_service().create_color(
		actor, model_id=payload.model_id, name=payload.name, hex_code=payload.hex_code
	)
	return ColorOut.model_validate(color)


@router.put("/colors/{color_id}", response_model=ColorOut)
async def update_color(color_id: str, payload: ColorPatch, actor: Principal = Depends(get_admin_user)) -> ColorOut:
	color = await container.get_metadata_service().update_color(
		actor, color_id, name=payload.name, model_id=payload.model_id, hex_code=payload.hex_code
	)
	return ColorOut.model_validate(color)


@router.delete("/colors/{color_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_color(color_id: str, actor: Principal = Depends(get_admin_user)) -> Response:
	await container.get_metadata_service().delete_color(actor, color_id)
	return _no_content()


@router.get("/districts", response_model=List[DistrictOut])
async def admin_list_districts(actor: Principal = Depends(get_admin_user)) -> List[DistrictOut]:
	districts = await container.get_metadata_service().list_districts(include_inactive=True)
	return [DistrictOut.model_validate(district) for district in districts]


@router.post("/districts", response_model=DistrictOut, status_code=status.HTTP_201_CREATED)
async def create_district(payload: DistrictIn, actor: Principal = Depends(get_admin_user)) -> DistrictOut:
	district = await container.get_metadata_service().create_district(
		actor, name=payload.name, is_active=payload.is_active
	)
	return DistrictOut.model_validate(district)


@router.put("/districts/{district_id}", response_model=DistrictOut)
async def update_district(
	district_id: str,
	payload: DistrictPatch,
	actor: Principal = Depends(get_admin_user),
) -> DistrictOut:
	district = await container.get_metadata_service().update_district(
		actor, district_id, name=payload.name, is_active=payload.is_active
	)
	return DistrictOut.model_validate(district)


@router.delete("/districts/{district_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_district(district_id: str, actor: Principal = Depends(get_admin_user)) -> Response:
	await container.get_metadata_service().delete_district(actor, district_id)
	return _no_content()


@router.get("/towns", response_model=List[TownOut])
async def admin_list_towns(
	district_id: Optional[str] = Query(default=None),
	actor: Principal = Depends(get_admin_user),
) -> List[TownOut]:
	towns = await container.get_metadata_service().list_towns(district_id=district_id, include_inactive=True)
	return [TownOut.model_validate(town) for town in towns]


@router.post("/towns", response_model=TownOut, status_code=status.HTTP_201_CREATED)
async def create_town(payload: TownIn, actor: Principal = Depends(get_admin_user)) -> TownOut:
	town = await container.get_metadata_service().create_town(
		actor, district_id=payload.district_id, name=payload.name, is_active=payload.is_active
	)
	return TownOut.model_validate(town)


@router.put("/towns/{town_id}", response_model=TownOut)
async def update_town(town_id: str, payload: TownPatch, actor: Principal = Depends(get_admin_user)) -> TownOut:
	town = await container.get_metadata_service().update_town(
		actor, town_id, name=payload.name, district_id=payload.district_id, is_active=payload.is_active
	)
	return TownOut.model_validate(town)


@router.delete("/towns/{town_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_town(town_id: str, actor: Principal = Depends(get_admin_user)) -> Response:
	await container.get_metadata_service().delete_town(actor, town_id)
	return _no_content()


# banners
# Create and update take multipart (one ``image`` part) or JSON with ``image_url``.


@router.get("/banners", response_model=List[BannerOut])
async def admin_list_banners(actor: Principal = Depends(get_admin_user)) -> List[BannerOut]:
	banners = await container.get_banner_service().list_all(actor)
	return [BannerOut.model_validate(banner) for banner in banners]


@router.get("/banners/{banner_id}", response_model=BannerOut)
async def get_banner(banner_id: str, actor: Principal = Depends(get_admin_user)) -> BannerOut:
	banner = await container.get_banner_service().get(actor, banner_id)
	return BannerOut.model_validate(banner)


@router.post("/banners", response_model=BannerOut, status_code=status.HTTP_201_CREATED)
async def create_banner(request: Request, actor: Principal = Depends(get_admin_user)) -> BannerOut:
	raw, images = await read_submission(request, image_field="image")
	banner = await container.get_banner_service().create(actor, raw, images)
	return BannerOut.model_validate(banner)


@router.put("/banners/{banner_id}", response_model=BannerOut)
async def update_banner(banner_id: str, request: Request, actor: Principal = Depends(get_admin_user)) -> BannerOut:
	raw, images = await read_submission(request, image_field="image")
	banner = await container.get_banner_service().update(actor, banner_id, raw, images)
	return BannerOut.model_validate(banner)


@router.delete("/banners/{banner_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_banner(banner_id: str, actor: Principal = Depends(get_admin_user)) -> Response:
	await container.get_banner_service().delete(actor, banner_id)
	return _no_content()
