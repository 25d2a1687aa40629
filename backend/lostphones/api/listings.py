"""Public listing search and the authoring endpoints for users and shops.

Creation accepts ``multipart/form-data`` (flat ``contact_*`` fields plus
repeated ``images`` parts) or a JSON document without images.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status
from starlette.datastructures import FormData, UploadFile

from lostphones import container
from lostphones.domain.access import Principal
from lostphones.domain.errors import ValidationError
from lostphones.domain.listings.models import Listing
from lostphones.domain.listings.schemas import ListingOut, ListingPageOut, ListingStatisticsOut
from lostphones.domain.pagination import Page
from lostphones.infra.auth import get_current_user
from lostphones.infra.storage import ImageUpload

router = APIRouter(prefix="/listings", tags=["listings"])

_CONTACT_FIELDS = {"contact_name": "name", "contact_phone": "phone", "contact_email": "email"}


def listing_out(listing: Listing) -> ListingOut:
	return ListingOut.model_validate(listing)


def page_out(page: Page[Listing]) -> ListingPageOut:
	return ListingPageOut(
		items=[listing_out(item) for item in page.items],
		total=page.total,
		total_pages=page.total_pages,
		current_page=page.current_page,
		limit=page.limit,
	)


def _form_fields(form: FormData) -> Dict[str, Any]:
	raw: Dict[str, Any] = {}
	contact: Dict[str, Any] = {}
	for key, value in form.multi_items():
		if isinstance(value, UploadFile):
			continue
		if key in _CONTACT_FIELDS:
			contact[_CONTACT_FIELDS[key]] = value
		elif key == "tags":
			raw.setdefault("tags", []).extend(part for part in value.split(",") if part.strip())
		else:
			raw[key] = value
	if contact:
		raw["contact"] = contact
	return raw


async def _form_images(form: FormData, field: str) -> List[ImageUpload]:
	uploads: List[ImageUpload] = []
	for value in form.getlist(field):
		if not isinstance(value, UploadFile) or not value.filename:
			continue
		uploads.append(
			ImageUpload(
				content_type=value.content_type or "application/octet-stream",
				data=await value.read(),
				filename=value.filename,
			)
		)
	return uploads


async def read_submission(
	request: Request, *, image_field: str = "images"
) -> tuple[Dict[str, Any], List[ImageUpload]]:
	"""Read a JSON object, or form fields plus the file parts named ``image_field``."""
	content_type = request.headers.get("content-type", "")
	if content_type.startswith("application/json"):
		try:
			body = await request.json()
		except ValueError as exc:
			raise ValidationError.single("body", "invalid JSON") from exc
		if not isinstance(body, dict):
			raise ValidationError.single("body", "expected a JSON object")
		return body, []
	form = await request.form()
	return _form_fields(form), await _form_images(form, image_field)


@router.get("", response_model=ListingPageOut)
async def search_listings(
	search: Optional[str] = Query(default=None),
	imei: Optional[str] = Query(default=None),
	brand: Optional[str] = Query(default=None),
	model: Optional[str] = Query(default=None),
	location: Optional[str] = Query(default=None),
	status_filter: Optional[str] = Query(default=None, alias="status"),
	sort_by: Optional[str] = Query(default=None),
	sort_order: Optional[str] = Query(default=None),
	page: Optional[int] = Query(default=None),
	limit: Optional[int] = Query(default=None),
) -> ListingPageOut:
	result = await container.get_listing_service().search(
		search=search,
		imei=imei,
		brand=brand,
		model=model,
		location=location,
		status=status_filter,
		sort_by=sort_by,
		sort_order=sort_order,
		page=page,
		limit=limit,
	)
	return page_out(result)


@router.get("/statistics", response_model=ListingStatisticsOut)
async def listing_statistics() -> ListingStatisticsOut:
	stats = await container.get_listing_service().statistics()
	return ListingStatisticsOut(total=stats.total, active=stats.active, resolved=stats.resolved)


@router.get("/mine", response_model=ListingPageOut)
async def my_listings(
	status_filter: Optional[str] = Query(default=None, alias="status"),
	page: Optional[int] = Query(default=None),
	limit: Optional[int] = Query(default=None),
	principal: Principal = Depends(get_current_user),
) -> ListingPageOut:
	result = await container.get_listing_service().my_listings(
		principal, status=status_filter, page=page, limit=limit
	)
	return page_out(result)


@router.get("/imei/{imei}", response_model=ListingPageOut)
async def search_by_imei(
	imei: str,
	page: Optional[int] = Query(default=None),
	limit: Optional[int] = Query(default=None),
) -> ListingPageOut:
	result = await container.get_listing_service().search_by_imei(imei, page=page, limit=limit)
	return page_out(result)


@router.get("/{listing_id}", response_model=ListingOut)
async def get_listing(listing_id: str) -> ListingOut:
	listing = await container.get_listing_service().get_detail(listing_id)
	return listing_out(listing)


@router.post("", response_model=ListingOut, status_code=status.HTTP_201_CREATED)
async def create_listing(request: Request, principal: Principal = Depends(get_current_user)) -> ListingOut:
	raw, images = await read_submission(request)
	listing = await container.get_listing_service().create(principal, raw, images)
	return listing_out(listing)


@router.put("/{listing_id}", response_model=ListingOut)
async def update_listing(
	listing_id: str,
	payload: Dict[str, Any] = Body(...),
	principal: Principal = Depends(get_current_user),
) -> ListingOut:
	listing = await container.get_listing_service().update(principal, listing_id, payload)
	return listing_out(listing)


@router.patch("/{listing_id}/resolve", response_model=ListingOut)
async def resolve_listing(listing_id: str, principal: Principal = Depends(get_current_user)) -> ListingOut:
	listing = await container.get_listing_service().resolve(principal, listing_id)
	return listing_out(listing)


@router.delete("/{listing_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_listing(listing_id: str, principal: Principal = Depends(get_current_user)) -> Response:
	await container.get_listing_service().delete(principal, listing_id)
	return Response(status_code=status.HTTP_204_NO_CONTENT)
