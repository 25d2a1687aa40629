"""Account registration, login and self-service profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status

from lostphones import container
from lostphones.domain.access import Principal
from lostphones.domain.accounts.schemas import (
	AuthResponse,
	LoginRequest,
	PasswordChangeRequest,
	ProfileOut,
	ProfileUpdateRequest,
	RegisterRequest,
	ShopRegistrationOut,
	UserOut,
)
from lostphones.domain.accounts.service import Session
from lostphones.domain.errors import RateLimited
from lostphones.domain.shops.schemas import RegisterShopRequest, ShopOut, ShopProfileUpdateRequest
from lostphones.infra import rate_limit
from lostphones.infra.auth import get_current_user
from lostphones.settings import settings

router = APIRouter(prefix="/auth", tags=["auth"])


def _client_ip(request: Request) -> str:
	client = request.client
	return client.host if client else "unknown"


async def _throttle(kind: str, request: Request, limit: int) -> None:
	if not await rate_limit.allow(kind, _client_ip(request), limit=limit):
		raise RateLimited()


def _session_out(session: Session) -> AuthResponse:
	return AuthResponse(
		token=session.token,
		expires_in=session.expires_in,
		user=UserOut.model_validate(session.user),
		shop=ShopOut.model_validate(session.shop) if session.shop else None,
	)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, request: Request) -> AuthResponse:
	await _throttle("register", request, settings.register_rate_per_minute)
	session = await container.get_account_service().register(payload)
	return _session_out(session)


@router.post("/register-shop", response_model=ShopRegistrationOut, status_code=status.HTTP_201_CREATED)
async def register_shop(payload: RegisterShopRequest, request: Request) -> ShopRegistrationOut:
	"""Create a shop owner account. The shop stays pending until an admin approves it."""
	await _throttle("register", request, settings.register_rate_per_minute)
	user, shop = await container.get_shop_service().register(payload)
	return ShopRegistrationOut(user=UserOut.model_validate(user), shop=ShopOut.model_validate(shop))


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginRequest, request: Request) -> AuthResponse:
	await _throttle("login", request, settings.login_rate_per_minute)
	session = await container.get_account_service().login(payload)
	return _session_out(session)


@router.get("/profile", response_model=ProfileOut)
async def get_profile(principal: Principal = Depends(get_current_user)) -> ProfileOut:
	user, shop = await container.get_account_service().get_profile(principal)
	return ProfileOut(
		user=UserOut.model_validate(user),
		shop=ShopOut.model_validate(shop) if shop else None,
	)


@router.put("/profile", response_model=UserOut)
async def update_profile(
	payload: ProfileUpdateRequest,
	principal: Principal = Depends(get_current_user),
) -> UserOut:
	user = await container.get_account_service().update_profile(principal, payload)
	return UserOut.model_validate(user)


@router.put("/change-password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
	payload: PasswordChangeRequest,
	principal: Principal = Depends(get_current_user),
) -> Response:
	await container.get_account_service().change_password(principal, payload)
	return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/shop-profile", response_model=ShopOut)
async def get_shop_profile(principal: Principal = Depends(get_current_user)) -> ShopOut:
	shop = await container.get_shop_service().get_my_shop(principal)
	return ShopOut.model_validate(shop)


@router.put("/shop-profile", response_model=ShopOut)
async def update_shop_profile(
	payload: ShopProfileUpdateRequest,
	principal: Principal = Depends(get_current_user),
) -> ShopOut:
	shop = await container.get_shop_service().update_my_shop(principal, payload)
	return ShopOut.model_validate(shop)
