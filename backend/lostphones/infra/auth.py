"""Authentication dependencies for FastAPI endpoints.

Bearer JWTs (HS256, ``settings.secret_key``) identify the caller; the account
is then re-read from storage so bans and role changes apply immediately.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidTokenError

from lostphones import container
from lostphones.domain.access import Principal, require_admin, require_authenticated
from lostphones.domain.errors import Unauthenticated
from lostphones.infra import jwt as jwt_helper
from lostphones.obs import logging as obs_logging

_bearer_scheme = HTTPBearer(auto_error=False)


def verify_access_jwt(token: str) -> str:
	"""Validate an access token and return its subject."""
	try:
		payload = jwt_helper.decode_access(token)
	except InvalidTokenError as exc:
		raise Unauthenticated("invalid_token") from exc
	sub = str(payload.get("sub") or "").strip()
	if not sub:
		raise Unauthenticated("invalid_token")
	return sub


async def get_optional_user(
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[Principal]:
	if not credentials or credentials.scheme.lower() != "bearer":
		return None
	user_id = verify_access_jwt(credentials.credentials)
	principal = await container.get_account_service().resolve_principal(user_id)
	obs_logging.bind_user(principal.id)
	return principal


async def get_current_user(principal: Optional[Principal] = Depends(get_optional_user)) -> Principal:
	return require_authenticated(principal)


async def get_admin_user(principal: Principal = Depends(get_current_user)) -> Principal:
	return require_admin(principal)
