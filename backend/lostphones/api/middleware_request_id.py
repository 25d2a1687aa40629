"""Assigns every request an id, echoed back in ``X-Request-Id``."""

from __future__ import annotations

import re
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from lostphones.api.request_id import REQUEST_ID_ATTR

HEADER = "X-Request-Id"
# Caller-supplied ids are reused only when short and printable.
_ACCEPTED_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        supplied = request.headers.get(HEADER, "")
        request_id = supplied if _ACCEPTED_ID.match(supplied) else uuid.uuid4().hex
        setattr(request.state, REQUEST_ID_ATTR, request_id)
        response = await call_next(request)
        response.headers.setdefault(HEADER, request_id)
        return response
