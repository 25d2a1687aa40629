"""Global error handlers rendering every failure as ``{kind, detail, request_id}``."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lostphones.api.request_id import get_request_id
from lostphones.domain.errors import DomainError, Forbidden, NotFound, Unauthenticated, ValidationError
from lostphones.domain.validation import violations_from_errors

logger = logging.getLogger(__name__)

_HTTP_KINDS = {
    401: "unauthenticated",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    429: "rate_limited",
}


def _render(request: Request, exc: DomainError) -> JSONResponse:
    payload = exc.payload()
    payload["request_id"] = get_request_id(request)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(status_code=exc.status_code, content=payload, headers=headers)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def domain_exc_handler(request: Request, exc: DomainError):  # type: ignore[override]
        if isinstance(exc, Forbidden):
            logger.info("request forbidden", extra={"reason": exc.reason, "path": request.url.path})
        elif isinstance(exc, NotFound):
            logger.info("target missing", extra={"entity": exc.entity, "path": request.url.path})
        return _render(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        return _render(request, ValidationError(violations_from_errors(exc.errors())))

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        payload = {
            "kind": _HTTP_KINDS.get(exc.status_code, "http_error"),
            "detail": exc.detail,
            "request_id": get_request_id(request),
        }
        return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):  # type: ignore[override]
        logger.exception("unhandled error", extra={"path": request.url.path, "method": request.method})
        payload = {"kind": "internal_error", "detail": "internal_error", "request_id": get_request_id(request)}
        return JSONResponse(status_code=500, content=payload)
