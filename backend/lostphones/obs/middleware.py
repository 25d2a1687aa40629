"""Access log and request metrics for every HTTP call."""

from __future__ import annotations

import time

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from lostphones.obs import logging as obs_logging
from lostphones.obs import metrics

_access_log = obs_logging.get_logger("lostphones.http")

# Probes and the scrape endpoint would drown the access log.
_QUIET_PATHS = frozenset({"/health/live", "/health/ready", "/metrics"})


def _route_label(request: Request) -> str:
	"""Route template (``/listings/{listing_id}``) so metric labels stay bounded."""
	route = request.scope.get("route")
	path = getattr(route, "path", None)
	return path if isinstance(path, str) else "unmatched"


class AccessLogMiddleware(BaseHTTPMiddleware):
	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		client = request.client
		token = obs_logging.bind_context(
			request_id=getattr(request.state, "request_id", None),
			route=request.url.path,
			client_ip=client.host if client else None,
		)
		started = time.perf_counter()
		status_code = 500
		try:
			response = await call_next(request)
			status_code = response.status_code
			return response
		finally:
			elapsed = time.perf_counter() - started
			route = _route_label(request)
			metrics.observe_request(route, request.method, status_code, elapsed)
			if request.url.path not in _QUIET_PATHS:
				_access_log.info(
					"http_request",
					extra={
						"method": request.method,
						"route": route,
						"status": status_code,
						"latency_ms": round(elapsed * 1000, 2),
					},
				)
			obs_logging.reset_context(token)


def install(app: FastAPI) -> None:
	app.add_middleware(AccessLogMiddleware)
