"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNTER = Counter(
	"lostphones_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"lostphones_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

LISTINGS_CREATED = Counter(
	"lostphones_listings_created_total",
	"Lost phone listings created",
	["producer"],
)

LISTING_VIEWS = Counter(
	"lostphones_listing_views_total",
	"Listing detail fetches (every fetch counts)",
)

LISTING_SEARCHES = Counter(
	"lostphones_listing_searches_total",
	"Listing searches executed",
	["mode"],
)

LISTING_STATUS_CHANGES = Counter(
	"lostphones_listing_status_changes_total",
	"Listing status transitions",
	["status"],
)

IMAGE_UPLOADS = Counter(
	"lostphones_image_uploads_total",
	"Listing image uploads to object storage",
	["result"],
)

SHOP_TRANSITIONS = Counter(
	"lostphones_shop_transitions_total",
	"Shop moderation state transitions",
	["to_status"],
)

LOGIN_REJECTS = Counter(
	"lostphones_login_rejects_total",
	"Login attempts refused",
	["reason"],
)

POSTGRES_UP = Gauge(
	"lostphones_postgres_up",
	"Whether the last Postgres readiness probe succeeded",
)

REDIS_UP = Gauge(
	"lostphones_redis_up",
	"Whether the last Redis readiness probe succeeded",
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_listing_created(producer: str) -> None:
	LISTINGS_CREATED.labels(producer=producer).inc()


def inc_listing_view() -> None:
	LISTING_VIEWS.inc()


def inc_listing_search(mode: str) -> None:
	LISTING_SEARCHES.labels(mode=mode).inc()


def inc_listing_status(status: str) -> None:
	LISTING_STATUS_CHANGES.labels(status=status).inc()


def inc_image_upload(result: str, count: int = 1) -> None:
	IMAGE_UPLOADS.labels(result=result).inc(count)


def inc_shop_transition(to_status: str) -> None:
	SHOP_TRANSITIONS.labels(to_status=to_status).inc()


def inc_login_reject(reason: str) -> None:
	LOGIN_REJECTS.labels(reason=reason).inc()


def mark_postgres(ok: bool) -> None:
	POSTGRES_UP.set(1 if ok else 0)


def mark_redis(ok: bool) -> None:
	REDIS_UP.set(1 if ok else 0)
