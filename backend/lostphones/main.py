"""ASGI entrypoint for the lost phones API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from lostphones import container
from lostphones.api import admin, auth, banners, listings, metadata, ops
from lostphones.api.errors import install_error_handlers
from lostphones.api.middleware_request_id import RequestIdMiddleware
from lostphones.infra import postgres
from lostphones.infra.storage import LocalObjectStorage
from lostphones.obs import init as obs_init
from lostphones.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	if settings.use_postgres:
		pool = await postgres.init_pool()
		container.configure_postgres(pool)
		logger.info("serving from postgres")
	else:
		container.configure_memory(storage=LocalObjectStorage())
		logger.warning("USE_POSTGRES is off; data lives in memory and is lost on restart")
	try:
		yield
	finally:
		if settings.use_postgres:
			await postgres.close_pool()


app = FastAPI(title="Lost Phones API", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_origins())
# Starlette disallows wildcard '*' with allow_credentials=True.
if "*" in allow_origins or not allow_origins:
	allow_origins = ["http://localhost:3000", "http://127.0.0.1:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

# Local disk uploads are served by the app itself outside production
if not settings.is_prod():
	upload_root = Path(settings.upload_dir).resolve()
	upload_root.mkdir(parents=True, exist_ok=True)
	app.mount("/uploads", StaticFiles(directory=str(upload_root), check_dir=True), name="uploads")

obs_init(app)
app.add_middleware(RequestIdMiddleware)

app.include_router(auth.router)
app.include_router(listings.router)
app.include_router(metadata.router)
app.include_router(banners.router)
app.include_router(admin.router)
app.include_router(ops.router)
