"""Logging, metrics and health probes."""

from __future__ import annotations

from fastapi import FastAPI

from lostphones.obs import logging as obs_logging
from lostphones.obs import middleware
from lostphones.settings import settings


def init(app: FastAPI) -> None:
	"""Configure JSON logging and attach the access-log middleware."""
	if not settings.obs_enabled:
		return
	obs_logging.configure_logging()
	middleware.install(app)


__all__ = ["init"]
