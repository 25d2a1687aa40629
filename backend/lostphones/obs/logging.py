"""JSON log lines carrying the request context.

Context (request id, route, user, client ip) lives in one context variable so
every log call made while serving a request is tagged without passing it
around. Contact details never reach the log stream: credentials are dropped
and IMEIs/phone numbers keep only their last four digits.
"""

from __future__ import annotations

import json
import logging
import random
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from lostphones.settings import settings

_CONTEXT: ContextVar[Mapping[str, str]] = ContextVar("lostphones_log_context", default={})
_CONTEXT_KEYS = ("request_id", "route", "user_id", "client_ip")

_ROOT_LOGGER = "lostphones"

_DROPPED_KEYS = ("password", "token", "secret", "authorization", "email")
_MASKED_KEYS = ("imei", "phone", "contact_number")

_MAX_STRING = 256
_MAX_ITEMS = 10

# Attributes every LogRecord has; anything else came in through ``extra=``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def bind_context(**fields: Optional[str]) -> Token:
	"""Merge non-empty fields into the current context; pass the token to ``reset_context``."""
	unknown = set(fields) - set(_CONTEXT_KEYS)
	if unknown:
		raise TypeError(f"unknown log context fields: {sorted(unknown)}")
	merged = dict(_CONTEXT.get())
	merged.update({key: value for key, value in fields.items() if value})
	return _CONTEXT.set(merged)


def reset_context(token: Token) -> None:
	_CONTEXT.reset(token)


def bind_user(user_id: str) -> None:
	"""Tag the rest of the current request with the authenticated user."""
	_CONTEXT.set({**_CONTEXT.get(), "user_id": user_id})


def current_request_id() -> Optional[str]:
	return _CONTEXT.get().get("request_id")


def _mask(value: Any) -> str:
	digits = "".join(ch for ch in str(value) if ch.isdigit())
	return f"***{digits[-4:]}" if len(digits) > 4 else "***"


def _clean(key: str, value: Any) -> Any:
	lowered = key.lower()
	if any(word in lowered for word in _DROPPED_KEYS):
		return "[redacted]"
	if any(word in lowered for word in _MASKED_KEYS):
		return _mask(value)
	if isinstance(value, str):
		return value if len(value) <= _MAX_STRING else value[:_MAX_STRING] + "..."
	if isinstance(value, Mapping):
		return {str(k): _clean(str(k), v) for k, v in list(value.items())[:_MAX_ITEMS]}
	if isinstance(value, (list, tuple, set, frozenset)):
		return [_clean(key, item) for item in list(value)[:_MAX_ITEMS]]
	if value is None or isinstance(value, (bool, int, float)):
		return value
	return str(value)


class JSONLogFormatter(logging.Formatter):
	def format(self, record: logging.LogRecord) -> str:  # noqa: A003
		payload: Dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"logger": record.name,
			"msg": record.getMessage(),
			"service": settings.service_name,
			"env": settings.environment,
			"commit": settings.git_commit,
		}
		payload.update(_CONTEXT.get())
		for key, value in vars(record).items():
			if key not in _RECORD_ATTRS and key not in payload:
				payload[key] = _clean(key, value)
		if record.exc_info:
			payload["exc_info"] = self.formatException(record.exc_info)
		return json.dumps(payload, separators=(",", ":"), default=str)


class InfoSamplingFilter(logging.Filter):
	"""Keep a sampled share of info lines; warnings and errors always pass."""

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO:
			return True
		rate = settings.obs_log_sampling_rate_info
		return rate >= 1.0 or random.random() < max(rate, 0.0)


def configure_logging() -> logging.Logger:
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter())
	root = logging.getLogger()
	root.handlers[:] = [handler]
	root.setLevel(settings.obs_log_level)
	return logging.getLogger(_ROOT_LOGGER)


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or _ROOT_LOGGER)
