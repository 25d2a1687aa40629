"""Liveness and readiness probes."""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Awaitable, Callable, Dict, Tuple

from lostphones.infra import postgres
from lostphones.infra.redis import redis_client
from lostphones.obs import metrics
from lostphones.settings import settings

logger = logging.getLogger(__name__)

Check = Dict[str, Any]


async def _timed(name: str, probe: Callable[[], Awaitable[Any]], timeout: float) -> Check:
	started = perf_counter()
	try:
		await asyncio.wait_for(probe(), timeout=timeout)
	except Exception as exc:  # pragma: no cover - depends on runtime
		logger.warning("readiness probe failed", extra={"dependency": name}, exc_info=True)
		return {"ok": False, "error": type(exc).__name__}
	return {"ok": True, "latency_ms": round((perf_counter() - started) * 1000, 2)}


async def _postgres_select() -> None:
	pool = await postgres.get_pool()
	async with pool.acquire() as conn:
		await conn.execute("SELECT 1")


async def check_redis() -> Check:
	result = await _timed("redis", redis_client.ping, timeout=0.2)
	metrics.mark_redis(result["ok"])
	return result


async def check_postgres() -> Check:
	if not settings.use_postgres:
		return {"ok": True, "mode": "memory"}
	result = await _timed("postgres", _postgres_select, timeout=0.5)
	metrics.mark_postgres(result["ok"])
	return result


async def liveness() -> Dict[str, str]:
	return {"status": "ok"}


async def readiness() -> Tuple[int, Dict[str, Any]]:
	"""503 with per-dependency detail when any backing store is unreachable."""
	checks = {"redis": await check_redis(), "postgres": await check_postgres()}
	ok = all(check["ok"] for check in checks.values())
	return (200 if ok else 503), {"status": "ok" if ok else "degraded", "checks": checks}
