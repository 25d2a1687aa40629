"""Fixed-window request budgets kept in Redis."""

from __future__ import annotations

import time
from typing import Optional

from lostphones.infra.redis import redis_client


def window_key(kind: str, subject: str, window_seconds: int, now: float) -> str:
	bucket = int(now // window_seconds)
	return f"rl:{kind}:{subject}:{window_seconds}:{bucket}"


async def allow(
	kind: str,
	actor_id: str,
	*,
	limit: int,
	window_seconds: int = 60,
	now: Optional[float] = None,
) -> bool:
	"""Count one attempt against ``kind`` for ``actor_id``; False once the budget is spent."""
	if limit <= 0:
		return False
	window = max(1, int(window_seconds))
	key = window_key(kind, actor_id, window, time.time() if now is None else now)
	async with redis_client.pipeline(transaction=True) as pipe:
		pipe.incr(key)
		pipe.expire(key, window)
		count, _ = await pipe.execute()
	return int(count) <= limit
