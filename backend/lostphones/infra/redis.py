"""Shared Redis handle.

Modules import ``redis_client`` once; the connection behind it is created on
first use and can be replaced (tests swap in fakeredis) without re-importing.
"""

from __future__ import annotations

from typing import Any, Optional

import redis.asyncio as redis

from lostphones.settings import settings


class RedisProxy:
	def __init__(self) -> None:
		self._client: Optional[redis.Redis] = None

	@property
	def client(self) -> redis.Redis:
		if self._client is None:
			self._client = redis.from_url(settings.redis_url, decode_responses=True)
		return self._client

	def set_client(self, client: Optional[redis.Redis]) -> None:
		self._client = client

	def __getattr__(self, name: str) -> Any:
		return getattr(self.client, name)


redis_client = RedisProxy()


def set_redis_client(client: Optional[redis.Redis]) -> None:
	redis_client.set_client(client)
