"""Fixed-window request budgets kept in Redis."""

from __future__ import annotations

import time
from typing import Optional

from bookswap.infra.redis import redis_client


class RateLimitExceeded(Exception):
	def __init__(self, kind: str, retry_after: int = 60) -> None:
		super().__init__(kind)
		self.kind = kind
		self.retry_after = retry_after


async def hit(kind: str, actor_id: str, *, window_seconds: int = 60, now: Optional[float] = None) -> int:
	"""Count one use of ``kind`` by ``actor_id`` in the current window; returns the running total."""
	window = max(1, int(window_seconds))
	bucket = int((now if now is not None else time.time()) // window)
	key = f"rl:{kind}:{actor_id}:{window}:{bucket}"
	async with redis_client.pipeline(transaction=True) as pipe:
		pipe.incr(key)
		pipe.expire(key, window)
		count, _ = await pipe.execute()
	return int(count)


async def allow(
	kind: str,
	actor_id: str,
	*,
	limit: int,
	window_seconds: int = 60,
	now: Optional[float] = None,
) -> bool:
	if limit <= 0:
		return False
	return await hit(kind, actor_id, window_seconds=window_seconds, now=now) <= limit


async def enforce(kind: str, actor_id: str, *, limit: int, window_seconds: int = 60) -> None:
	"""Raise RateLimitExceeded once the actor has used up the window's budget."""
	if not await allow(kind, actor_id, limit=limit, window_seconds=window_seconds):
		raise RateLimitExceeded(kind, retry_after=window_seconds)
