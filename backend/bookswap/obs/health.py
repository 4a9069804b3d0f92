"""Liveness and readiness checks."""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Awaitable, Callable, Dict

from bookswap.infra import postgres
from bookswap.infra.redis import redis_client
from bookswap.obs import metrics
from bookswap.settings import settings

LOGGER = logging.getLogger(__name__)


async def _timed(name: str, probe: Callable[[], Awaitable[Any]], timeout: float) -> Dict[str, Any]:
	started = perf_counter()
	try:
		await asyncio.wait_for(probe(), timeout=timeout)
	except Exception as exc:  # pragma: no cover - depends on runtime
		LOGGER.warning("readiness check failed", extra={"check": name}, exc_info=True)
		return {"ok": False, "error": str(exc) or type(exc).__name__}
	return {"ok": True, "latency_ms": round((perf_counter() - started) * 1000, 2)}


async def _check_redis() -> Dict[str, Any]:
	result = await _timed("redis", redis_client.ping, 0.2)
	metrics.mark_redis(result["ok"])
	return result


async def _check_postgres() -> Dict[str, Any]:
	pool = await postgres.pool_or_none()
	if pool is None:
		metrics.mark_postgres(False)
		# In-memory stores are acceptable outside production.
		return {"ok": not settings.is_prod(), "mode": "memory"}

	async def _select_one() -> None:
		async with pool.acquire() as conn:
			await conn.execute("SELECT 1")

	result = await _timed("postgres", _select_one, 0.3)
	metrics.mark_postgres(result["ok"])
	return {**result, "mode": "postgres"}


async def liveness() -> Dict[str, Any]:
	return {"status": "ok", "service": settings.service_name}


async def readiness() -> tuple[int, Dict[str, Any]]:
	checks = {"redis": await _check_redis(), "postgres": await _check_postgres()}
	ok = all(check["ok"] for check in checks.values())
	return (200 if ok else 503), {"status": "ok" if ok else "degraded", "checks": checks}
