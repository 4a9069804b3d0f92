"""The process-wide asyncpg pool.

Repositories ask for the pool through ``pool_or_none``; a missing or unreachable
database makes them fall back to their in-memory stores.
"""

from __future__ import annotations

from typing import Optional

import asyncpg

from bookswap.settings import settings

_pool: Optional[asyncpg.pool.Pool] = None


async def init_pool() -> asyncpg.pool.Pool:
	global _pool
	if _pool is None:
		_pool = await asyncpg.create_pool(
			dsn=settings.postgres_url,
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			command_timeout=30,
		)
	return _pool


async def get_pool() -> asyncpg.pool.Pool:
	pool = _pool or await init_pool()
	if pool is None:
		raise RuntimeError("postgres pool is not initialised")
	return pool


async def pool_or_none() -> Optional[asyncpg.pool.Pool]:
	try:
		return await get_pool()
	except (RuntimeError, OSError, asyncpg.PostgresError):
		return None


async def close_pool() -> None:
	global _pool
	pool, _pool = _pool, None
	if pool is not None:
		await pool.close()
