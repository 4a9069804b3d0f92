"""Profile persistence with an in-memory fallback."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from bookswap.infra.postgres import pool_or_none
from bookswap.domain.profiles.models import EDITABLE_FIELDS, Profile


class _InMemoryStore:
	"""Fallback store used in tests when Postgres is unavailable."""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self.profiles: Dict[str, Profile] = {}
		self.emails: Dict[str, str] = {}

	async def get(self, user_id: str) -> Optional[Profile]:
		async with self._lock:
			return self.profiles.get(user_id)

	async def upsert(self, user_id: str, fields: Mapping[str, Any]) -> Profile:
		async with self._lock:
			now = datetime.now(timezone.utc)
			current = self.profiles.get(user_id) or Profile(id=user_id, created_at=now)
			profile = replace(current, updated_at=now, **dict(fields))
			self.profiles[user_id] = profile
			return profile

	async def insert_default(self, user_id: str) -> Profile:
		async with self._lock:
			existing = self.profiles.get(user_id)
			if existing is not None:
				return existing
			profile = Profile(id=user_id)
			self.profiles[user_id] = profile
			return profile

	def reset(self) -> None:
		self.profiles.clear()
		self.emails.clear()


MEMORY_STORE = _InMemoryStore()

_PROFILE_COLUMNS = "id, full_name, bio, location, favorite_genre, website, avatar_url, created_at, updated_at"


class ProfileRepository:
	"""Repository backed by asyncpg with an in-memory fallback."""

	def __init__(self) -> None:
		self._pool_checked = False
		self._pool = None

	async def _pool_or_none(self):
		if self._pool_checked:
			return self._pool
		self._pool_checked = True
		self._pool = await pool_or_none()
		return self._pool

	async def get_profile(self, user_id: str) -> Optional[Profile]:
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.get(user_id)
		async with pool.acquire() as conn:
			row = await conn.fetchrow(f"SELECT {_PROFILE_COLUMNS} FROM profiles WHERE id = $1", user_id)
		return Profile.from_record(row) if row else None

	async def insert_default(self, user_id: str) -> Profile:
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.insert_default(user_id)
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				f"""
				INSERT INTO profiles (id) VALUES ($1)
				ON CONFLICT (id) DO UPDATE SET id = EXCLUDED.id
				RETURNING {_PROFILE_COLUMNS}
				""",
				user_id,
			)
		return Profile.from_record(row)

	async def upsert_profile(self, user_id: str, fields: Mapping[str, Any]) -> Profile:
		clean = {key: value for key, value in fields.items() if key in EDITABLE_FIELDS}
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.upsert(user_id, clean)
		columns = list(clean)
		placeholders = ", ".join(f"${idx + 2}" for idx in range(len(columns)))
		updates = ", ".join(f"{column} = EXCLUDED.{column}" for column in columns)
		insert_columns = ", ".join(["id", *columns])
		values_clause = f"$1, {placeholders}" if columns else "$1"
		conflict_clause = f"{updates}, updated_at = NOW()" if columns else "updated_at = NOW()"
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				f"""
				INSERT INTO profiles ({insert_columns}) VALUES ({values_clause})
				ON CONFLICT (id) DO UPDATE SET {conflict_clause}
				RETURNING {_PROFILE_COLUMNS}
				""",
				user_id,
				*[clean[column] for column in columns],
			)
		return Profile.from_record(row)

	async def get_user_email(self, user_id: str) -> Optional[str]:
		pool = await self._pool_or_none()
		if pool is None:
			return MEMORY_STORE.emails.get(user_id)
		async with pool.acquire() as conn:
			return await conn.fetchval("SELECT email FROM users WHERE id = $1", user_id)

	async def set_user_email(self, user_id: str, email: str) -> None:
		pool = await self._pool_or_none()
		if pool is None:
			MEMORY_STORE.emails[user_id] = email
			return
		async with pool.acquire() as conn:
			await conn.execute(
				"""
				INSERT INTO users (id, email) VALUES ($1, $2)
				ON CONFLICT (id) DO UPDATE SET email = EXCLUDED.email
				""",
				user_id,
				email,
			)
