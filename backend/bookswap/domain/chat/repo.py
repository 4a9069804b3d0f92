"""Conversation, participant and message persistence."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import ulid

from bookswap.domain.chat.models import Conversation, Message, Participant, count_unread
from bookswap.domain.profiles.repo import MEMORY_STORE as PROFILE_STORE
from bookswap.infra.postgres import pool_or_none


_SUMMARY_SQL = """
WITH mine AS (
	SELECT conversation_id, last_read_at
	FROM conversation_participants
	WHERE user_id = $1
),
other AS (
	SELECT DISTINCT ON (p.conversation_id) p.conversation_id, p.user_id
	FROM conversation_participants p
	JOIN mine m ON m.conversation_id = p.conversation_id
	WHERE p.user_id <> $1
	ORDER BY p.conversation_id, p.user_id
)
SELECT
	c.id,
	c.created_at,
	c.book_id,
	c.last_message,
	c.last_message_at,
	c.last_message_sender_id,
	o.user_id AS other_user_id,
	pr.full_name AS other_full_name,
	pr.avatar_url AS other_avatar_url,
	u.email AS other_email,
	COALESCE(unread.total, 0) AS unread_count
FROM mine m
JOIN conversations c ON c.id = m.conversation_id
LEFT JOIN other o ON o.conversation_id = c.id
LEFT JOIN profiles pr ON pr.id = o.user_id
LEFT JOIN users u ON u.id = o.user_id
LEFT JOIN LATERAL (
	SELECT COUNT(*) AS total
	FROM messages msg
	WHERE msg.conversation_id = c.id
		AND msg.user_id <> $1
		AND (m.last_read_at IS NULL OR msg.created_at > m.last_read_at)
) unread ON TRUE
ORDER BY c.last_message_at DESC NULLS LAST, c.created_at DESC
"""


class _InMemoryStore:
	"""Fallback store used in tests when Postgres is unavailable."""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self.conversations: Dict[str, Conversation] = {}
		self.participants: Dict[Tuple[str, str], Participant] = {}
		self.messages: Dict[str, List[Message]] = {}

	def reset(self) -> None:
		self.conversations.clear()
		self.participants.clear()
		self.messages.clear()

	def _members(self, conversation_id: str) -> List[Participant]:
		return sorted(
			(p for (cid, _), p in self.participants.items() if cid == conversation_id),
			key=lambda p: p.user_id,
		)

	async def summary_rows(self, user_id: str) -> List[Dict[str, Any]]:
		async with self._lock:
			rows: List[Dict[str, Any]] = []
			for (conversation_id, member_id), mine in self.participants.items():
				if member_id != user_id:
					continue
				conversation = self.conversations.get(conversation_id)
				if conversation is None:
					continue
				others = [p for p in self._members(conversation_id) if p.user_id != user_id]
				other_id = others[0].user_id if others else None
				profile = PROFILE_STORE.profiles.get(other_id) if other_id else None
				rows.append(
					{
						"id": conversation.id,
						"created_at": conversation.created_at,
						"book_id": conversation.book_id,
						"last_message": conversation.last_message,
						"last_message_at": conversation.last_message_at,
						"last_message_sender_id": conversation.last_message_sender_id,
						"other_user_id": other_id,
						"other_full_name": profile.full_name if profile else None,
						"other_avatar_url": profile.avatar_url if profile else None,
						"other_email": PROFILE_STORE.emails.get(other_id) if other_id else None,
						"unread_count": count_unread(
							self.messages.get(conversation_id, []), user_id, mine.last_read_at
						),
					}
				)
			return rows

	async def get_participant(self, conversation_id: str, user_id: str) -> Optional[Participant]:
		async with self._lock:
			return self.participants.get((conversation_id, user_id))

	async def fetch_messages(self, conversation_id: str, *, offset: int, limit: int) -> List[Message]:
		async with self._lock:
			ordered = sorted(
				self.messages.get(conversation_id, []),
				key=lambda m: (m.created_at, m.id),
				reverse=True,
			)
			return ordered[offset : offset + limit]

	async def mark_read(self, conversation_id: str, user_id: str, at: datetime) -> bool:
		async with self._lock:
			key = (conversation_id, user_id)
			participant = self.participants.get(key)
			if participant is None:
				return False
			self.participants[key] = replace(participant, last_read_at=at)
			return True

	async def insert_message(self, message: Message) -> Message:
		async with self._lock:
			self.messages.setdefault(message.conversation_id, []).append(message)
			conversation = self.conversations.get(message.conversation_id)
			if conversation is not None:
				self.conversations[conversation.id] = replace(
					conversation,
					last_message=message.content,
					last_message_at=message.created_at,
					last_message_sender_id=message.user_id,
				)
			return message

	async def find_direct(self, user_a: str, user_b: str, book_id: Optional[str]) -> Optional[str]:
		async with self._lock:
			wanted = {user_a, user_b}
			for conversation in self.conversations.values():
				if conversation.book_id != book_id:
					continue
				members = {p.user_id for p in self._members(conversation.id)}
				if members == wanted:
					return conversation.id
			return None

	async def create(self, conversation: Conversation, participants: List[Participant]) -> None:
		async with self._lock:
			self.conversations[conversation.id] = conversation
			for participant in participants:
				self.participants[(participant.conversation_id, participant.user_id)] = participant


MEMORY_STORE = _InMemoryStore()


def new_id() -> str:
	return str(ulid.new())


class ChatRepository:
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

	async def summary_rows(self, user_id: str) -> List[Dict[str, Any]]:
		"""Return one enriched row per conversation the user takes part in."""
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.summary_rows(user_id)
		async with pool.acquire() as conn:
			rows = await conn.fetch(_SUMMARY_SQL, user_id)
		return [dict(row) for row in rows]

	async def get_participant(self, conversation_id: str, user_id: str) -> Optional[Participant]:
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.get_participant(conversation_id, user_id)
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"""
				SELECT conversation_id, user_id, last_read_at
				FROM conversation_participants
				WHERE conversation_id = $1 AND user_id = $2
				""",
				conversation_id,
				user_id,
			)
		if not row:
			return None
		return Participant(str(row["conversation_id"]), str(row["user_id"]), row["last_read_at"])

	async def fetch_messages(self, conversation_id: str, *, offset: int, limit: int) -> List[Message]:
		"""Newest first, starting ``offset`` rows from the latest message."""
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.fetch_messages(conversation_id, offset=offset, limit=limit)
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT id, conversation_id, user_id, content, created_at
				FROM messages
				WHERE conversation_id = $1
				ORDER BY created_at DESC, id DESC
				OFFSET $2 LIMIT $3
				""",
				conversation_id,
				offset,
				limit,
			)
		return [Message.from_record(row) for row in rows]

	async def mark_read(self, conversation_id: str, user_id: str, at: datetime) -> bool:
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.mark_read(conversation_id, user_id, at)
		async with pool.acquire() as conn:
			status = await conn.execute(
				"""
				UPDATE conversation_participants
				SET last_read_at = $3
				WHERE conversation_id = $1 AND user_id = $2
				""",
				conversation_id,
				user_id,
				at,
			)
		return status.endswith(" 1")

	async def insert_message(self, message: Message) -> Message:
		"""Persist a message and stamp it as the conversation's latest activity."""
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.insert_message(message)
		async with pool.acquire() as conn:
			async with conn.transaction():
				await conn.execute(
					"""
					INSERT INTO messages (id, conversation_id, user_id, content, created_at)
					VALUES ($1, $2, $3, $4, $5)
					""",
					message.id,
					message.conversation_id,
					message.user_id,
					message.content,
					message.created_at,
				)
				await conn.execute(
					"""
					UPDATE conversations
					SET last_message = $2, last_message_at = $3, last_message_sender_id = $4
					WHERE id = $1
					""",
					message.conversation_id,
					message.content,
					message.created_at,
					message.user_id,
				)
		return message

	async def find_direct(self, user_a: str, user_b: str, book_id: Optional[str]) -> Optional[str]:
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.find_direct(user_a, user_b, book_id)
		async with pool.acquire() as conn:
			return await conn.fetchval(
				"""
				SELECT c.id
				FROM conversations c
				WHERE c.book_id IS NOT DISTINCT FROM $3
					AND (SELECT COUNT(*) FROM conversation_participants p WHERE p.conversation_id = c.id) = 2
					AND EXISTS (
						SELECT 1 FROM conversation_participants p
						WHERE p.conversation_id = c.id AND p.user_id = $1
					)
					AND EXISTS (
						SELECT 1 FROM conversation_participants p
						WHERE p.conversation_id = c.id AND p.user_id = $2
					)
				ORDER BY c.created_at
				LIMIT 1
				""",
				user_a,
				user_b,
				book_id,
			)

	async def create(self, conversation: Conversation, participants: List[Participant]) -> None:
		pool = await self._pool_or_none()
		if pool is None:
			await MEMORY_STORE.create(conversation, participants)
			return
		async with pool.acquire() as conn:
			async with conn.transaction():
				await conn.execute(
					"INSERT INTO conversations (id, created_at, book_id) VALUES ($1, $2, $3)",
					conversation.id,
					conversation.created_at,
					conversation.book_id,
				)
				await conn.executemany(
					"""
					INSERT INTO conversation_participants (conversation_id, user_id, last_read_at)
					VALUES ($1, $2, $3)
					""",
					[(p.conversation_id, p.user_id, p.last_read_at) for p in participants],
				)
