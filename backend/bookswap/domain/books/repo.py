"""Book, request and notification persistence."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import asyncpg
import ulid

from bookswap.domain.books.errors import DuplicateRequestError
from bookswap.domain.books.models import LISTING_FIELDS, Book, BookRequest, Notification
from bookswap.domain.geosearch.distance import haversine_km
from bookswap.infra.postgres import pool_or_none

_BOOK_COLUMNS = (
	"id, user_id, title, author, location_text, postal_code, lat, lng, condition, "
	"cover_img_url, isbn, description, created_at, updated_at"
)


def new_id() -> str:
	return str(ulid.new())


class _InMemoryStore:
	"""Fallback store used in tests when Postgres is unavailable."""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self.books: Dict[str, Book] = {}
		self.requests: List[BookRequest] = []
		self.notifications: List[Notification] = []

	def reset(self) -> None:
		self.books.clear()
		self.requests.clear()
		self.notifications.clear()

	async def insert_book(self, book: Book) -> Book:
		async with self._lock:
			self.books[book.id] = book
			return book

	async def update_book(self, book_id: str, fields: Mapping[str, Any]) -> Optional[Book]:
		async with self._lock:
			current = self.books.get(book_id)
			if current is None:
				return None
			updated = replace(current, updated_at=datetime.now(timezone.utc), **dict(fields))
			self.books[book_id] = updated
			return updated

	async def delete_book(self, book_id: str) -> bool:
		async with self._lock:
			self.requests = [req for req in self.requests if req.book_id != book_id]
			return self.books.pop(book_id, None) is not None

	async def get_book(self, book_id: str) -> Optional[Book]:
		async with self._lock:
			return self.books.get(book_id)

	async def list_books(self, *, user_id: Optional[str], limit: Optional[int]) -> List[Book]:
		async with self._lock:
			books = [b for b in self.books.values() if user_id is None or b.user_id == user_id]
			books.sort(key=lambda b: b.created_at, reverse=True)
			return books[:limit] if limit else books

	async def books_with_distances(self, lat: float, lng: float, max_km: float, limit: int) -> List[Book]:
		async with self._lock:
			found: List[Book] = []
			for book in self.books.values():
				if book.lat is None or book.lng is None:
					continue
				distance = haversine_km(lat, lng, book.lat, book.lng)
				if distance <= max_km:
					found.append(replace(book, distance_km=distance))
			found.sort(key=lambda b: b.distance_km)
			return found[:limit]

	async def find_request(self, book_id: str, requester_id: str) -> Optional[BookRequest]:
		async with self._lock:
			for req in self.requests:
				if req.book_id == book_id and req.requester_id == requester_id:
					return req
			return None

	async def insert_request(self, request: BookRequest) -> BookRequest:
		async with self._lock:
			for existing in self.requests:
				if existing.book_id == request.book_id and existing.requester_id == request.requester_id:
					raise DuplicateRequestError(request.book_id)
			self.requests.append(request)
			return request

	async def requested_books(self, requester_id: str) -> List[Book]:
		async with self._lock:
			return [
				self.books[req.book_id]
				for req in self.requests
				if req.requester_id == requester_id and req.book_id in self.books
			]

	async def insert_notification(self, notification: Notification) -> None:
		async with self._lock:
			self.notifications.append(notification)


MEMORY_STORE = _InMemoryStore()


class BookRepository:
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

	async def insert_book(self, book: Book) -> Book:
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.insert_book(book)
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				f"""
				INSERT INTO books (
					id, user_id, title, author, location_text, postal_code, lat, lng,
					condition, cover_img_url, isbn, description, created_at, updated_at
				) VALUES ($1,$2,$3,$4,$5,$6,$7,$8,$9,$10,$11,$12,$13,$13)
				RETURNING {_BOOK_COLUMNS}
				""",
				book.id,
				book.user_id,
				book.title,
				book.author,
				book.location_text,
				book.postal_code,
				book.lat,
				book.lng,
				book.condition,
				book.cover_img_url,
				book.isbn,
				book.description,
				book.created_at,
			)
		return Book.from_record(row)

	async def update_book(self, book_id: str, fields: Mapping[str, Any]) -> Optional[Book]:
		clean = {key: value for key, value in fields.items() if key in LISTING_FIELDS}
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.update_book(book_id, clean)
		assignments = [f"{column} = ${idx + 2}" for idx, column in enumerate(clean)]
		assignments.append("updated_at = NOW()")
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				f"UPDATE books SET {', '.join(assignments)} WHERE id = $1 RETURNING {_BOOK_COLUMNS}",
				book_id,
				*clean.values(),
			)
		return Book.from_record(row) if row else None

	async def delete_book(self, book_id: str) -> bool:
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.delete_book(book_id)
		async with pool.acquire() as conn:
			status = await conn.execute("DELETE FROM books WHERE id = $1", book_id)
		return status.endswith(" 1")

	async def get_book(self, book_id: str) -> Optional[Book]:
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.get_book(book_id)
		async with pool.acquire() as conn:
			row = await conn.fetchrow(f"SELECT {_BOOK_COLUMNS} FROM books WHERE id = $1", book_id)
		return Book.from_record(row) if row else None

	async def list_books(self, *, user_id: Optional[str] = None, limit: Optional[int] = None) -> List[Book]:
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.list_books(user_id=user_id, limit=limit)
		clauses: List[str] = []
		params: List[Any] = []
		if user_id is not None:
			params.append(user_id)
			clauses.append(f"user_id = ${len(params)}")
		query = f"SELECT {_BOOK_COLUMNS} FROM books"
		if clauses:
			query += " WHERE " + " AND ".join(clauses)
		query += " ORDER BY created_at DESC"
		if limit:
			params.append(limit)
			query += f" LIMIT ${len(params)}"
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		return [Book.from_record(row) for row in rows]

	async def books_with_distances(self, lat: float, lng: float, max_km: float, limit: int) -> List[Book]:
		"""Books within ``max_km`` of the point, nearest first."""
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.books_with_distances(lat, lng, max_km, limit)
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT * FROM get_books_with_distances($1, $2, $3, $4)",
				lat,
				lng,
				float(max_km),
				limit,
			)
		return [Book.from_record(row) for row in rows]

	async def find_request(self, book_id: str, requester_id: str) -> Optional[BookRequest]:
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.find_request(book_id, requester_id)
		async with pool.acquire() as conn:
			row = await conn.fetchrow(
				"""
				SELECT id, book_id, requester_id, owner_id, status, created_at
				FROM book_requests
				WHERE book_id = $1 AND requester_id = $2
				""",
				book_id,
				requester_id,
			)
		if not row:
			return None
		return BookRequest(
			id=str(row["id"]),
			book_id=str(row["book_id"]),
			requester_id=str(row["requester_id"]),
			owner_id=str(row["owner_id"]),
			status=row["status"],
			created_at=row["created_at"],
		)

	async def insert_request(self, request: BookRequest) -> BookRequest:
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.insert_request(request)
		try:
			async with pool.acquire() as conn:
				await conn.execute(
					"""
					INSERT INTO book_requests (id, book_id, requester_id, owner_id, status, created_at)
					VALUES ($1, $2, $3, $4, $5, $6)
					""",
					request.id,
					request.book_id,
					request.requester_id,
					request.owner_id,
					request.status,
					request.created_at,
				)
		except asyncpg.UniqueViolationError as exc:
			# UNIQUE (book_id, requester_id) lost a race with a concurrent request.
			raise DuplicateRequestError(request.book_id) from exc
		return request

	async def requested_books(self, requester_id: str) -> List[Book]:
		pool = await self._pool_or_none()
		if pool is None:
			return await MEMORY_STORE.requested_books(requester_id)
		columns = ", ".join(f"b.{col.strip()}" for col in _BOOK_COLUMNS.split(","))
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {columns}
				FROM book_requests r
				JOIN books b ON b.id = r.book_id
				WHERE r.requester_id = $1
				ORDER BY r.created_at DESC
				""",
				requester_id,
			)
		return [Book.from_record(row) for row in rows]

	async def insert_notification(self, notification: Notification) -> None:
		pool = await self._pool_or_none()
		if pool is None:
			await MEMORY_STORE.insert_notification(notification)
			return
		async with pool.acquire() as conn:
			await conn.execute(
				"""
				INSERT INTO notifications (id, user_id, type, message, related_id, read, created_at)
				VALUES ($1, $2, $3, $4, $5, $6, $7)
				""",
				notification.id,
				notification.user_id,
				notification.type,
				notification.message,
				notification.related_id,
				notification.read,
				notification.created_at,
			)
