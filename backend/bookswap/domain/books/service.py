"""Book listings, requests and proximity search."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from bookswap.domain.books.errors import (
	BookNotFoundError,
	BookPermissionError,
	DuplicateRequestError,
	OwnBookRequestError,
)
from bookswap.domain.books.models import LISTING_FIELDS, Book, BookRequest, Notification
from bookswap.domain.books.repo import BookRepository, new_id
from bookswap.domain.geosearch.distance import within_radius
from bookswap.infra import rate_limit
from bookswap.obs import metrics as obs_metrics
from bookswap.settings import settings

LOGGER = logging.getLogger(__name__)

_REPO = BookRepository()

REQUEST_NOTIFICATION_TYPE = "book_request"
REQUEST_NOTIFICATION_MESSAGE = "Someone has requested your book"


def sanitize_cover_url(url: Optional[str]) -> Optional[str]:
	"""Swap oversized inline ``data:`` covers for the placeholder image."""
	if url and url.startswith("data:") and len(url) > settings.cover_max_data_url_chars:
		LOGGER.warning("cover image too large, using placeholder", extra={"cover_chars": len(url)})
		return settings.cover_placeholder_url
	return url


def _listing_fields(data: Mapping[str, Any]) -> Dict[str, Any]:
	fields = {key: value for key, value in data.items() if key in LISTING_FIELDS}
	if "cover_img_url" in fields:
		fields["cover_img_url"] = sanitize_cover_url(fields["cover_img_url"])
	return fields


async def add_book(user_id: str, data: Mapping[str, Any]) -> Book:
	fields = _listing_fields(data)
	book = Book(id=new_id(), user_id=user_id, **fields)
	return await _REPO.insert_book(book)


async def _owned_book(book_id: str, user_id: str) -> Book:
	book = await _REPO.get_book(book_id)
	if book is None:
		raise BookNotFoundError(book_id)
	if book.user_id != user_id:
		raise BookPermissionError(book_id)
	return book


async def update_book(book_id: str, user_id: str, data: Mapping[str, Any]) -> Book:
	await _owned_book(book_id, user_id)
	updated = await _REPO.update_book(book_id, _listing_fields(data))
	if updated is None:
		raise BookNotFoundError(book_id)
	return updated


async def delete_book(book_id: str, user_id: str) -> None:
	await _owned_book(book_id, user_id)
	await _REPO.delete_book(book_id)


async def get_book(book_id: str) -> Optional[Book]:
	return await _REPO.get_book(book_id)


async def list_user_books(user_id: str) -> List[Book]:
	return await _REPO.list_books(user_id=user_id)


async def recent_books(limit: int = 8) -> List[Book]:
	try:
		return await _REPO.list_books(limit=limit)
	except Exception:
		LOGGER.exception("recent books lookup failed")
		return []


async def request_book(book_id: str, requester_id: str) -> BookRequest:
	"""Record a pending request and notify the owner.

	A failed notification does not undo the request.
	"""
	book = await _REPO.get_book(book_id)
	if book is None:
		obs_metrics.inc_book_request("not_found")
		raise BookNotFoundError(book_id)
	if book.user_id == requester_id:
		obs_metrics.inc_book_request("own_book")
		raise OwnBookRequestError(book_id)
	if await _REPO.find_request(book_id, requester_id) is not None:
		obs_metrics.inc_book_request("duplicate")
		raise DuplicateRequestError(book_id)

	try:
		request = await _REPO.insert_request(
			BookRequest(
				id=new_id(),
				book_id=book_id,
				requester_id=requester_id,
				owner_id=book.user_id,
			)
		)
	except DuplicateRequestError:
		obs_metrics.inc_book_request("duplicate")
		raise
	obs_metrics.inc_book_request("created")
	try:
		await _REPO.insert_notification(
			Notification(
				id=new_id(),
				user_id=book.user_id,
				type=REQUEST_NOTIFICATION_TYPE,
				message=REQUEST_NOTIFICATION_MESSAGE,
				related_id=book_id,
			)
		)
	except Exception:
		LOGGER.exception("book request notification failed", extra={"book_id": book_id})
	return request


async def list_requested_books(user_id: str) -> List[Book]:
	try:
		return await _REPO.requested_books(user_id)
	except Exception:
		LOGGER.exception("requested books lookup failed")
		return []


async def search_nearby(
	user_id: str,
	lat: float,
	lng: float,
	*,
	radius_km: Optional[float] = None,
	limit: Optional[int] = None,
) -> List[Book]:
	"""Distance-ranked listings around a point.

	Rows from the store are checked again locally; anything outside the radius
	or without coordinates is dropped.
	"""
	radius = float(radius_km if radius_km is not None else settings.book_search_default_radius_km)
	max_results = min(int(limit or settings.book_search_default_limit), settings.book_search_max_results)
	await rate_limit.enforce("book_search", user_id, limit=settings.book_search_rate_limit)
	rows = await _REPO.books_with_distances(lat, lng, radius, max_results)
	kept, rejected = within_radius(rows, lat, lng, radius)
	if rejected:
		LOGGER.warning(
			"distance query returned rows outside radius",
			extra={"rejected": rejected, "radius_km": radius},
		)
		obs_metrics.inc_radius_reject(rejected)
	obs_metrics.inc_book_search(int(round(radius)))
	return kept
