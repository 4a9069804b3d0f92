"""Open Library lookups used to prefill new listings."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional

import httpx

from bookswap.settings import settings

LOGGER = logging.getLogger(__name__)

CoverSize = Literal["S", "M", "L"]

SEARCH_LIMIT = 10


def cover_url(cover_id: int, size: CoverSize = "M") -> str:
	return f"{settings.open_library_covers_url}/b/id/{cover_id}-{size}.jpg"


def _first(values: Any) -> Optional[Any]:
	if isinstance(values, list) and values:
		return values[0]
	return None


def format_book_data(doc: Dict[str, Any]) -> Dict[str, Any]:
	"""Map an Open Library search/work document onto listing fields."""
	raw_description = doc.get("description")
	if isinstance(raw_description, str):
		description = raw_description
	elif isinstance(raw_description, dict):
		description = str(raw_description.get("value") or "")
	else:
		description = ""

	author = ""
	first_author = _first(doc.get("authors"))
	if isinstance(first_author, dict) and first_author.get("name"):
		author = first_author["name"]
	elif _first(doc.get("author_name")):
		author = doc["author_name"][0]

	isbn = _first(doc.get("isbn_13")) or _first(doc.get("isbn_10")) or _first(doc.get("isbn")) or ""

	cover: Optional[str] = None
	if _first(doc.get("covers")) is not None:
		cover = cover_url(doc["covers"][0])
	elif doc.get("cover_i"):
		cover = cover_url(doc["cover_i"])

	return {
		"title": doc.get("title") or "",
		"author": author,
		"isbn": isbn,
		"description": description,
		"cover_img_url": cover,
	}


@dataclass
class OpenLibraryClient:
	http: httpx.AsyncClient
	base_url: str = settings.open_library_url
	request_timeout: float = settings.open_library_timeout_seconds

	async def search_books(self, query: str) -> List[Dict[str, Any]]:
		"""Search by title, author or ISBN; returns raw documents, ``[]`` on failure."""
		try:
			response = await self.http.get(
				f"{self.base_url}/search.json",
				params={"q": query, "limit": SEARCH_LIMIT},
				timeout=self.request_timeout,
			)
			response.raise_for_status()
			docs = response.json().get("docs") or []
		except (httpx.HTTPError, ValueError):
			LOGGER.exception("open library search failed")
			return []
		return list(await asyncio.gather(*(self._enrich(doc) for doc in docs)))

	async def _enrich(self, doc: Dict[str, Any]) -> Dict[str, Any]:
		key = doc.get("key")
		if not isinstance(key, str) or not key.startswith("/works/"):
			return doc
		try:
			response = await self.http.get(f"{self.base_url}{key}.json", timeout=self.request_timeout)
		except httpx.HTTPError:
			LOGGER.warning("open library work lookup failed", extra={"work_key": key})
			return doc
		if response.status_code != 200:
			return doc
		try:
			work = response.json()
		except ValueError:
			return doc
		merged = dict(doc)
		merged["description"] = work.get("description") or doc.get("description")
		merged["covers"] = work.get("covers") or doc.get("covers")
		return merged

	async def lookup(self, query: str) -> List[Dict[str, Any]]:
		"""Search and return listing-ready field dicts."""
		return [format_book_data(doc) for doc in await self.search_books(query)]
