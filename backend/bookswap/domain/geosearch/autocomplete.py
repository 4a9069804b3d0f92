"""Debounced postal-code/address autocomplete for one client."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from bookswap.domain.geosearch.errors import GeocodingError
from bookswap.domain.geosearch.geocoding import LocationData
from bookswap.domain.geosearch.loader import GeocodingProviderLoader
from bookswap.settings import settings

LOGGER = logging.getLogger(__name__)

StateCallback = Callable[[Dict[str, Any]], Awaitable[None]]


class AutocompleteState(str, Enum):
	IDLE = "idle"
	DEBOUNCING = "debouncing"
	LOADING = "loading"
	SUCCESS = "success"
	ERROR = "error"


async def _ignore(snapshot: Dict[str, Any]) -> None:
	return None


class AutocompleteSession:
	"""idle -> debouncing -> loading -> success | error.

	Typing restarts the debounce window. Once in ``error`` the session ignores
	input until ``retry()`` reloads the provider.
	"""

	def __init__(
		self,
		loader: GeocodingProviderLoader,
		*,
		on_change: Optional[StateCallback] = None,
		debounce_ms: Optional[int] = None,
		min_chars: Optional[int] = None,
	) -> None:
		self.loader = loader
		self.on_change = on_change or _ignore
		self.debounce_seconds = (debounce_ms if debounce_ms is not None else settings.geocoding_debounce_ms) / 1000
		self.min_chars = min_chars if min_chars is not None else settings.geocoding_min_chars
		self.state = AutocompleteState.IDLE
		self.query = ""
		self.suggestions: List[LocationData] = []
		self.error: Optional[str] = None
		self._bias: Optional[Tuple[float, float]] = None
		self._pending: Optional[asyncio.Task] = None

	@property
	def bias(self) -> Tuple[float, float]:
		if self._bias is not None:
			return self._bias
		return (settings.geocoding_fallback_lat, settings.geocoding_fallback_lng)

	def set_bias(self, lat: Optional[float], lng: Optional[float]) -> None:
		self._bias = (float(lat), float(lng)) if lat is not None and lng is not None else None

	def snapshot(self) -> Dict[str, Any]:
		return {
			"state": self.state.value,
			"query": self.query,
			"suggestions": [item.to_dict() for item in self.suggestions],
			"error": self.error,
		}

	async def _set(self, state: AutocompleteState) -> None:
		self.state = state
		await self.on_change(self.snapshot())

	def _cancel_pending(self) -> None:
		if self._pending is not None and not self._pending.done():
			self._pending.cancel()
		self._pending = None

	async def input(self, text: str) -> None:
		if self.state is AutocompleteState.ERROR:
			return
		self._cancel_pending()
		self.query = text or ""
		if len(self.query.strip()) < self.min_chars:
			self.suggestions = []
			await self._set(AutocompleteState.IDLE)
			return
		await self._set(AutocompleteState.DEBOUNCING)
		self._pending = asyncio.create_task(self._debounced(self.query))

	async def _debounced(self, query: str) -> None:
		await asyncio.sleep(self.debounce_seconds)
		await self._lookup(query)

	async def _lookup(self, query: str) -> None:
		await self._set(AutocompleteState.LOADING)
		lat, lng = self.bias
		try:
			client = await self.loader.load()
			results = await client.autocomplete(query.strip(), lat, lng)
		except GeocodingError as exc:
			await self._fail(query, str(exc) or exc.code)
			return
		except Exception:
			LOGGER.exception("location lookup failed")
			await self._fail(query, "Location lookup failed")
			return
		if query != self.query:
			return
		self.suggestions = results
		self.error = None
		await self._set(AutocompleteState.SUCCESS)

	async def _fail(self, query: str, message: str) -> None:
		if query != self.query:
			return
		self.suggestions = []
		self.error = message
		await self._set(AutocompleteState.ERROR)

	async def retry(self) -> None:
		"""Reload the provider and repeat the last lookup."""
		if self.state is not AutocompleteState.ERROR:
			return
		self.loader.reload()
		self.error = None
		if len(self.query.strip()) < self.min_chars:
			self.suggestions = []
			await self._set(AutocompleteState.IDLE)
			return
		await self._lookup(self.query)

	async def flush(self) -> None:
		"""Wait for a scheduled lookup to finish."""
		task = self._pending
		if task is not None:
			await task

	def close(self) -> None:
		self._cancel_pending()
