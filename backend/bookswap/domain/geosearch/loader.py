"""Lifecycle of the geocoding provider for one application instance.

The loader is built once at startup and handed to whoever needs geocoding.
Concurrent callers share a single load; a failed load stays failed until
``reload()`` is called.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

import httpx

from bookswap.domain.geosearch.errors import GeocodingError, GeocodingUnavailableError
from bookswap.domain.geosearch.geocoding import GeocodingClient
from bookswap.settings import settings

LOGGER = logging.getLogger(__name__)

MISSING_KEY_ERROR = "API key is missing"


class LoaderState(str, Enum):
	IDLE = "idle"
	LOADING = "loading"
	LOADED = "loaded"
	FAILED = "failed"


ClientFactory = Callable[[httpx.AsyncClient, str], GeocodingClient]


class GeocodingProviderLoader:
	def __init__(
		self,
		http: httpx.AsyncClient,
		*,
		api_key: Optional[str] = None,
		timeout_seconds: Optional[float] = None,
		client_factory: Optional[ClientFactory] = None,
	) -> None:
		self.http = http
		self.api_key = api_key if api_key is not None else settings.google_maps_api_key
		self.timeout_seconds = timeout_seconds or settings.geocoding_timeout_seconds
		self._factory = client_factory or (lambda client, key: GeocodingClient(http=client, api_key=key))
		self.state = LoaderState.IDLE
		self.error: Optional[str] = None
		self.client: Optional[GeocodingClient] = None
		self._task: Optional[asyncio.Task] = None

	async def load(self) -> GeocodingClient:
		if self.state is LoaderState.LOADED and self.client is not None:
			return self.client
		if self.state is LoaderState.FAILED:
			raise GeocodingUnavailableError(self.error)
		if self._task is None:
			self.state = LoaderState.LOADING
			self._task = asyncio.create_task(self._load())
		await asyncio.shield(self._task)
		if self.state is LoaderState.LOADED and self.client is not None:
			return self.client
		raise GeocodingUnavailableError(self.error)

	async def _load(self) -> None:
		if not self.api_key:
			self._fail(MISSING_KEY_ERROR)
			return
		client = self._factory(self.http, self.api_key)
		try:
			await asyncio.wait_for(client.probe(), timeout=self.timeout_seconds)
		except asyncio.TimeoutError:
			self._fail("Geocoding provider loading timed out")
			return
		except GeocodingError as exc:
			self._fail(str(exc) or "Failed to load geocoding provider")
			return
		except Exception:
			LOGGER.exception("geocoding provider probe crashed")
			self._fail("Failed to load geocoding provider")
			return
		self.client = client
		self.state = LoaderState.LOADED
		self.error = None
		LOGGER.info("geocoding provider loaded")

	def _fail(self, message: str) -> None:
		self.state = LoaderState.FAILED
		self.error = message
		self.client = None
		LOGGER.warning("geocoding provider failed to load", extra={"reason": message})

	def reload(self) -> None:
		"""Forget the previous outcome so the next ``load()`` starts over.

		A load that is still running is shared with other callers and is left
		alone; its outcome is already fresh.
		"""
		if self._task is not None and not self._task.done():
			return
		self._task = None
		self.client = None
		self.error = None
		self.state = LoaderState.IDLE

	def status(self) -> dict:
		return {"state": self.state.value, "error": self.error}
