from unittest.mock import AsyncMock

import pytest
import socketio

from bookswap.domain.geosearch.errors import GeocodingUnavailableError
from bookswap.domain.geosearch.geocoding import LocationData
from bookswap.domain.geosearch.sockets import GeoNamespace


class _Client:
	def __init__(self):
		self.queries = []

	async def autocomplete(self, query, lat, lng):
		self.queries.append((query, lat, lng))
		return [LocationData(postal_code="10115", formatted_address="10115 Berlin")]


class _Loader:
	def __init__(self, client, error=None):
		self.client = client
		self.error = error

	async def load(self):
		if self.error is not None:
			raise self.error
		return self.client

	def reload(self):
		self.error = None


def _namespace(loader):
	server = socketio.AsyncServer(async_mode="asgi")
	namespace = GeoNamespace(loader)
	server.register_namespace(namespace)
	namespace.emit = AsyncMock()
	return namespace


def _states(namespace):
	return [call.args[1]["state"] for call in namespace.emit.await_args_list if call.args[0] == "geo:state"]


@pytest.mark.asyncio
async def test_connect_requires_identity():
	namespace = _namespace(_Loader(_Client()))
	with pytest.raises(ConnectionRefusedError):
		await namespace.trigger_event("connect", "sid-1", {"asgi.scope": {"headers": []}})


@pytest.mark.asyncio
async def test_input_runs_debounced_lookup():
	client = _Client()
	namespace = _namespace(_Loader(client))
	await namespace.trigger_event("connect", "sid-1", {"asgi.scope": {"headers": [(b"x-user-id", b"reader")]}})
	session = namespace.sessions["sid-1"]
	session.debounce_seconds = 0

	await namespace.trigger_event("geo_input", "sid-1", {"query": "10115", "lat": 52.5, "lng": 13.4})
	await session.flush()

	assert client.queries == [("10115", 52.5, 13.4)]
	assert _states(namespace) == ["idle", "debouncing", "loading", "success"]


@pytest.mark.asyncio
async def test_retry_recovers_from_failed_provider():
	client = _Client()
	loader = _Loader(client, error=GeocodingUnavailableError("API key is missing"))
	namespace = _namespace(loader)
	await namespace.trigger_event("connect", "sid-1", {"asgi.scope": {"headers": [(b"x-user-id", b"reader")]}})
	session = namespace.sessions["sid-1"]
	session.debounce_seconds = 0

	await namespace.trigger_event("geo_input", "sid-1", {"query": "10115"})
	await session.flush()
	assert _states(namespace)[-1] == "error"

	await namespace.trigger_event("geo_retry", "sid-1")
	assert _states(namespace)[-1] == "success"

	await namespace.trigger_event("disconnect", "sid-1")
	assert namespace.sessions == {}
