import pytest

from bookswap.domain.geosearch.errors import GeocodingTimeoutError, GeocodingUnavailableError
from bookswap.domain.geosearch.geocoding import LocationData
from bookswap.main import app

USER = {"X-User-Id": "reader"}


class _Client:
	def __init__(self, results=None, error=None):
		self.results = results or []
		self.error = error
		self.calls = []

	async def autocomplete(self, query, lat, lng):
		self.calls.append((query, lat, lng))
		if self.error is not None:
			raise self.error
		return self.results


class _Loader:
	def __init__(self, client=None, error=None):
		self.client = client
		self.error = error

	async def load(self):
		if self.error is not None:
			raise self.error
		return self.client


@pytest.mark.asyncio
async def test_radius_scale(api_client):
	resp = await api_client.get("/geo/radii")
	assert resp.status_code == 200
	body = resp.json()
	assert body["radii_km"][:3] == [1, 2, 3]
	assert body["radii_km"][-1] == 100
	assert body["default_km"] == 5


@pytest.mark.asyncio
async def test_autocomplete_returns_locations(api_client):
	client = _Client(results=[LocationData(postal_code="10115", formatted_address="10115 Berlin", lat=52.53, lng=13.38)])
	app.state.geo_loader = _Loader(client)

	resp = await api_client.get("/geo/autocomplete", params={"q": "10115", "lat": 52.5, "lng": 13.4}, headers=USER)

	assert resp.status_code == 200
	assert resp.json()[0]["postal_code"] == "10115"
	assert client.calls == [("10115", 52.5, 13.4)]


@pytest.mark.asyncio
async def test_autocomplete_short_query_skips_provider(api_client):
	client = _Client()
	app.state.geo_loader = _Loader(client)

	resp = await api_client.get("/geo/autocomplete", params={"q": "1"}, headers=USER)

	assert resp.status_code == 200
	assert resp.json() == []
	assert client.calls == []


@pytest.mark.asyncio
async def test_autocomplete_unavailable_provider(api_client):
	app.state.geo_loader = _Loader(error=GeocodingUnavailableError("API key is missing"))

	resp = await api_client.get("/geo/autocomplete", params={"q": "10115"}, headers=USER)

	assert resp.status_code == 503
	assert resp.json()["detail"] == "API key is missing"


@pytest.mark.asyncio
async def test_autocomplete_timeout(api_client):
	app.state.geo_loader = _Loader(_Client(error=GeocodingTimeoutError("Location lookup timed out")))

	resp = await api_client.get("/geo/autocomplete", params={"q": "10115"}, headers=USER)

	assert resp.status_code == 504
