import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis import FakeServer
from fakeredis.aioredis import FakeRedis

from bookswap.domain.books.repo import MEMORY_STORE as BOOK_STORE
from bookswap.domain.chat.repo import MEMORY_STORE as CHAT_STORE
from bookswap.domain.profiles.repo import MEMORY_STORE as PROFILE_STORE
from bookswap.infra import postgres
from bookswap.infra.redis import redis_client, set_redis_client
from bookswap.main import app
from bookswap.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	original = redis_client._client
	client = FakeRedis(server=FakeServer(), decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def memory_stores():
	CHAT_STORE.reset()
	BOOK_STORE.reset()
	PROFILE_STORE.reset()
	yield
	CHAT_STORE.reset()
	BOOK_STORE.reset()
	PROFILE_STORE.reset()


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests authenticate via X-User-Id headers, which are only accepted in dev mode.
	"""
	original_env = settings.environment
	original_key = settings.google_maps_api_key
	settings.environment = "dev"
	settings.google_maps_api_key = "test-key"
	try:
		yield
	finally:
		settings.environment = original_env
		settings.google_maps_api_key = original_key


@pytest_asyncio.fixture
async def api_client():
	async with app.router.lifespan_context(app):
		transport = ASGITransport(app=app)
		async with AsyncClient(transport=transport, base_url="http://testserver") as client:
			yield client
