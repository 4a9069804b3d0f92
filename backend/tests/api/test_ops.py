import pytest

from bookswap.settings import settings


@pytest.mark.asyncio
async def test_liveness(api_client):
	resp = await api_client.get("/health/live")
	assert resp.status_code == 200
	assert resp.headers.get("X-Request-Id")


@pytest.mark.asyncio
async def test_readiness_in_memory_mode(api_client):
	resp = await api_client.get("/health/ready")
	body = resp.json()
	assert resp.status_code == 200
	assert body["checks"]["postgres"]["mode"] == "memory"
	assert body["status"] == "ok"
	assert body["checks"]["geocoding"] == {"state": "idle", "error": None}


@pytest.mark.asyncio
async def test_metrics_requires_token(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_metrics_public", False)
	monkeypatch.setattr(settings, "obs_admin_token", "secret")

	denied = await api_client.get("/metrics")
	assert denied.status_code == 403

	allowed = await api_client.get("/metrics", headers={"X-Admin-Token": "secret"})
	assert allowed.status_code == 200
	assert "bookswap_http_requests_total" in allowed.text


@pytest.mark.asyncio
async def test_openapi_lists_socket_namespaces(api_client):
	resp = await api_client.get("/openapi.json")
	schema = resp.json()
	assert "bearerAuth" in schema["components"]["securitySchemes"]
	assert "chat_send" in schema["x-socketio-namespaces"]["/chat"]["client"]
