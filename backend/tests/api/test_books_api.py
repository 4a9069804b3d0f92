import pytest

OWNER = {"X-User-Id": "owner"}
READER = {"X-User-Id": "reader"}


def _listing(**overrides):
	data = {
		"title": "Der Zauberberg",
		"author": "Thomas Mann",
		"location_text": "Berlin Mitte",
		"condition": "Good",
		"postal_code": "10115",
		"lat": 52.532,
		"lng": 13.384,
	}
	data.update(overrides)
	return data


@pytest.mark.asyncio
async def test_create_and_fetch_book(api_client):
	resp = await api_client.post("/books", json=_listing(), headers=OWNER)
	assert resp.status_code == 201
	book = resp.json()
	assert book["user_id"] == "owner"

	fetched = await api_client.get(f"/books/{book['id']}")
	assert fetched.status_code == 200
	assert fetched.json()["title"] == "Der Zauberberg"

	mine = await api_client.get("/me/books", headers=OWNER)
	assert [item["id"] for item in mine.json()] == [book["id"]]

	recent = await api_client.get("/books/recent")
	assert [item["id"] for item in recent.json()] == [book["id"]]


@pytest.mark.asyncio
async def test_invalid_condition_is_rejected(api_client):
	resp = await api_client.post("/books", json=_listing(condition="Shiny"), headers=OWNER)
	assert resp.status_code == 422
	assert resp.json()["detail"] == "validation_error"


@pytest.mark.asyncio
async def test_update_and_delete_are_owner_only(api_client):
	book = (await api_client.post("/books", json=_listing(), headers=OWNER)).json()

	forbidden = await api_client.put(f"/books/{book['id']}", json=_listing(title="Stolen"), headers=READER)
	assert forbidden.status_code == 403

	updated = await api_client.put(f"/books/{book['id']}", json=_listing(condition="Fair"), headers=OWNER)
	assert updated.status_code == 200
	assert updated.json()["condition"] == "Fair"

	deleted = await api_client.delete(f"/books/{book['id']}", headers=OWNER)
	assert deleted.status_code == 204
	missing = await api_client.get(f"/books/{book['id']}")
	assert missing.status_code == 404
	assert missing.json()["detail"]["message"] == "Book not found"


@pytest.mark.asyncio
async def test_book_requests(api_client):
	book = (await api_client.post("/books", json=_listing(), headers=OWNER)).json()

	own = await api_client.post(f"/books/{book['id']}/requests", headers=OWNER)
	assert own.status_code == 400
	assert own.json()["detail"] == {"code": "own_book", "message": "You cannot request your own book"}

	created = await api_client.post(f"/books/{book['id']}/requests", headers=READER)
	assert created.status_code == 201
	assert created.json()["status"] == "pending"

	duplicate = await api_client.post(f"/books/{book['id']}/requests", headers=READER)
	assert duplicate.status_code == 409
	assert duplicate.json()["detail"]["code"] == "already_requested"

	requested = await api_client.get("/me/requests", headers=READER)
	assert [item["id"] for item in requested.json()] == [book["id"]]


@pytest.mark.asyncio
async def test_nearby_search(api_client):
	near = (await api_client.post("/books", json=_listing(title="Near"), headers=OWNER)).json()
	await api_client.post("/books", json=_listing(title="Munich", lat=48.1351, lng=11.582), headers=OWNER)

	resp = await api_client.get(
		"/books/nearby",
		params={"lat": 52.52, "lng": 13.405, "radius_km": 10},
		headers=READER,
	)
	assert resp.status_code == 200
	body = resp.json()
	assert body["radius_km"] == 10
	assert [item["id"] for item in body["items"]] == [near["id"]]
	item = body["items"][0]
	assert item["distance_km"] < 10
	assert item["distance_meters"] == pytest.approx(item["distance_km"] * 1000)


@pytest.mark.asyncio
async def test_nearby_search_rate_limited(api_client, monkeypatch):
	from bookswap.settings import settings

	monkeypatch.setattr(settings, "book_search_rate_limit", 1)
	params = {"lat": 52.52, "lng": 13.405}
	first = await api_client.get("/books/nearby", params=params, headers=READER)
	second = await api_client.get("/books/nearby", params=params, headers=READER)

	assert first.status_code == 200
	assert second.status_code == 429
	assert second.json()["detail"] == "rate_limited"
	assert second.headers["Retry-After"] == "60"
