import httpx
import pytest

from bookswap.domain.books.openlibrary import OpenLibraryClient, cover_url, format_book_data


def test_format_prefers_work_fields():
	doc = {
		"title": "Dune",
		"authors": [{"name": "Frank Herbert"}],
		"author_name": ["Someone Else"],
		"isbn_13": ["9780441172719"],
		"isbn_10": ["0441172717"],
		"description": {"type": "/type/text", "value": "Spice."},
		"covers": [12345],
		"cover_i": 999,
	}
	assert format_book_data(doc) == {
		"title": "Dune",
		"author": "Frank Herbert",
		"isbn": "9780441172719",
		"description": "Spice.",
		"cover_img_url": "https://covers.openlibrary.org/b/id/12345-M.jpg",
	}


def test_format_falls_back_to_search_fields():
	doc = {"title": "Emma", "author_name": ["Jane Austen"], "isbn": ["123"], "cover_i": 42, "description": "Matchmaking"}
	data = format_book_data(doc)
	assert data["author"] == "Jane Austen"
	assert data["isbn"] == "123"
	assert data["description"] == "Matchmaking"
	assert data["cover_img_url"] == cover_url(42)


def test_format_handles_sparse_documents():
	assert format_book_data({}) == {
		"title": "",
		"author": "",
		"isbn": "",
		"description": "",
		"cover_img_url": None,
	}


@pytest.mark.asyncio
async def test_search_enriches_works():
	def handler(request: httpx.Request) -> httpx.Response:
		if request.url.path == "/search.json":
			assert request.url.params["limit"] == "10"
			return httpx.Response(
				200,
				json={
					"docs": [
						{"key": "/works/OL1W", "title": "Dune", "author_name": ["Frank Herbert"]},
						{"key": "/books/OL2M", "title": "Edition only"},
					]
				},
			)
		if request.url.path == "/works/OL1W.json":
			return httpx.Response(200, json={"description": "Spice.", "covers": [7]})
		return httpx.Response(404)

	async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
		client = OpenLibraryClient(http=http, base_url="https://openlibrary.test")
		results = await client.lookup("dune")

	assert [item["title"] for item in results] == ["Dune", "Edition only"]
	assert results[0]["description"] == "Spice."
	assert results[0]["cover_img_url"].endswith("/b/id/7-M.jpg")
	assert results[1]["description"] == ""


@pytest.mark.asyncio
async def test_search_failure_returns_empty():
	def handler(request: httpx.Request) -> httpx.Response:
		return httpx.Response(500)

	async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
		client = OpenLibraryClient(http=http, base_url="https://openlibrary.test")
		assert await client.search_books("dune") == []
