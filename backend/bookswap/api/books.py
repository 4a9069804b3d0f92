"""REST API surface for book listings, requests and nearby search."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
import httpx

from bookswap.api.deps import get_http_client
from bookswap.domain.books import service as books_service
from bookswap.domain.books.errors import (
	BookError,
	BookNotFoundError,
	BookPermissionError,
	DuplicateRequestError,
	OwnBookRequestError,
)
from bookswap.domain.books.openlibrary import OpenLibraryClient
from bookswap.domain.books.schemas import (
	BookIn,
	BookLookupItem,
	BookOut,
	BookRequestOut,
	NearbyQuery,
	NearbyResponse,
)
from bookswap.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter()

_STATUS_BY_ERROR = {
	BookNotFoundError: status.HTTP_404_NOT_FOUND,
	BookPermissionError: status.HTTP_403_FORBIDDEN,
	OwnBookRequestError: status.HTTP_400_BAD_REQUEST,
	DuplicateRequestError: status.HTTP_409_CONFLICT,
}


def _http_error(exc: BookError) -> HTTPException:
	code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
	return HTTPException(code, detail={"code": exc.code, "message": exc.message})


@router.post("/books", response_model=BookOut, status_code=status.HTTP_201_CREATED)
async def create_book(
	payload: BookIn,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> BookOut:
	book = await books_service.add_book(auth_user.id, payload.model_dump())
	return BookOut.from_model(book)


@router.get("/books/recent", response_model=List[BookOut])
async def recent_books(limit: int = Query(default=8, ge=1, le=50)) -> List[BookOut]:
	return [BookOut.from_model(book) for book in await books_service.recent_books(limit)]


@router.get("/books/nearby", response_model=NearbyResponse)
async def nearby_books(
	query: NearbyQuery = Depends(),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> NearbyResponse:
	books = await books_service.search_nearby(
		auth_user.id,
		query.lat,
		query.lng,
		radius_km=query.radius_km,
		limit=query.limit,
	)
	return NearbyResponse(radius_km=query.radius_km, items=[BookOut.from_model(book) for book in books])


@router.get("/books/lookup", response_model=List[BookLookupItem])
async def lookup_books(
	q: str = Query(..., min_length=1, max_length=200),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	http: httpx.AsyncClient = Depends(get_http_client),
) -> List[BookLookupItem]:
	client = OpenLibraryClient(http=http)
	return [BookLookupItem(**fields) for fields in await client.lookup(q)]


@router.get("/books/{book_id}", response_model=BookOut)
async def get_book(book_id: str) -> BookOut:
	book = await books_service.get_book(book_id)
	if book is None:
		raise _http_error(BookNotFoundError(book_id))
	return BookOut.from_model(book)


@router.put("/books/{book_id}", response_model=BookOut)
async def update_book(
	book_id: str,
	payload: BookIn,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> BookOut:
	try:
		book = await books_service.update_book(book_id, auth_user.id, payload.model_dump())
	except BookError as exc:
		raise _http_error(exc) from None
	return BookOut.from_model(book)


@router.delete("/books/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_book(
	book_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await books_service.delete_book(book_id, auth_user.id)
	except BookError as exc:
		raise _http_error(exc) from None


@router.post("/books/{book_id}/requests", response_model=BookRequestOut, status_code=status.HTTP_201_CREATED)
async def request_book(
	book_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> BookRequestOut:
	try:
		request = await books_service.request_book(book_id, auth_user.id)
	except BookError as exc:
		raise _http_error(exc) from None
	return BookRequestOut.from_model(request)


@router.get("/me/books", response_model=List[BookOut])
async def my_books(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[BookOut]:
	return [BookOut.from_model(book) for book in await books_service.list_user_books(auth_user.id)]


@router.get("/me/requests", response_model=List[BookOut])
async def my_requests(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[BookOut]:
	return [BookOut.from_model(book) for book in await books_service.list_requested_books(auth_user.id)]
