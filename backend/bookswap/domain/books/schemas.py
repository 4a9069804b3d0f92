"""Pydantic schemas for book endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from bookswap.domain.books.models import Book, BookCondition, BookRequest
from bookswap.settings import settings


class BookIn(BaseModel):
	title: str = Field(..., min_length=1, max_length=300)
	author: Optional[str] = Field(default=None, max_length=300)
	location_text: str = Field(..., min_length=1, max_length=300)
	condition: BookCondition
	postal_code: Optional[str] = Field(default=None, max_length=20)
	lat: Optional[float] = Field(default=None, ge=-90.0, le=90.0)
	lng: Optional[float] = Field(default=None, ge=-180.0, le=180.0)
	cover_img_url: Optional[str] = None
	isbn: Optional[str] = Field(default=None, max_length=20)
	description: Optional[str] = Field(default=None, max_length=5000)


class BookOut(BaseModel):
	id: str
	user_id: str
	title: str
	author: Optional[str] = None
	location_text: str
	postal_code: Optional[str] = None
	lat: Optional[float] = None
	lng: Optional[float] = None
	condition: str
	cover_img_url: Optional[str] = None
	isbn: Optional[str] = None
	description: Optional[str] = None
	created_at: datetime
	updated_at: datetime
	distance_km: Optional[float] = None
	distance_meters: Optional[float] = None

	@classmethod
	def from_model(cls, book: Book) -> "BookOut":
		return cls(
			id=book.id,
			user_id=book.user_id,
			title=book.title,
			author=book.author,
			location_text=book.location_text,
			postal_code=book.postal_code,
			lat=book.lat,
			lng=book.lng,
			condition=book.condition,
			cover_img_url=book.cover_img_url,
			isbn=book.isbn,
			description=book.description,
			created_at=book.created_at,
			updated_at=book.updated_at,
			distance_km=book.distance_km,
			distance_meters=book.distance_meters,
		)


class NearbyQuery(BaseModel):
	lat: float = Field(..., ge=-90.0, le=90.0)
	lng: float = Field(..., ge=-180.0, le=180.0)
	radius_km: float = Field(default=settings.book_search_default_radius_km, gt=0, le=100)
	limit: int = Field(default=settings.book_search_default_limit, ge=1, le=settings.book_search_max_results)


class NearbyResponse(BaseModel):
	radius_km: float
	items: List[BookOut]


class BookRequestOut(BaseModel):
	id: str
	book_id: str
	requester_id: str
	owner_id: str
	status: str
	created_at: datetime

	@classmethod
	def from_model(cls, request: BookRequest) -> "BookRequestOut":
		return cls(
			id=request.id,
			book_id=request.book_id,
			requester_id=request.requester_id,
			owner_id=request.owner_id,
			status=request.status,
			created_at=request.created_at,
		)


class BookLookupItem(BaseModel):
	title: str
	author: str = ""
	isbn: str = ""
	description: str = ""
	cover_img_url: Optional[str] = None
