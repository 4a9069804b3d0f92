"""Domain models for book listings and requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Mapping, Optional

BookCondition = Literal["New", "Like New", "Good", "Fair", "Poor"]
RequestStatus = Literal["pending", "accepted", "declined"]

LISTING_FIELDS = (
	"title",
	"author",
	"location_text",
	"postal_code",
	"lat",
	"lng",
	"condition",
	"cover_img_url",
	"isbn",
	"description",
)


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


@dataclass(slots=True)
class Book:
	id: str
	user_id: str
	title: str
	location_text: str
	condition: str
	author: Optional[str] = None
	postal_code: Optional[str] = None
	lat: Optional[float] = None
	lng: Optional[float] = None
	cover_img_url: Optional[str] = None
	isbn: Optional[str] = None
	description: Optional[str] = None
	created_at: datetime = field(default_factory=_utcnow)
	updated_at: datetime = field(default_factory=_utcnow)
	distance_km: Optional[float] = None

	@property
	def distance_meters(self) -> Optional[float]:
		return self.distance_km * 1000.0 if self.distance_km is not None else None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Book":
		lat = record.get("lat")
		lng = record.get("lng")
		distance = record.get("distance_km")
		return cls(
			id=str(record["id"]),
			user_id=str(record["user_id"]),
			title=record["title"],
			location_text=record.get("location_text") or "",
			condition=record.get("condition") or "Good",
			author=record.get("author"),
			postal_code=record.get("postal_code"),
			lat=float(lat) if lat is not None else None,
			lng=float(lng) if lng is not None else None,
			cover_img_url=record.get("cover_img_url"),
			isbn=record.get("isbn"),
			description=record.get("description"),
			created_at=record.get("created_at") or _utcnow(),
			updated_at=record.get("updated_at") or _utcnow(),
			distance_km=float(distance) if distance is not None else None,
		)


@dataclass(slots=True)
class BookRequest:
	id: str
	book_id: str
	requester_id: str
	owner_id: str
	status: str = "pending"
	created_at: datetime = field(default_factory=_utcnow)


@dataclass(slots=True)
class Notification:
	id: str
	user_id: str
	type: str
	message: str
	related_id: Optional[str] = None
	read: bool = False
	created_at: datetime = field(default_factory=_utcnow)
