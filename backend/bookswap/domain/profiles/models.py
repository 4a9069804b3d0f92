"""Domain models for user profiles."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


EDITABLE_FIELDS = ("full_name", "bio", "location", "favorite_genre", "website", "avatar_url")


@dataclass(slots=True)
class Profile:
	id: str
	full_name: Optional[str] = None
	bio: Optional[str] = None
	location: Optional[str] = None
	favorite_genre: Optional[str] = None
	website: Optional[str] = None
	avatar_url: Optional[str] = None
	created_at: datetime = field(default_factory=_utcnow)
	updated_at: datetime = field(default_factory=_utcnow)

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Profile":
		return cls(
			id=str(record["id"]),
			full_name=record.get("full_name"),
			bio=record.get("bio"),
			location=record.get("location"),
			favorite_genre=record.get("favorite_genre"),
			website=record.get("website"),
			avatar_url=record.get("avatar_url"),
			created_at=record.get("created_at") or _utcnow(),
			updated_at=record.get("updated_at") or _utcnow(),
		)
