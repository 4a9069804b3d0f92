"""Pydantic schemas for profile endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from bookswap.domain.profiles.models import Profile


class ProfileOut(BaseModel):
	id: str
	full_name: Optional[str] = None
	bio: Optional[str] = None
	location: Optional[str] = None
	favorite_genre: Optional[str] = None
	website: Optional[str] = None
	avatar_url: Optional[str] = None
	email: Optional[str] = None
	created_at: datetime
	updated_at: datetime

	@classmethod
	def from_model(cls, profile: Profile, *, email: Optional[str] = None) -> "ProfileOut":
		return cls(
			id=profile.id,
			full_name=profile.full_name,
			bio=profile.bio,
			location=profile.location,
			favorite_genre=profile.favorite_genre,
			website=profile.website,
			avatar_url=profile.avatar_url,
			email=email,
			created_at=profile.created_at,
			updated_at=profile.updated_at,
		)


class ProfilePatch(BaseModel):
	full_name: Optional[str] = Field(default=None, max_length=120)
	bio: Optional[str] = Field(default=None, max_length=2000)
	location: Optional[str] = Field(default=None, max_length=200)
	favorite_genre: Optional[str] = Field(default=None, max_length=80)
	website: Optional[str] = Field(default=None, max_length=300)
	avatar_url: Optional[str] = Field(default=None, max_length=1000)
