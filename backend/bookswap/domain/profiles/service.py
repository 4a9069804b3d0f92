"""Profile lookups and edits."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from bookswap.domain.profiles.models import Profile
from bookswap.domain.profiles.repo import ProfileRepository

LOGGER = logging.getLogger(__name__)

_REPO = ProfileRepository()


async def get_or_create_profile(user_id: str) -> Profile:
	"""Return the user's profile, creating an empty one when none exists yet."""
	profile = await _REPO.get_profile(user_id)
	if profile is not None:
		return profile
	LOGGER.info("creating default profile", extra={"profile_user_id": user_id})
	return await _REPO.insert_default(user_id)


async def update_profile(user_id: str, fields: Mapping[str, Any]) -> Profile:
	return await _REPO.upsert_profile(user_id, fields)


async def get_user_email(user_id: str) -> Optional[str]:
	return await _REPO.get_user_email(user_id)


async def set_user_email(user_id: str, email: str) -> None:
	await _REPO.set_user_email(user_id, email)
