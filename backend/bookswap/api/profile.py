"""Profile endpoints for the signed-in user."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from bookswap.domain.profiles import service as profiles_service
from bookswap.domain.profiles.schemas import ProfileOut, ProfilePatch
from bookswap.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/profiles", tags=["profile"])


@router.get("/me", response_model=ProfileOut)
async def get_my_profile(auth_user: AuthenticatedUser = Depends(get_current_user)) -> ProfileOut:
	profile = await profiles_service.get_or_create_profile(auth_user.id)
	email = auth_user.email or await profiles_service.get_user_email(auth_user.id)
	return ProfileOut.from_model(profile, email=email)


@router.put("/me", response_model=ProfileOut)
async def update_my_profile(
	payload: ProfilePatch,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> ProfileOut:
	profile = await profiles_service.update_profile(auth_user.id, payload.model_dump(exclude_unset=True))
	email = auth_user.email or await profiles_service.get_user_email(auth_user.id)
	return ProfileOut.from_model(profile, email=email)
