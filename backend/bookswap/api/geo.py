"""Location lookup endpoints."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from bookswap.api.deps import get_geo_loader
from bookswap.domain.geosearch.errors import (
	GeocodingError,
	GeocodingTimeoutError,
	GeocodingUnavailableError,
)
from bookswap.domain.geosearch.loader import GeocodingProviderLoader
from bookswap.domain.geosearch.radius import ALLOWED_RADII_KM
from bookswap.infra.auth import AuthenticatedUser, get_current_user
from bookswap.settings import settings

router = APIRouter(prefix="/geo", tags=["geo"])


class LocationOut(BaseModel):
	postal_code: str
	formatted_address: str
	lat: Optional[float] = None
	lng: Optional[float] = None
	place_id: Optional[str] = None


class RadiusScale(BaseModel):
	radii_km: List[int]
	default_km: int


@router.get("/radii", response_model=RadiusScale)
async def radius_scale() -> RadiusScale:
	return RadiusScale(radii_km=list(ALLOWED_RADII_KM), default_km=settings.book_search_default_radius_km)


@router.get("/autocomplete", response_model=List[LocationOut])
async def autocomplete(
	q: str = Query(..., max_length=200),
	lat: Optional[float] = Query(default=None, ge=-90.0, le=90.0),
	lng: Optional[float] = Query(default=None, ge=-180.0, le=180.0),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	loader: GeocodingProviderLoader = Depends(get_geo_loader),
) -> List[LocationOut]:
	if len(q.strip()) < settings.geocoding_min_chars:
		return []
	if lat is None or lng is None:
		lat, lng = settings.geocoding_fallback_lat, settings.geocoding_fallback_lng
	try:
		client = await loader.load()
		results = await client.autocomplete(q.strip(), lat, lng)
	except GeocodingUnavailableError as exc:
		raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc) or exc.code) from None
	except GeocodingTimeoutError:
		raise HTTPException(status.HTTP_504_GATEWAY_TIMEOUT, detail="geocoding_timeout") from None
	except GeocodingError as exc:
		raise HTTPException(status.HTTP_502_BAD_GATEWAY, detail=exc.code) from None
	return [LocationOut(**item.to_dict()) for item in results]
