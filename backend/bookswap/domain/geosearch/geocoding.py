"""Places autocomplete and geocoding over HTTP.

Suggestions come from the Places ``:autocomplete`` endpoint, biased towards a
circle around the caller. Each prediction is then geocoded by place id to get
its postal code and coordinates. Results are cached in Redis.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

import httpx
from redis.exceptions import RedisError

from bookswap.domain.geosearch.errors import (
	GeocodingProviderError,
	GeocodingTimeoutError,
	GeocodingUnavailableError,
)
from bookswap.infra.redis import redis_client
from bookswap.obs import metrics as obs_metrics
from bookswap.settings import settings

LOGGER = logging.getLogger(__name__)

_CACHE_PREFIX = "geo:ac"


@dataclass(slots=True)
class LocationData:
	postal_code: str
	formatted_address: str
	lat: Optional[float] = None
	lng: Optional[float] = None
	place_id: Optional[str] = None

	def to_dict(self) -> Dict[str, Any]:
		return asdict(self)


def _postal_code(result: Dict[str, Any]) -> str:
	for component in result.get("address_components") or []:
		if "postal_code" in (component.get("types") or []):
			return str(component.get("long_name") or "")
	return ""


@dataclass
class GeocodingClient:
	http: httpx.AsyncClient
	api_key: str
	autocomplete_url: str = settings.places_autocomplete_url
	geocode_url: str = settings.geocode_url
	timeout_seconds: float = settings.geocoding_timeout_seconds
	bias_radius_m: float = settings.geocoding_bias_radius_m
	cache_ttl_seconds: int = settings.geocoding_cache_ttl_seconds

	async def probe(self) -> None:
		"""Check that the provider answers and accepts the key."""
		try:
			response = await self.http.get(
				self.geocode_url,
				params={"address": "", "key": self.api_key},
				timeout=self.timeout_seconds,
			)
		except httpx.TimeoutException as exc:
			raise GeocodingTimeoutError("Geocoding provider loading timed out") from exc
		except httpx.HTTPError as exc:
			raise GeocodingUnavailableError("Failed to load geocoding provider") from exc
		if response.status_code >= 500:
			raise GeocodingUnavailableError("Failed to load geocoding provider")
		try:
			payload = response.json()
		except ValueError:
			payload = None
		status = payload.get("status") if isinstance(payload, dict) else None
		if status == "REQUEST_DENIED" or response.status_code in (401, 403):
			raise GeocodingUnavailableError("API key was rejected by the geocoding provider")

	def _cache_key(self, query: str, lat: float, lng: float) -> str:
		return f"{_CACHE_PREFIX}:{lat:.2f}:{lng:.2f}:{query.strip().lower()}"

	async def _cache_get(self, key: str) -> Optional[str]:
		try:
			return await redis_client.get(key)
		except RedisError:
			LOGGER.warning("geocoding cache read failed", exc_info=True)
			return None

	async def _cache_set(self, key: str, results: List[LocationData]) -> None:
		try:
			await redis_client.set(
				key,
				json.dumps([item.to_dict() for item in results]),
				ex=self.cache_ttl_seconds,
			)
		except RedisError:
			LOGGER.warning("geocoding cache write failed", exc_info=True)

	async def autocomplete(self, query: str, lat: float, lng: float) -> List[LocationData]:
		"""Suggestions for ``query`` near the bias point, within the hard timeout.

		An unreachable cache counts as a miss.
		"""
		key = self._cache_key(query, lat, lng)
		cached = await self._cache_get(key)
		if cached:
			obs_metrics.inc_geocoding("cache_hit")
			return [LocationData(**item) for item in json.loads(cached)]
		try:
			results = await asyncio.wait_for(self._autocomplete(query, lat, lng), timeout=self.timeout_seconds)
		except asyncio.TimeoutError as exc:
			obs_metrics.inc_geocoding("timeout")
			raise GeocodingTimeoutError("Location lookup timed out") from exc
		obs_metrics.inc_geocoding("ok")
		await self._cache_set(key, results)
		return results

	async def _autocomplete(self, query: str, lat: float, lng: float) -> List[LocationData]:
		body = {
			"input": query,
			"locationBias": {
				"circle": {
					"center": {"latitude": lat, "longitude": lng},
					"radius": self.bias_radius_m,
				}
			},
		}
		try:
			response = await self.http.post(
				self.autocomplete_url,
				json=body,
				headers={"X-Goog-Api-Key": self.api_key, "X-Goog-FieldMask": "*"},
			)
		except httpx.HTTPError as exc:
			obs_metrics.inc_geocoding("error")
			raise GeocodingProviderError("Places API request failed") from exc
		if response.status_code != 200:
			obs_metrics.inc_geocoding("error")
			raise GeocodingProviderError(f"Places API error: {response.status_code}")
		try:
			payload = response.json()
		except ValueError as exc:
			obs_metrics.inc_geocoding("error")
			raise GeocodingProviderError("Places API returned an unreadable response") from exc
		if not isinstance(payload, dict):
			obs_metrics.inc_geocoding("error")
			raise GeocodingProviderError("Places API returned an unreadable response")
		predictions = [
			item["placePrediction"]
			for item in (payload.get("suggestions") or [])
			if isinstance(item, dict) and item.get("placePrediction")
		]
		resolved = await asyncio.gather(*(self._resolve(prediction) for prediction in predictions))
		return [item for item in resolved if item is not None]

	async def _resolve(self, prediction: Dict[str, Any]) -> Optional[LocationData]:
		place_id = prediction.get("placeId")
		if not place_id:
			return None
		try:
			response = await self.http.get(
				self.geocode_url,
				params={"place_id": place_id, "key": self.api_key},
			)
			payload = response.json()
		except (httpx.HTTPError, ValueError):
			LOGGER.warning("geocode lookup failed", extra={"place_id": place_id}, exc_info=True)
			return None
		if not isinstance(payload, dict):
			payload = {}
		results = payload.get("results") or []
		if payload.get("status") != "OK" or not results:
			LOGGER.warning("geocode lookup returned no result", extra={"place_id": place_id})
			return None
		result = results[0]
		location = (result.get("geometry") or {}).get("location") or {}
		text = (prediction.get("text") or {}).get("text")
		return LocationData(
			postal_code=_postal_code(result),
			formatted_address=text or result.get("formatted_address") or "",
			lat=location.get("lat"),
			lng=location.get("lng"),
			place_id=place_id,
		)
