"""Great-circle distance helpers."""

from __future__ import annotations

import math
from typing import Iterable, List, Optional, Protocol, TypeVar

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
	"""Return the great-circle distance between two points in kilometres."""

	phi1, phi2 = math.radians(lat1), math.radians(lat2)
	dphi = math.radians(lat2 - lat1)
	dlambda = math.radians(lng2 - lng1)
	a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
	return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class Located(Protocol):
	lat: Optional[float]
	lng: Optional[float]


T = TypeVar("T", bound=Located)


def within_radius(items: Iterable[T], lat: float, lng: float, radius_km: float) -> tuple[List[T], int]:
	"""Keep items whose own coordinates lie within ``radius_km`` of the origin.

	Items without coordinates are dropped. Returns the kept items in input order
	and the number rejected.
	"""
	kept: List[T] = []
	rejected = 0
	for item in items:
		if item.lat is None or item.lng is None:
			rejected += 1
			continue
		if haversine_km(lat, lng, item.lat, item.lng) > radius_km:
			rejected += 1
			continue
		kept.append(item)
	return kept, rejected
