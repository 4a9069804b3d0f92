"""Non-linear search radius scale used by the distance slider."""

from __future__ import annotations

from typing import Tuple

# 1 km steps to 10, 5 km steps to 50, 10 km steps to 100.
ALLOWED_RADII_KM: Tuple[int, ...] = (
	tuple(range(1, 11))
	+ tuple(range(15, 51, 5))
	+ tuple(range(60, 101, 10))
)

MAX_INDEX = len(ALLOWED_RADII_KM) - 1


def slider_index_to_radius(index: int) -> int:
	clamped = max(0, min(MAX_INDEX, int(index)))
	return ALLOWED_RADII_KM[clamped]


def radius_to_slider_index(radius_km: float) -> int:
	"""Index of the allowed radius closest to ``radius_km``; ties go to the smaller one."""
	best_index = 0
	best_diff = abs(ALLOWED_RADII_KM[0] - radius_km)
	for idx, candidate in enumerate(ALLOWED_RADII_KM[1:], start=1):
		diff = abs(candidate - radius_km)
		if diff < best_diff:
			best_index = idx
			best_diff = diff
	return best_index


def snap_radius(radius_km: float) -> int:
	return ALLOWED_RADII_KM[radius_to_slider_index(radius_km)]
