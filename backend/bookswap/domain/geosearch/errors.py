"""Geocoding failures."""

from __future__ import annotations


class GeocodingError(Exception):
	code = "geocoding_error"


class GeocodingUnavailableError(GeocodingError):
	"""The provider could not be loaded (missing key, rejected key, unreachable)."""

	code = "geocoding_unavailable"


class GeocodingTimeoutError(GeocodingError):
	code = "geocoding_timeout"


class GeocodingProviderError(GeocodingError):
	code = "geocoding_provider_error"
