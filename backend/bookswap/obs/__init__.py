"""Observability wiring: JSON logs, request context and metrics."""

from __future__ import annotations

from fastapi import FastAPI

from bookswap.obs import logging as obs_logging
from bookswap.obs import middleware
from bookswap.settings import settings


def init(app: FastAPI) -> None:
	"""Install the request middleware; JSON logging only when observability is on.

	Request ids are assigned either way so error payloads can always quote one.
	"""
	if settings.obs_enabled:
		obs_logging.configure_logging()
	middleware.install(app)


__all__ = ["init"]
