"""Accessors for services created in the application lifespan."""

from __future__ import annotations

import httpx
from fastapi import HTTPException, Request, status

from bookswap.domain.chat.service import ChatService
from bookswap.domain.geosearch.loader import GeocodingProviderLoader


def _state(request: Request, name: str):
	value = getattr(request.app.state, name, None)
	if value is None:
		raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="service_starting")
	return value


def get_chat_service(request: Request) -> ChatService:
	return _state(request, "chat_service")


def get_geo_loader(request: Request) -> GeocodingProviderLoader:
	return _state(request, "geo_loader")


def get_http_client(request: Request) -> httpx.AsyncClient:
	return _state(request, "http_client")
