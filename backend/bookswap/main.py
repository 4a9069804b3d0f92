"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import asyncpg
import httpx
import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bookswap.api import books, chat, geo, ops, profile
from bookswap.api.errors import install_error_handlers
from bookswap.api.openapi import custom_openapi
from bookswap.domain.chat.service import ChatService
from bookswap.domain.chat.sockets import ChatNamespace
from bookswap.domain.geosearch.loader import GeocodingProviderLoader
from bookswap.domain.geosearch.sockets import GeoNamespace
from bookswap.infra import postgres
from bookswap.infra.redis import redis_client
from bookswap.obs import init as obs_init
from bookswap.realtime.hub import RealtimeHub
from bookswap.settings import settings

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	try:
		await postgres.init_pool()
	except (OSError, asyncpg.PostgresError):
		if settings.is_prod():
			raise
		LOGGER.warning("postgres unavailable, serving from in-memory stores", exc_info=True)
	hub = RealtimeHub()
	http_client = httpx.AsyncClient(timeout=settings.geocoding_timeout_seconds)
	chat_service = ChatService(hub)
	geo_loader = GeocodingProviderLoader(http_client)
	app.state.hub = hub
	app.state.http_client = http_client
	app.state.chat_service = chat_service
	app.state.geo_loader = geo_loader
	chat_namespace.service = chat_service
	geo_namespace.loader = geo_loader
	try:
		yield
	finally:
		hub.close()
		await http_client.aclose()
		await postgres.close_pool()
		await redis_client.close()


app = FastAPI(title="bookswap", lifespan=lifespan)
custom_openapi(app)
install_error_handlers(app)

allow_origins = list(getattr(settings, "cors_allow_origins", []))
if not allow_origins:
	allow_origins = ["http://localhost:5173", "http://localhost:3000"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True.
if "*" in allow_origins and not settings.is_dev():
	allow_origins = [origin for origin in allow_origins if origin != "*"]

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
chat_namespace = ChatNamespace()
sio.register_namespace(chat_namespace)
geo_namespace = GeoNamespace()
sio.register_namespace(geo_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
obs_init(app)

app.include_router(chat.router, tags=["chat"])
app.include_router(books.router, tags=["books"])
app.include_router(geo.router, tags=["geo"])
app.include_router(profile.router, tags=["profile"])
app.include_router(ops.router, tags=["ops"])
