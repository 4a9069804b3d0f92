"""OpenAPI document tweaks: bearer auth and a note on the socket namespaces."""

from __future__ import annotations

from fastapi.openapi.utils import get_openapi

from bookswap.settings import settings

_TAGS = [
    {"name": "chat", "description": "Conversations between readers and book owners."},
    {"name": "books", "description": "Listings, requests and distance-ranked search."},
    {"name": "geo", "description": "Location autocomplete and the search radius scale."},
    {"name": "profile", "description": "The signed-in user's profile."},
    {"name": "ops", "description": "Health probes and metrics."},
]

_SOCKETS = {
    "/chat": {
        "client": ["chat_select", "chat_load_older", "chat_send", "chat_refresh"],
        "server": ["chat:ack", "chat:conversations", "chat:messages", "chat:message", "chat:error"],
    },
    "/geo": {
        "client": ["geo_input", "geo_retry"],
        "server": ["geo:state"],
    },
}


def custom_openapi(app):
    def _build():
        if app.openapi_schema:
            return app.openapi_schema
        schema = get_openapi(
            title="bookswap API",
            version=settings.git_commit[:7] if settings.git_commit else "dev",
            description="Book listings, nearby search and owner messaging. Live updates use Socket.IO at /socket.io.",
            routes=app.routes,
            tags=_TAGS,
        )
        schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
        schemes["bearerAuth"] = {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}
        schema["security"] = [{"bearerAuth": []}]
        schema["x-socketio-namespaces"] = _SOCKETS
        app.openapi_schema = schema
        return schema

    app.openapi = _build  # type: ignore[attr-defined]
