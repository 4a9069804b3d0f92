"""Socket.IO namespace driving location autocomplete."""

from __future__ import annotations

from typing import Dict, Optional

import socketio

from bookswap.domain.geosearch.autocomplete import AutocompleteSession
from bookswap.domain.geosearch.loader import GeocodingProviderLoader
from bookswap.infra.auth import user_from_socket
from bookswap.obs import metrics as obs_metrics


class GeoNamespace(socketio.AsyncNamespace):
	def __init__(self, loader: Optional[GeocodingProviderLoader] = None) -> None:
		super().__init__("/geo")
		self.loader = loader
		self.sessions: Dict[str, AutocompleteSession] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		obs_metrics.socket_connected(self.namespace)
		scope = environ.get("asgi.scope", environ)
		try:
			user_from_socket(scope, auth or environ.get("auth"))
		except ConnectionRefusedError:
			obs_metrics.socket_disconnected(self.namespace)
			raise
		if self.loader is None:
			obs_metrics.socket_disconnected(self.namespace)
			raise ConnectionRefusedError("service_starting")

		async def _push(snapshot: dict) -> None:
			await self.emit("geo:state", snapshot, room=sid)

		self.sessions[sid] = AutocompleteSession(self.loader, on_change=_push)
		await self.emit("geo:state", self.sessions[sid].snapshot(), room=sid)

	async def on_disconnect(self, sid: str, *args) -> None:
		obs_metrics.socket_disconnected(self.namespace)
		session = self.sessions.pop(sid, None)
		if session:
			session.close()

	def _session(self, sid: str) -> AutocompleteSession:
		session = self.sessions.get(sid)
		if not session:
			raise ConnectionRefusedError("unauthenticated")
		return session

	async def on_geo_input(self, sid: str, payload: dict) -> None:
		obs_metrics.socket_event(self.namespace, "geo_input")
		session = self._session(sid)
		payload = payload or {}
		if "lat" in payload or "lng" in payload:
			session.set_bias(payload.get("lat"), payload.get("lng"))
		await session.input(str(payload.get("query") or ""))

	async def on_geo_retry(self, sid: str, payload: Optional[dict] = None) -> None:
		obs_metrics.socket_event(self.namespace, "geo_retry")
		await self._session(sid).retry()
