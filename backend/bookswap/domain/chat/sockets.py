"""Socket.IO namespace serving live chat sessions."""

from __future__ import annotations

import logging
from typing import Dict, Optional

import socketio

from bookswap.domain.chat.errors import ChatError
from bookswap.domain.chat.service import ChatService
from bookswap.domain.chat.session import ChatSession
from bookswap.infra.auth import user_from_socket
from bookswap.obs import metrics as obs_metrics

LOGGER = logging.getLogger(__name__)


class ChatNamespace(socketio.AsyncNamespace):
	"""One ChatSession per connected client, scoped to the authenticated user."""

	def __init__(self, service: Optional[ChatService] = None) -> None:
		super().__init__("/chat")
		self.service = service
		self.sessions: Dict[str, ChatSession] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		obs_metrics.socket_connected(self.namespace)
		scope = environ.get("asgi.scope", environ)
		try:
			user = user_from_socket(scope, auth or environ.get("auth"))
		except ConnectionRefusedError:
			obs_metrics.socket_disconnected(self.namespace)
			raise
		if self.service is None:
			obs_metrics.socket_disconnected(self.namespace)
			raise ConnectionRefusedError("service_starting")

		async def _push(event: str, payload: dict) -> None:
			await self.emit(event, payload, room=sid)

		session = ChatSession(user.id, self.service, on_change=_push)
		self.sessions[sid] = session
		await self.enter_room(sid, self.user_room(user.id))
		await self.emit("chat:ack", {"ok": True, "user_id": user.id}, room=sid)
		await session.start()

	async def on_disconnect(self, sid: str, *args) -> None:
		obs_metrics.socket_disconnected(self.namespace)
		session = self.sessions.pop(sid, None)
		if session:
			session.close()
			await self.leave_room(sid, self.user_room(session.user_id))

	def _session(self, sid: str) -> ChatSession:
		session = self.sessions.get(sid)
		if not session:
			raise ConnectionRefusedError("unauthenticated")
		return session

	async def _report(self, sid: str, exc: ChatError) -> dict:
		await self.emit("chat:error", {"code": exc.code}, room=sid)
		return {"ok": False, "error": exc.code}

	async def on_chat_select(self, sid: str, payload: dict) -> dict:
		obs_metrics.socket_event(self.namespace, "chat_select")
		session = self._session(sid)
		conversation_id = str((payload or {}).get("conversation_id") or "")
		if not conversation_id:
			return {"ok": False, "error": "conversation_id_required"}
		try:
			await session.select(conversation_id)
		except ChatError as exc:
			return await self._report(sid, exc)
		return {"ok": True}

	async def on_chat_load_older(self, sid: str, payload: Optional[dict] = None) -> dict:
		obs_metrics.socket_event(self.namespace, "chat_load_older")
		session = self._session(sid)
		try:
			await session.load_older()
		except ChatError as exc:
			return await self._report(sid, exc)
		return {"ok": True, "page": session.page, "has_more": session.has_more}

	async def on_chat_send(self, sid: str, payload: dict) -> dict:
		obs_metrics.socket_event(self.namespace, "chat_send")
		session = self._session(sid)
		try:
			message = await session.send_message(str((payload or {}).get("content") or ""))
		except ChatError as exc:
			return await self._report(sid, exc)
		return {"ok": True, "message": message.to_dict()}

	async def on_chat_refresh(self, sid: str, payload: Optional[dict] = None) -> dict:
		obs_metrics.socket_event(self.namespace, "chat_refresh")
		await self._session(sid).refresh_conversations()
		return {"ok": True}

	@staticmethod
	def user_room(user_id: str) -> str:
		return f"user:{user_id}"
