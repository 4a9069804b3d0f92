"""Per-connection chat state driven by the socket namespace.

A session owns two change-feed subscriptions: one on the viewer's
participant rows (new conversations) and one on the messages of the
currently selected conversation. Every state change is pushed to the
client through ``on_change``.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from bookswap.domain.chat.errors import EmptyMessageError, NoConversationSelectedError
from bookswap.domain.chat.models import ConversationSummary, Message, merge_messages
from bookswap.domain.chat.service import MESSAGES_TABLE, PARTICIPANTS_TABLE, ChatService
from bookswap.obs import metrics as obs_metrics
from bookswap.realtime.hub import INSERT, Subscription

LOGGER = logging.getLogger(__name__)

ChangeCallback = Callable[[str, Dict[str, Any]], Awaitable[None]]


async def _discard(event: str, payload: Dict[str, Any]) -> None:
	return None


class ChatSession:
	def __init__(self, user_id: str, service: ChatService, *, on_change: Optional[ChangeCallback] = None) -> None:
		self.user_id = user_id
		self.service = service
		self.on_change = on_change or _discard
		self.conversations: List[ConversationSummary] = []
		self.selected_id: Optional[str] = None
		self.messages: List[Message] = []
		self.page = 0
		self.has_more = False
		self.loading = False
		self._participation: Optional[Subscription] = None
		self._channel: Optional[Subscription] = None

	async def start(self) -> None:
		self._participation = self.service.hub.subscribe(
			PARTICIPANTS_TABLE,
			INSERT,
			self._on_participant_insert,
			filters={"user_id": self.user_id},
		)
		await self.refresh_conversations()

	def close(self) -> None:
		if self._channel is not None:
			self._channel.close()
			self._channel = None
		if self._participation is not None:
			self._participation.close()
			self._participation = None
		self.selected_id = None

	async def refresh_conversations(self) -> None:
		self.conversations = await self.service.aggregate_conversations(self.user_id)
		await self._push_conversations()

	async def select(self, conversation_id: str) -> None:
		# Membership is checked before any channel opens; a refused selection
		# leaves the current view untouched.
		await self.service.require_participant(conversation_id, self.user_id)
		# Drop the previous channel first so its events cannot reach the new view.
		if self._channel is not None:
			self._channel.close()
			self._channel = None
		self.selected_id = conversation_id
		self.messages = []
		self.page = 0
		self.has_more = False
		self.loading = False
		self._channel = self.service.hub.subscribe(
			MESSAGES_TABLE,
			INSERT,
			self._on_message_insert,
			filters={"conversation_id": conversation_id},
		)
		self.conversations = [
			replace(item, unread_count=0) if item.id == conversation_id else item
			for item in self.conversations
		]
		await self._push_conversations()
		try:
			await self._load_page(0)
		except Exception:
			if self._channel is not None:
				self._channel.close()
				self._channel = None
			self.selected_id = None
			raise

	async def load_older(self) -> None:
		if self.selected_id is None or self.loading or not self.has_more:
			return
		await self._load_page(self.page + 1)

	async def _load_page(self, page: int) -> None:
		conversation_id = self.selected_id
		assert conversation_id is not None
		self.loading = True
		try:
			result = await self.service.fetch_page(conversation_id, self.user_id, page)
		finally:
			self.loading = False
		if self.selected_id != conversation_id:
			return
		if page == 0:
			# Keep anything the channel delivered while the first page was in flight.
			self.messages = merge_messages(result.messages, self.messages, prepend=False)
		else:
			self.messages = merge_messages(self.messages, result.messages, prepend=True)
		self.page = page
		self.has_more = result.has_more
		await self.on_change(
			"chat:messages",
			{
				"conversation_id": conversation_id,
				"page": page,
				"has_more": result.has_more,
				"messages": [message.to_dict() for message in self.messages],
			},
		)

	def _append(self, message: Message) -> bool:
		if any(existing.id == message.id for existing in self.messages):
			return False
		self.messages.append(message)
		return True

	async def _on_message_insert(self, row: Dict[str, Any]) -> None:
		message = Message.from_record(row)
		if message.conversation_id != self.selected_id:
			return
		if not self._append(message):
			obs_metrics.inc_chat_duplicate()
			return
		if message.user_id != self.user_id:
			await self.service.mark_read(message.conversation_id, self.user_id, source="realtime")
		await self.on_change("chat:message", message.to_dict())

	async def _on_participant_insert(self, row: Dict[str, Any]) -> None:
		await self.refresh_conversations()

	async def send_message(self, text: str) -> Message:
		"""Persist a message, moving its conversation to the top of the list first.

		If the write fails the list is restored to its previous state and the
		error is re-raised.
		"""
		content = (text or "").strip()
		if not content:
			raise EmptyMessageError(self.selected_id)
		conversation_id = self.selected_id
		if conversation_id is None:
			raise NoConversationSelectedError(self.user_id)

		snapshot = list(self.conversations)
		self._move_to_top(conversation_id, content, None)
		await self._push_conversations()
		try:
			message = await self.service.send_message(conversation_id, self.user_id, content)
		except Exception:
			self.conversations = snapshot
			obs_metrics.inc_chat_rollback()
			LOGGER.warning("chat send failed, conversation order restored", exc_info=True)
			await self._push_conversations()
			raise
		self._move_to_top(conversation_id, message.content, message)
		await self._push_conversations()
		if self.selected_id == conversation_id and self._append(message):
			await self.on_change("chat:message", message.to_dict())
		return message

	def _move_to_top(self, conversation_id: str, content: str, message: Optional[Message]) -> None:
		for idx, item in enumerate(self.conversations):
			if item.id != conversation_id:
				continue
			updated = replace(
				item,
				last_message=content,
				last_message_at=message.created_at if message else datetime.now(timezone.utc),
				last_message_sender_id=self.user_id,
			)
			self.conversations = [updated] + self.conversations[:idx] + self.conversations[idx + 1 :]
			return

	async def _push_conversations(self) -> None:
		await self.on_change(
			"chat:conversations",
			{"conversations": [item.to_dict() for item in self.conversations]},
		)
