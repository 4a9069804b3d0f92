"""Chat service logic: conversation lists, paging, read markers and sends."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from bookswap.domain.chat.errors import (
	ConversationAccessError,
	EmptyMessageError,
	MessageTooLongError,
	SelfConversationError,
)
from bookswap.domain.chat.models import (
	Conversation,
	ConversationSummary,
	Message,
	MessagePage,
	Participant,
	sort_summaries,
)
from bookswap.domain.chat.repo import ChatRepository, new_id
from bookswap.obs import metrics as obs_metrics
from bookswap.realtime.hub import INSERT, UPDATE, RealtimeHub
from bookswap.settings import settings

LOGGER = logging.getLogger(__name__)

MESSAGES_TABLE = "messages"
PARTICIPANTS_TABLE = "conversation_participants"
CONVERSATIONS_TABLE = "conversations"


def _now() -> datetime:
	return datetime.now(timezone.utc)


class ChatService:
	"""Operations over conversations shared by the REST and socket surfaces."""

	def __init__(
		self,
		hub: RealtimeHub,
		*,
		repo: Optional[ChatRepository] = None,
		page_size: Optional[int] = None,
	) -> None:
		self.hub = hub
		self.repo = repo or ChatRepository()
		self.page_size = page_size or settings.chat_page_size

	async def aggregate_conversations(self, user_id: str) -> List[ConversationSummary]:
		"""Build the viewer's conversation list.

		A store failure yields an empty list rather than a partial one.
		"""
		try:
			rows = await self.repo.summary_rows(user_id)
		except Exception:
			LOGGER.exception("conversation aggregation failed")
			obs_metrics.inc_chat_aggregation("error")
			return []
		obs_metrics.inc_chat_aggregation("ok")
		return sort_summaries([ConversationSummary.from_row(row) for row in rows])

	async def require_participant(self, conversation_id: str, user_id: str) -> Participant:
		participant = await self.repo.get_participant(conversation_id, user_id)
		if participant is None:
			raise ConversationAccessError(conversation_id)
		return participant

	async def fetch_page(self, conversation_id: str, user_id: str, page: int) -> MessagePage:
		"""Return one page of history in chronological order.

		Page 0 holds the newest messages and opening it marks the conversation read.
		"""
		if page < 0:
			raise ValueError("page must be >= 0")
		await self.require_participant(conversation_id, user_id)
		rows = await self.repo.fetch_messages(
			conversation_id,
			offset=page * self.page_size,
			limit=self.page_size + 1,
		)
		has_more = len(rows) > self.page_size
		messages = list(reversed(rows[: self.page_size]))
		if page == 0:
			await self.mark_read(conversation_id, user_id, source="open")
		return MessagePage(conversation_id=conversation_id, page=page, messages=messages, has_more=has_more)

	async def mark_read(self, conversation_id: str, user_id: str, *, source: str = "api") -> datetime:
		at = _now()
		updated = await self.repo.mark_read(conversation_id, user_id, at)
		if not updated:
			raise ConversationAccessError(conversation_id)
		obs_metrics.inc_chat_read(source)
		await self.hub.publish(
			PARTICIPANTS_TABLE,
			UPDATE,
			Participant(conversation_id, user_id, at).to_row(),
		)
		return at

	async def send_message(self, conversation_id: str, sender_id: str, content: str) -> Message:
		text = (content or "").strip()
		if not text:
			raise EmptyMessageError(conversation_id)
		if len(text) > settings.chat_message_max_length:
			raise MessageTooLongError(conversation_id)
		await self.require_participant(conversation_id, sender_id)
		message = Message(
			id=new_id(),
			conversation_id=conversation_id,
			user_id=sender_id,
			content=text,
			created_at=_now(),
		)
		await self.repo.insert_message(message)
		obs_metrics.inc_chat_send()
		LOGGER.info("chat message stored", extra={"conversation_id": conversation_id, "message_id": message.id})
		await self.hub.publish(MESSAGES_TABLE, INSERT, message.to_dict())
		return message

	async def start_conversation(
		self,
		user_id: str,
		other_user_id: str,
		*,
		initial_message: Optional[str] = None,
		book_id: Optional[str] = None,
	) -> str:
		"""Open (or reuse) the 1:1 conversation between two users about a book."""
		if str(other_user_id) == str(user_id):
			raise SelfConversationError(user_id)
		conversation_id = await self.repo.find_direct(user_id, other_user_id, book_id)
		if conversation_id is None:
			now = _now()
			conversation = Conversation(id=new_id(), created_at=now, book_id=book_id)
			participants = [
				Participant(conversation.id, user_id, now),
				Participant(conversation.id, other_user_id, None),
			]
			await self.repo.create(conversation, participants)
			conversation_id = conversation.id
			await self.hub.publish(
				CONVERSATIONS_TABLE,
				INSERT,
				{"id": conversation.id, "created_at": now.isoformat(), "book_id": book_id},
			)
			for participant in participants:
				await self.hub.publish(PARTICIPANTS_TABLE, INSERT, participant.to_row())
		if initial_message and initial_message.strip():
			await self.send_message(conversation_id, user_id, initial_message)
		return conversation_id
