"""Pydantic schemas for the chat API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from bookswap.domain.chat.models import ConversationSummary, Message, MessagePage
from bookswap.domain.chat.timefmt import format_relative, format_time, group_label


class ConversationOut(BaseModel):
	id: str
	display_name: str
	avatar_url: Optional[str] = None
	other_user_id: Optional[str] = None
	book_id: Optional[str] = None
	last_message: Optional[str] = None
	last_message_at: Optional[datetime] = None
	last_message_sender_id: Optional[str] = None
	last_message_display: str = ""
	unread_count: int = 0
	created_at: datetime

	@classmethod
	def from_model(cls, summary: ConversationSummary) -> "ConversationOut":
		return cls(
			id=summary.id,
			display_name=summary.display_name,
			avatar_url=summary.avatar_url,
			other_user_id=summary.other_user_id,
			book_id=summary.book_id,
			last_message=summary.last_message,
			last_message_at=summary.last_message_at,
			last_message_sender_id=summary.last_message_sender_id,
			last_message_display=format_relative(summary.last_message_at),
			unread_count=summary.unread_count,
			created_at=summary.created_at,
		)


class MessageOut(BaseModel):
	id: str
	conversation_id: str
	user_id: str
	content: str
	created_at: datetime
	time_display: str = ""
	day_label: str = ""

	@classmethod
	def from_model(cls, message: Message) -> "MessageOut":
		return cls(
			id=message.id,
			conversation_id=message.conversation_id,
			user_id=message.user_id,
			content=message.content,
			created_at=message.created_at,
			time_display=format_time(message.created_at),
			day_label=group_label(message.created_at),
		)


class MessagePageOut(BaseModel):
	conversation_id: str
	page: int
	has_more: bool
	items: List[MessageOut]

	@classmethod
	def from_model(cls, page: MessagePage) -> "MessagePageOut":
		return cls(
			conversation_id=page.conversation_id,
			page=page.page,
			has_more=page.has_more,
			items=[MessageOut.from_model(message) for message in page.messages],
		)


class SendMessageRequest(BaseModel):
	content: str = Field(..., min_length=1, max_length=4000)


class StartConversationRequest(BaseModel):
	other_user_id: str = Field(..., min_length=1)
	initial_message: Optional[str] = Field(default=None, max_length=4000)
	book_id: Optional[str] = None


class StartConversationResponse(BaseModel):
	conversation_id: str


class ReadReceipt(BaseModel):
	conversation_id: str
	last_read_at: datetime
