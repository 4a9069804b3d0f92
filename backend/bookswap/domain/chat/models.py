"""Domain models for book-owner conversations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from bookswap.domain.chat.timefmt import format_relative, format_time, group_label

UNKNOWN_USER = "Unknown User"
EMPTY_CHAT = "Empty Chat"


def _iso(value: Optional[datetime]) -> Optional[str]:
	return value.isoformat() if value else None


@dataclass(slots=True)
class Conversation:
	id: str
	created_at: datetime
	book_id: Optional[str] = None
	last_message: Optional[str] = None
	last_message_at: Optional[datetime] = None
	last_message_sender_id: Optional[str] = None


@dataclass(slots=True)
class Participant:
	conversation_id: str
	user_id: str
	last_read_at: Optional[datetime] = None

	def to_row(self) -> dict:
		return {
			"conversation_id": self.conversation_id,
			"user_id": self.user_id,
			"last_read_at": _iso(self.last_read_at),
		}


@dataclass(slots=True)
class Message:
	id: str
	conversation_id: str
	user_id: str
	content: str
	created_at: datetime

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Message":
		created_at = record["created_at"]
		if isinstance(created_at, str):
			created_at = datetime.fromisoformat(created_at)
		return cls(
			id=str(record["id"]),
			conversation_id=str(record["conversation_id"]),
			user_id=str(record["user_id"]),
			content=str(record["content"]),
			created_at=created_at,
		)

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"conversation_id": self.conversation_id,
			"user_id": self.user_id,
			"content": self.content,
			"created_at": self.created_at.isoformat(),
			"time_display": format_time(self.created_at),
			"day_label": group_label(self.created_at),
		}


@dataclass(slots=True)
class ConversationSummary:
	"""A conversation enriched for display from one viewer's perspective."""

	id: str
	created_at: datetime
	display_name: str
	book_id: Optional[str] = None
	last_message: Optional[str] = None
	last_message_at: Optional[datetime] = None
	last_message_sender_id: Optional[str] = None
	other_user_id: Optional[str] = None
	avatar_url: Optional[str] = None
	unread_count: int = 0

	@classmethod
	def from_row(cls, row: Mapping[str, Any]) -> "ConversationSummary":
		other_user_id = row.get("other_user_id")
		if other_user_id is None:
			display_name = EMPTY_CHAT
			avatar_url = None
			unread = 0
		else:
			display_name = row.get("other_email") or row.get("other_full_name") or UNKNOWN_USER
			avatar_url = row.get("other_avatar_url")
			unread = int(row.get("unread_count") or 0)
		return cls(
			id=str(row["id"]),
			created_at=row["created_at"],
			display_name=display_name,
			book_id=str(row["book_id"]) if row.get("book_id") else None,
			last_message=row.get("last_message"),
			last_message_at=row.get("last_message_at"),
			last_message_sender_id=(
				str(row["last_message_sender_id"]) if row.get("last_message_sender_id") else None
			),
			other_user_id=str(other_user_id) if other_user_id is not None else None,
			avatar_url=avatar_url,
			unread_count=unread,
		)

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"created_at": self.created_at.isoformat(),
			"display_name": self.display_name,
			"book_id": self.book_id,
			"last_message": self.last_message,
			"last_message_at": _iso(self.last_message_at),
			"last_message_display": format_relative(self.last_message_at),
			"last_message_sender_id": self.last_message_sender_id,
			"other_user_id": self.other_user_id,
			"avatar_url": self.avatar_url,
			"unread_count": self.unread_count,
		}


@dataclass(slots=True)
class MessagePage:
	conversation_id: str
	page: int
	messages: List[Message] = field(default_factory=list)
	has_more: bool = False


def count_unread(messages: Iterable[Message], viewer_id: str, last_read_at: Optional[datetime]) -> int:
	"""Count foreign messages newer than last_read_at (all of them when never read)."""
	return sum(
		1
		for message in messages
		if message.user_id != viewer_id
		and (last_read_at is None or message.created_at > last_read_at)
	)


def sort_summaries(summaries: Sequence[ConversationSummary]) -> List[ConversationSummary]:
	"""Most recent activity first; conversations without messages go last."""
	with_activity = [item for item in summaries if item.last_message_at is not None]
	without = [item for item in summaries if item.last_message_at is None]
	with_activity.sort(key=lambda item: item.last_message_at, reverse=True)
	without.sort(key=lambda item: item.created_at, reverse=True)
	return with_activity + without


def merge_messages(current: Sequence[Message], incoming: Sequence[Message], *, prepend: bool) -> List[Message]:
	"""Merge a fetched page into the visible list, dropping ids already present."""
	known = {message.id for message in current}
	fresh: List[Message] = []
	for message in incoming:
		if message.id in known:
			continue
		known.add(message.id)
		fresh.append(message)
	if prepend:
		return fresh + list(current)
	return list(current) + fresh
