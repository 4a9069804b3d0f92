"""Chat domain errors."""

from __future__ import annotations


class ChatError(Exception):
	"""Base class for chat failures surfaced to clients."""

	code = "chat_error"


class ConversationAccessError(ChatError):
	code = "conversation_forbidden"


class EmptyMessageError(ChatError):
	code = "message_empty"


class MessageTooLongError(ChatError):
	code = "message_too_long"


class NoConversationSelectedError(ChatError):
	code = "no_conversation_selected"


class SelfConversationError(ChatError):
	code = "cannot_message_self"
