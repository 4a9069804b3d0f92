"""Chat domain exports."""

from .errors import ChatError, ConversationAccessError, EmptyMessageError
from .service import ChatService
from .session import ChatSession

__all__ = [
	"ChatError",
	"ChatService",
	"ChatSession",
	"ConversationAccessError",
	"EmptyMessageError",
]
