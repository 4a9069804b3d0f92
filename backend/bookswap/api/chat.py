"""FastAPI endpoints for book-owner conversations."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from bookswap.api.deps import get_chat_service
from bookswap.domain.chat.errors import ChatError, ConversationAccessError
from bookswap.domain.chat.schemas import (
	ConversationOut,
	MessageOut,
	MessagePageOut,
	ReadReceipt,
	SendMessageRequest,
	StartConversationRequest,
	StartConversationResponse,
)
from bookswap.domain.chat.service import ChatService
from bookswap.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/chat", tags=["chat"])


def _http_error(exc: ChatError) -> HTTPException:
	if isinstance(exc, ConversationAccessError):
		return HTTPException(status.HTTP_403_FORBIDDEN, detail=exc.code)
	return HTTPException(status.HTTP_400_BAD_REQUEST, detail=exc.code)


@router.get("/conversations", response_model=List[ConversationOut])
async def list_conversations(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: ChatService = Depends(get_chat_service),
) -> List[ConversationOut]:
	summaries = await service.aggregate_conversations(auth_user.id)
	return [ConversationOut.from_model(item) for item in summaries]


@router.post("/conversations", response_model=StartConversationResponse, status_code=status.HTTP_201_CREATED)
async def start_conversation(
	payload: StartConversationRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: ChatService = Depends(get_chat_service),
) -> StartConversationResponse:
	try:
		conversation_id = await service.start_conversation(
			auth_user.id,
			payload.other_user_id,
			initial_message=payload.initial_message,
			book_id=payload.book_id,
		)
	except ChatError as exc:
		raise _http_error(exc) from None
	return StartConversationResponse(conversation_id=conversation_id)


@router.get("/conversations/{conversation_id}/messages", response_model=MessagePageOut)
async def list_messages(
	conversation_id: str,
	page: int = Query(default=0, ge=0),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: ChatService = Depends(get_chat_service),
) -> MessagePageOut:
	try:
		result = await service.fetch_page(conversation_id, auth_user.id, page)
	except ChatError as exc:
		raise _http_error(exc) from None
	return MessagePageOut.from_model(result)


@router.post(
	"/conversations/{conversation_id}/messages",
	response_model=MessageOut,
	status_code=status.HTTP_201_CREATED,
)
async def send_message(
	conversation_id: str,
	payload: SendMessageRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: ChatService = Depends(get_chat_service),
) -> MessageOut:
	try:
		message = await service.send_message(conversation_id, auth_user.id, payload.content)
	except ChatError as exc:
		raise _http_error(exc) from None
	return MessageOut.from_model(message)


@router.post("/conversations/{conversation_id}/read", response_model=ReadReceipt)
async def mark_read(
	conversation_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: ChatService = Depends(get_chat_service),
) -> ReadReceipt:
	try:
		at = await service.mark_read(conversation_id, auth_user.id)
	except ChatError as exc:
		raise _http_error(exc) from None
	return ReadReceipt(conversation_id=conversation_id, last_read_at=at)
