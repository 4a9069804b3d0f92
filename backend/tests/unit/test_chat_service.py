from datetime import datetime, timedelta, timezone

import pytest

from bookswap.domain.chat.errors import (
	ConversationAccessError,
	EmptyMessageError,
	MessageTooLongError,
	SelfConversationError,
)
from bookswap.domain.chat.models import Conversation, Message, Participant, merge_messages
from bookswap.domain.chat.repo import MEMORY_STORE
from bookswap.domain.chat.service import MESSAGES_TABLE, ChatService
from bookswap.domain.profiles.models import Profile
from bookswap.domain.profiles.repo import MEMORY_STORE as PROFILE_STORE
from bookswap.realtime.hub import INSERT, RealtimeHub

BASE = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


async def _seed_conversation(conversation_id, members, *, created_at=BASE, last_read=None):
	last_read = last_read or {}
	await MEMORY_STORE.create(
		Conversation(id=conversation_id, created_at=created_at),
		[Participant(conversation_id, member, last_read.get(member)) for member in members],
	)


async def _seed_messages(conversation_id, sender, count, *, start=BASE):
	messages = []
	for idx in range(count):
		message = Message(
			id=f"{conversation_id}-m{idx:03d}",
			conversation_id=conversation_id,
			user_id=sender,
			content=f"message {idx}",
			created_at=start + timedelta(minutes=idx + 1),
		)
		await MEMORY_STORE.insert_message(message)
		messages.append(message)
	return messages


@pytest.mark.asyncio
async def test_unread_counts_only_foreign_messages_after_last_read():
	service = ChatService(RealtimeHub())
	await _seed_conversation("c1", ["alice", "bob"], last_read={"bob": BASE + timedelta(minutes=2)})
	await _seed_messages("c1", "alice", 5)
	await _seed_messages("c1", "bob", 2, start=BASE + timedelta(hours=1))

	bob_view = {item.id: item for item in await service.aggregate_conversations("bob")}
	alice_view = {item.id: item for item in await service.aggregate_conversations("alice")}

	# alice's messages 3..5 are newer than bob's marker
	assert bob_view["c1"].unread_count == 3
	# alice never read, so every foreign message counts
	assert alice_view["c1"].unread_count == 2


@pytest.mark.asyncio
async def test_mark_read_clears_unread_and_publishes_update():
	hub = RealtimeHub()
	service = ChatService(hub)
	await _seed_conversation("c1", ["alice", "bob"])
	await _seed_messages("c1", "alice", 3)
	updates = []

	async def on_update(row):
		updates.append(row)

	hub.subscribe("conversation_participants", "UPDATE", on_update, filters={"user_id": "bob"})
	at = await service.mark_read("c1", "bob")

	[summary] = await service.aggregate_conversations("bob")
	assert summary.unread_count == 0
	assert updates[0]["conversation_id"] == "c1"
	assert updates[0]["last_read_at"] == at.isoformat()


@pytest.mark.asyncio
async def test_display_name_prefers_email_then_name():
	service = ChatService(RealtimeHub())
	await _seed_conversation("with-email", ["me", "u-email"])
	await _seed_conversation("with-name", ["me", "u-name"])
	await _seed_conversation("anonymous", ["me", "u-none"])
	await _seed_conversation("alone", ["me"])
	PROFILE_STORE.emails["u-email"] = "reader@example.com"
	PROFILE_STORE.profiles["u-email"] = Profile(id="u-email", full_name="Has Email")
	PROFILE_STORE.profiles["u-name"] = Profile(id="u-name", full_name="Bob Reader", avatar_url="https://img/b.png")

	names = {item.id: item for item in await service.aggregate_conversations("me")}

	assert names["with-email"].display_name == "reader@example.com"
	assert names["with-name"].display_name == "Bob Reader"
	assert names["with-name"].avatar_url == "https://img/b.png"
	assert names["anonymous"].display_name == "Unknown User"
	assert names["alone"].display_name == "Empty Chat"
	assert names["alone"].other_user_id is None


@pytest.mark.asyncio
async def test_conversations_sorted_by_latest_activity():
	service = ChatService(RealtimeHub())
	await _seed_conversation("quiet-old", ["me", "a"], created_at=BASE)
	await _seed_conversation("quiet-new", ["me", "b"], created_at=BASE + timedelta(days=1))
	await _seed_conversation("busy", ["me", "c"], created_at=BASE)
	await _seed_conversation("busier", ["me", "d"], created_at=BASE)
	await _seed_messages("busy", "c", 1, start=BASE + timedelta(days=2))
	await _seed_messages("busier", "d", 1, start=BASE + timedelta(days=3))

	order = [item.id for item in await service.aggregate_conversations("me")]
	assert order == ["busier", "busy", "quiet-new", "quiet-old"]


@pytest.mark.asyncio
async def test_aggregation_failure_returns_empty_list():
	class BrokenRepo:
		async def summary_rows(self, user_id):
			raise RuntimeError("database down")

	service = ChatService(RealtimeHub(), repo=BrokenRepo())
	assert await service.aggregate_conversations("me") == []


@pytest.mark.asyncio
async def test_pages_cover_history_in_order():
	service = ChatService(RealtimeHub(), page_size=30)
	await _seed_conversation("c1", ["alice", "bob"])
	seeded = await _seed_messages("c1", "alice", 65)

	first = await service.fetch_page("c1", "bob", 0)
	second = await service.fetch_page("c1", "bob", 1)
	third = await service.fetch_page("c1", "bob", 2)

	assert [m.id for m in first.messages] == [m.id for m in seeded[35:]]
	assert first.has_more is True
	assert second.has_more is True
	assert len(third.messages) == 5
	assert third.has_more is False

	visible = first.messages
	for page in (second, third):
		visible = merge_messages(visible, page.messages, prepend=True)
	assert [m.id for m in visible] == [m.id for m in seeded]


@pytest.mark.asyncio
async def test_exactly_full_page_has_no_more():
	service = ChatService(RealtimeHub(), page_size=30)
	await _seed_conversation("c1", ["alice", "bob"])
	await _seed_messages("c1", "alice", 30)

	page = await service.fetch_page("c1", "bob", 0)
	assert len(page.messages) == 30
	assert page.has_more is False


@pytest.mark.asyncio
async def test_opening_first_page_marks_read():
	service = ChatService(RealtimeHub())
	await _seed_conversation("c1", ["alice", "bob"])
	seeded = await _seed_messages("c1", "alice", 3)

	await service.fetch_page("c1", "bob", 0)
	participant = await MEMORY_STORE.get_participant("c1", "bob")
	assert participant.last_read_at >= seeded[-1].created_at

	# older pages leave the marker alone
	await MEMORY_STORE.mark_read("c1", "bob", BASE)
	await service.fetch_page("c1", "bob", 1)
	participant = await MEMORY_STORE.get_participant("c1", "bob")
	assert participant.last_read_at == BASE


@pytest.mark.asyncio
async def test_non_participant_is_rejected():
	service = ChatService(RealtimeHub())
	await _seed_conversation("c1", ["alice", "bob"])

	with pytest.raises(ConversationAccessError):
		await service.fetch_page("c1", "mallory", 0)
	with pytest.raises(ConversationAccessError):
		await service.send_message("c1", "mallory", "hi")
	with pytest.raises(ConversationAccessError):
		await service.mark_read("c1", "mallory")


@pytest.mark.asyncio
async def test_send_message_validates_content():
	service = ChatService(RealtimeHub())
	await _seed_conversation("c1", ["alice", "bob"])

	with pytest.raises(EmptyMessageError):
		await service.send_message("c1", "alice", "   ")
	with pytest.raises(MessageTooLongError):
		await service.send_message("c1", "alice", "x" * 4001)
	assert MEMORY_STORE.messages.get("c1", []) == []


@pytest.mark.asyncio
async def test_send_message_persists_and_publishes():
	hub = RealtimeHub()
	service = ChatService(hub)
	await _seed_conversation("c1", ["alice", "bob"])
	delivered = []

	async def on_insert(row):
		delivered.append(row)

	hub.subscribe(MESSAGES_TABLE, INSERT, on_insert, filters={"conversation_id": "c1"})
	message = await service.send_message("c1", "alice", "  Hello  ")

	assert message.content == "Hello"
	assert [m.id for m in MEMORY_STORE.messages["c1"]] == [message.id]
	assert MEMORY_STORE.conversations["c1"].last_message == "Hello"
	assert MEMORY_STORE.conversations["c1"].last_message_sender_id == "alice"
	assert delivered[0]["id"] == message.id


@pytest.mark.asyncio
async def test_start_conversation_creates_then_reuses():
	service = ChatService(RealtimeHub())

	conversation_id = await service.start_conversation("alice", "bob", book_id="book-1")
	again = await service.start_conversation("bob", "alice", book_id="book-1")
	other_book = await service.start_conversation("alice", "bob", book_id="book-2")

	assert again == conversation_id
	assert other_book != conversation_id
	initiator = await MEMORY_STORE.get_participant(conversation_id, "alice")
	recipient = await MEMORY_STORE.get_participant(conversation_id, "bob")
	assert initiator.last_read_at is not None
	assert recipient.last_read_at is None


@pytest.mark.asyncio
async def test_start_conversation_sends_initial_message():
	service = ChatService(RealtimeHub())

	conversation_id = await service.start_conversation("alice", "bob", initial_message="Is it still available?")

	[summary] = await service.aggregate_conversations("bob")
	assert summary.id == conversation_id
	assert summary.last_message == "Is it still available?"
	assert summary.unread_count == 1
	[mine] = await service.aggregate_conversations("alice")
	assert mine.unread_count == 0


@pytest.mark.asyncio
async def test_cannot_start_conversation_with_self():
	service = ChatService(RealtimeHub())
	with pytest.raises(SelfConversationError):
		await service.start_conversation("alice", "alice")
