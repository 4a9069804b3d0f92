import pytest

from bookswap.realtime.hub import INSERT, UPDATE, RealtimeHub


@pytest.mark.asyncio
async def test_publish_respects_table_event_and_filters():
	hub = RealtimeHub()
	received = []

	async def handler(row):
		received.append(row)

	hub.subscribe("messages", INSERT, handler, filters={"conversation_id": "c1"})

	assert await hub.publish("messages", INSERT, {"conversation_id": "c1", "id": "m1"}) == 1
	assert await hub.publish("messages", INSERT, {"conversation_id": "c2", "id": "m2"}) == 0
	assert await hub.publish("messages", UPDATE, {"conversation_id": "c1", "id": "m3"}) == 0
	assert await hub.publish("conversations", INSERT, {"conversation_id": "c1"}) == 0
	assert [row["id"] for row in received] == ["m1"]


@pytest.mark.asyncio
async def test_closed_subscription_receives_nothing():
	hub = RealtimeHub()
	received = []

	async def handler(row):
		received.append(row)

	sub = hub.subscribe("messages", INSERT, handler)
	sub.close()
	sub.close()

	assert hub.subscription_count == 0
	assert await hub.publish("messages", INSERT, {"id": "m1"}) == 0
	assert received == []


@pytest.mark.asyncio
async def test_failing_handler_does_not_block_others():
	hub = RealtimeHub()
	received = []

	async def broken(row):
		raise RuntimeError("boom")

	async def healthy(row):
		received.append(row["id"])

	hub.subscribe("messages", INSERT, broken)
	hub.subscribe("messages", INSERT, healthy)

	assert await hub.publish("messages", INSERT, {"id": "m1"}) == 2
	assert received == ["m1"]


@pytest.mark.asyncio
async def test_handler_closing_later_subscription_during_delivery():
	hub = RealtimeHub()
	received = []
	subs = {}

	async def first(row):
		received.append("first")
		subs["second"].close()

	async def second(row):
		received.append("second")

	hub.subscribe("messages", INSERT, first)
	subs["second"] = hub.subscribe("messages", INSERT, second)

	await hub.publish("messages", INSERT, {"id": "m1"})
	assert received == ["first"]


@pytest.mark.asyncio
async def test_filters_compare_as_strings():
	hub = RealtimeHub()
	received = []

	async def handler(row):
		received.append(row)

	hub.subscribe("conversation_participants", INSERT, handler, filters={"user_id": 42})
	await hub.publish("conversation_participants", INSERT, {"user_id": "42"})
	assert len(received) == 1

	hub.close()
	assert hub.subscription_count == 0
