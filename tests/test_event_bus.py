"""Tests for the in-process event bus and SSE framing."""
import asyncio
import json
from uuid import uuid4

import pytest

from syndicate.event_bus import EventBus, encode_event
from syndicate.sse_subscriber import EventSubscriber, format_sse

from helpers import FakeClock, drain


class DisconnectedRequest:
    async def is_disconnected(self) -> bool:
        return True


class TestEncoding:
    def test_envelope_merges_payload(self):
        player_id = uuid4()
        envelope = json.loads(encode_event("hotspot_updated", {"player_id": player_id, "n": 1}))
        assert envelope == {"event": "hotspot_updated", "player_id": str(player_id), "n": 1}

    def test_sse_frame(self):
        assert format_sse("heartbeat", "{}") == "event: heartbeat\ndata: {}\n\n"


class TestEventBus:
    @pytest.mark.asyncio
    async def test_connected_event_on_subscribe(self):
        bus = EventBus(clock=FakeClock())
        player_id = uuid4()
        subscription = await bus.subscribe(player_id)
        frames = drain(subscription)
        assert frames[0][0] == "connected"
        payload = json.loads(frames[0][1])
        assert payload["player_id"] == str(player_id)
        assert payload["timestamp"].endswith("Z")

    @pytest.mark.asyncio
    async def test_every_subscription_of_a_player_receives_events(self):
        bus = EventBus()
        player_id = uuid4()
        first = await bus.subscribe(player_id)
        second = await bus.subscribe(player_id)
        other = await bus.subscribe(uuid4())
        for s in (first, second, other):
            drain(s)

        assert bus.publish_player(player_id, "notification", {"message": "hi"}) == 2
        assert [e for e, _ in drain(first)] == ["notification"]
        assert [e for e, _ in drain(second)] == ["notification"]
        assert drain(other) == []

    @pytest.mark.asyncio
    async def test_publish_all_reaches_everyone_in_order(self):
        bus = EventBus()
        subscriptions = [await bus.subscribe(uuid4()) for _ in range(3)]
        for s in subscriptions:
            drain(s)
        bus.publish_all("market_updated", {"n": 1})
        bus.publish_all("operations_refreshed", {"n": 2})
        for s in subscriptions:
            assert [e for e, _ in drain(s)] == ["market_updated", "operations_refreshed"]

    @pytest.mark.asyncio
    async def test_full_queue_drops_subscriber(self):
        bus = EventBus(queue_size=2)
        player_id = uuid4()
        slow = await bus.subscribe(player_id)  # holds the connected event
        bus.publish_player(player_id, "a")
        assert bus.subscriber_count(player_id) == 1

        assert bus.publish_player(player_id, "b") == 0
        assert bus.subscriber_count(player_id) == 0
        assert slow.closed
        # no retry once dropped
        assert bus.publish_player(player_id, "c") == 0

    @pytest.mark.asyncio
    async def test_unsubscribe_removes_only_that_subscription(self):
        bus = EventBus()
        player_id = uuid4()
        first = await bus.subscribe(player_id)
        await bus.subscribe(player_id)
        await bus.unsubscribe(first)
        assert bus.subscriber_count(player_id) == 1
        assert bus.subscriber_count() == 1

    @pytest.mark.asyncio
    async def test_close_ends_every_stream(self):
        bus = EventBus()
        subscription = await bus.subscribe(uuid4())
        await bus.close()
        assert bus.subscriber_count() == 0
        assert await subscription.next_frame(0.1) is None


class TestEventSubscriber:
    @pytest.mark.asyncio
    async def test_stream_starts_with_connected_then_heartbeats(self):
        bus = EventBus(clock=FakeClock())
        player_id = uuid4()
        stream = EventSubscriber(bus, player_id, heartbeat_interval=0.01).event_generator()

        connected = await stream.__anext__()
        assert connected.startswith("event: connected\n")
        heartbeat = await stream.__anext__()
        assert heartbeat.startswith("event: heartbeat\ndata: ")
        assert json.loads(heartbeat.split("data: ", 1)[1])["event"] == "heartbeat"

        await stream.aclose()
        assert bus.subscriber_count(player_id) == 0

    @pytest.mark.asyncio
    async def test_published_event_is_framed(self):
        bus = EventBus()
        player_id = uuid4()
        stream = EventSubscriber(bus, player_id, heartbeat_interval=5).event_generator()
        await stream.__anext__()

        bus.publish_player(player_id, "income_generated", {"total_pending": 200})
        frame = await asyncio.wait_for(stream.__anext__(), 1)
        assert frame.startswith("event: income_generated\n")
        assert '"total_pending": 200' in frame
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_heartbeats_continue_under_steady_traffic(self):
        bus = EventBus()
        player_id = uuid4()
        stream = EventSubscriber(bus, player_id, heartbeat_interval=0.05).event_generator()
        await stream.__anext__()

        async def publish_steadily():
            for n in range(30):
                bus.publish_all("hotspot_updated", {"n": n})
                await asyncio.sleep(0.02)

        publisher = asyncio.create_task(publish_steadily())
        frames = []
        while not publisher.done():
            frames.append(await asyncio.wait_for(stream.__anext__(), 1))
        await publisher
        await stream.aclose()

        heartbeats = [f for f in frames if f.startswith("event: heartbeat\n")]
        assert len(heartbeats) >= 5
        assert any(f.startswith("event: hotspot_updated\n") for f in frames)

    @pytest.mark.asyncio
    async def test_failed_heartbeat_closes_stream(self):
        bus = EventBus()
        player_id = uuid4()
        stream = EventSubscriber(bus, player_id, heartbeat_interval=0.01).event_generator(
            DisconnectedRequest()
        )
        await stream.__anext__()
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()
        assert bus.subscriber_count(player_id) == 0
