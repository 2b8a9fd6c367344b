import asyncio
import logging
from typing import AsyncGenerator, Optional
from uuid import UUID

from fastapi import Request

from syndicate.clock import Clock, rfc3339, utcnow
from syndicate.event_bus import EventBus, encode_event


def format_sse(event_type: str, data: str) -> str:
    return f"event: {event_type}\ndata: {data}\n\n"


class EventSubscriber:
    """Bridges one player's event bus subscription to a text/event-stream response."""

    def __init__(
        self,
        event_bus: EventBus,
        player_id: UUID,
        heartbeat_interval: float = 30.0,
        clock: Clock = utcnow,
    ):
        self.event_bus: EventBus = event_bus
        self.player_id: UUID = player_id
        self.heartbeat_interval: float = heartbeat_interval
        self.clock: Clock = clock

    async def event_generator(self, request: Optional[Request] = None) -> AsyncGenerator[str, None]:
        """Yield SSE frames until the client goes away or the bus closes the subscription.

        A heartbeat is sent every ``heartbeat_interval`` seconds, whether or not other
        events are flowing. If the client has disconnected by then the probe fails and
        the subscription is closed.

        Args:
            request (Optional[Request]): used to probe whether the client is still connected
        """
        loop = asyncio.get_running_loop()
        subscription = await self.event_bus.subscribe(self.player_id)
        next_heartbeat = loop.time() + self.heartbeat_interval
        try:
            while True:
                remaining = next_heartbeat - loop.time()
                if remaining <= 0:
                    if request is not None and await request.is_disconnected():
                        logging.info(f"Heartbeat failed for player {self.player_id}")
                        break
                    next_heartbeat = loop.time() + self.heartbeat_interval
                    payload = encode_event("heartbeat", {"timestamp": rfc3339(self.clock())})
                    yield format_sse("heartbeat", payload)
                    continue

                try:
                    frame = await subscription.next_frame(remaining)
                except asyncio.TimeoutError:
                    continue

                if frame is None:
                    break
                event_type, payload = frame
                logging.debug(f"Payload: {payload}")
                yield format_sse(event_type, payload)
        finally:
            logging.info(f"Closing event stream for player {self.player_id}")
            await self.event_bus.unsubscribe(subscription)
