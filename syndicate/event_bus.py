import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from fastapi.encoders import jsonable_encoder

from syndicate.clock import Clock, rfc3339, utcnow

Frame = Tuple[str, str]


def encode_event(event_type: str, payload: Optional[Dict[str, Any]] = None) -> str:
    """Serialize an event envelope ``{"event": type, ...payload}`` as JSON"""
    envelope = {"event": event_type}
    if payload:
        envelope.update(jsonable_encoder(payload))
    return json.dumps(envelope)


class Subscription:
    """A single client connection's bounded queue of encoded events.

    The bus writes into the queue; the connection handler drains it.
    """

    def __init__(self, player_id: UUID, queue_size: int):
        self.subscription_id: UUID = uuid4()
        self.player_id: UUID = player_id
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.closed: bool = False

    def deliver(self, frame: Frame) -> bool:
        if self.closed:
            return False
        try:
            self.queue.put_nowait(frame)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        # drop whatever is left and wake the drainer with the end marker
        while not self.queue.empty():
            self.queue.get_nowait()
        self.queue.put_nowait(None)

    async def next_frame(self, timeout: float) -> Optional[Frame]:
        """Wait for the next frame; None once the subscription is closed.

        Raises:
            asyncio.TimeoutError: nothing arrived within ``timeout`` seconds
        """
        return await asyncio.wait_for(self.queue.get(), timeout)


class EventBus:
    def __init__(self, queue_size: int = 256, clock: Clock = utcnow):
        self.subscribers: Dict[UUID, Dict[UUID, Subscription]] = {}
        self.queue_size: int = max(2, queue_size)
        self.clock: Clock = clock
        self.lock = asyncio.Lock()  # guards changes to subscribers

    async def subscribe(self, player_id: UUID) -> Subscription:
        """Register a new subscription for the player and queue the ``connected`` event

        Args:
            player_id (UUID): subscribing player

        Returns:
            Subscription: handle to drain and later unsubscribe
        """
        subscription = Subscription(player_id, self.queue_size)
        async with self.lock:
            self.subscribers.setdefault(player_id, {})[subscription.subscription_id] = subscription
        subscription.deliver(
            (
                "connected",
                encode_event(
                    "connected",
                    {"player_id": player_id, "timestamp": rfc3339(self.clock())},
                ),
            )
        )
        logging.info(f"Subscriber {subscription.subscription_id} connected for player {player_id}")
        return subscription

    async def unsubscribe(self, subscription: Subscription) -> None:
        async with self.lock:
            self._discard(subscription)
        subscription.close()
        logging.info(
            f"Subscriber {subscription.subscription_id} disconnected for player {subscription.player_id}"
        )

    def _discard(self, subscription: Subscription) -> None:
        player_subscribers = self.subscribers.get(subscription.player_id)
        if player_subscribers is None:
            return
        player_subscribers.pop(subscription.subscription_id, None)
        # Clean up if there are no more subscriptions for this player
        if not player_subscribers:
            del self.subscribers[subscription.player_id]

    def _deliver_all(self, targets: List[Subscription], frame: Frame) -> int:
        delivered = 0
        for subscription in targets:
            if subscription.deliver(frame):
                delivered += 1
                continue
            # one failed delivery removes the subscriber, no retry
            logging.info(
                f"Dropping subscriber {subscription.subscription_id} of player {subscription.player_id}"
            )
            self._discard(subscription)
            subscription.close()
        return delivered

    def publish_player(self, player_id: UUID, event_type: str, payload: Optional[Dict[str, Any]] = None) -> int:
        """Queue an event for every subscription of one player without blocking

        Args:
            player_id (UUID): receiving player
            event_type (str): SSE event name
            payload (Optional[Dict[str, Any]]): fields merged into the envelope

        Returns:
            int: number of subscriptions the event was queued for
        """
        targets = list(self.subscribers.get(player_id, {}).values())
        if not targets:
            return 0
        return self._deliver_all(targets, (event_type, encode_event(event_type, payload)))

    def publish_all(self, event_type: str, payload: Optional[Dict[str, Any]] = None) -> int:
        targets = [s for group in list(self.subscribers.values()) for s in list(group.values())]
        if not targets:
            return 0
        logging.debug(f"Broadcasting {event_type} to {len(targets)} subscribers")
        return self._deliver_all(targets, (event_type, encode_event(event_type, payload)))

    def subscriber_count(self, player_id: Optional[UUID] = None) -> int:
        if player_id is not None:
            return len(self.subscribers.get(player_id, {}))
        return sum(len(group) for group in self.subscribers.values())

    async def close(self) -> None:
        async with self.lock:
            subscriptions = [s for group in self.subscribers.values() for s in group.values()]
            self.subscribers.clear()
        for subscription in subscriptions:
            subscription.close()
        logging.info(f"Event bus closed {len(subscriptions)} subscriptions")
