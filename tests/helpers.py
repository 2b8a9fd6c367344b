"""Test doubles and small helpers shared by the test modules."""
from collections import deque
from datetime import datetime, timedelta

from syndicate.models.schemas import Hotspot, Player

START = datetime(2026, 1, 1, 12, 0, 0)


class FakeClock:
    """Controllable naive-UTC clock."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class ScriptedRng:
    """Replays queued values; falls back to a fixed value once a queue runs dry.

    The fallbacks are ``random() -> 0.0`` (every roll succeeds),
    ``integers(low, high) -> low`` and ``uniform(low, high) -> 0.0``.
    """

    def __init__(self, randoms=(), integers=(), uniforms=()):
        self.randoms = deque(randoms)
        self.ints = deque(integers)
        self.uniforms = deque(uniforms)

    def random(self) -> float:
        return self.randoms.popleft() if self.randoms else 0.0

    def integers(self, low: int, high: int) -> int:
        if not self.ints:
            return low
        value = self.ints.popleft()
        assert low <= value < high, f"scripted integer {value} outside [{low}, {high})"
        return value

    def uniform(self, low: float, high: float) -> float:
        value = self.uniforms.popleft() if self.uniforms else 0.0
        assert low <= value <= high
        return value

    def script(self, randoms=(), integers=(), uniforms=()) -> "ScriptedRng":
        self.randoms.extend(randoms)
        self.ints.extend(integers)
        self.uniforms.extend(uniforms)
        return self


async def reload_player(Session, player_id):
    async with Session() as session:
        return await session.get(Player, player_id)


async def reload_hotspot(Session, hotspot_id):
    async with Session() as session:
        return await session.get(Hotspot, hotspot_id)


def drain(subscription) -> list:
    """Pop every queued (event_type, payload) frame of a subscription."""
    frames = []
    while not subscription.queue.empty():
        frame = subscription.queue.get_nowait()
        if frame is not None:
            frames.append(frame)
    return frames
