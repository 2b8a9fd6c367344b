"""Tests for player resource mutations."""
import json
from uuid import uuid4

import pytest

from syndicate.errors import InvalidRequest, NotFound

from helpers import drain, reload_player


class TestApply:
    @pytest.mark.asyncio
    async def test_negative_overflow_is_clamped(self, Session, resource_store, make_player):
        player = await make_player(money=100, crew=2)
        updated = await resource_store.apply(player.id, {"money": -500, "crew": -1})
        assert updated.money == 0
        assert updated.crew == 1

    @pytest.mark.asyncio
    async def test_plus_then_minus_is_identity(self, Session, resource_store, make_player):
        player = await make_player()
        await resource_store.apply(player.id, {"money": 750, "weapons": 2})
        await resource_store.apply(player.id, {"money": -750, "weapons": -2})
        stored = await reload_player(Session, player.id)
        assert (stored.money, stored.weapons) == (player.money, player.weapons)

    @pytest.mark.asyncio
    async def test_updates_last_active(self, resource_store, make_player, clock):
        player = await make_player()
        clock.advance(minutes=5)
        updated = await resource_store.apply(player.id, {"heat": 1})
        assert updated.last_active == clock()

    @pytest.mark.asyncio
    async def test_unknown_player(self, resource_store):
        with pytest.raises(NotFound):
            await resource_store.apply(uuid4(), {"money": 1})

    @pytest.mark.asyncio
    async def test_unknown_resource_kind(self, resource_store, make_player):
        player = await make_player()
        with pytest.raises(InvalidRequest):
            await resource_store.apply(player.id, {"gold": 1})


class TestTitle:
    @pytest.mark.asyncio
    async def test_title_follows_band_and_is_announced(self, resource_store, event_bus, make_player):
        player = await make_player(respect=15, influence=0)
        subscription = await event_bus.subscribe(player.id)
        drain(subscription)

        updated = await resource_store.apply(player.id, {"respect": 5})

        assert updated.title == "Soldier"
        frames = drain(subscription)
        assert [event for event, _ in frames] == ["notification"]
        payload = json.loads(frames[0][1])
        assert payload["title"] == "Soldier"
        assert "Soldier" in payload["message"]

    @pytest.mark.asyncio
    async def test_no_notification_without_title_change(self, resource_store, event_bus, make_player):
        player = await make_player()
        subscription = await event_bus.subscribe(player.id)
        drain(subscription)
        await resource_store.apply(player.id, {"money": 10})
        assert drain(subscription) == []

    @pytest.mark.asyncio
    async def test_title_drops_with_respect(self, resource_store, make_player):
        player = await make_player(title="Capo", respect=40)
        updated = await resource_store.apply(player.id, {"respect": -30})
        assert updated.title == "Associate"
