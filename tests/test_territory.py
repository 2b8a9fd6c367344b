"""Tests for territory actions and direct collection."""
import json
from uuid import uuid4

import pytest

from syndicate.crud import CreateData, ReadData
from syndicate.errors import InvalidRequest, NotFound, StorageError
from syndicate.models.dc_models import ActionKind, ActionResources

from helpers import drain, reload_hotspot, reload_player


class TestExtortion:
    @pytest.mark.asyncio
    async def test_successful_extortion(self, Session, territory, rng, make_player, make_hotspot):
        player = await make_player(respect=10)
        hotspot = await make_hotspot(is_legal=False, income=0)
        # success roll, no bonus pack, d(11)=0, heat d(6)=2, respect d(3)=1
        rng.script(randoms=[0.1, 0.5], integers=[0, 2, 1])

        result = await territory.perform(
            player.id, ActionKind.extortion, hotspot.id, ActionResources(crew=2, weapons=1)
        )

        assert result.success
        assert result.money_gained == 600
        assert result.heat_generated == 7
        assert result.respect_gained == 2
        stored = await reload_player(Session, player.id)
        assert (stored.money, stored.crew, stored.weapons) == (10600, 3, 2)
        assert (stored.heat, stored.respect) == (7, 12)

    @pytest.mark.asyncio
    async def test_extortion_needs_illegal_target(self, territory, make_player, make_hotspot):
        player = await make_player()
        hotspot = await make_hotspot(is_legal=True)
        with pytest.raises(InvalidRequest):
            await territory.perform(player.id, ActionKind.extortion, hotspot.id, ActionResources(crew=1))

    @pytest.mark.asyncio
    async def test_committing_more_than_owned(self, Session, territory, make_player, make_hotspot):
        player = await make_player(crew=1)
        hotspot = await make_hotspot(is_legal=False)
        with pytest.raises(InvalidRequest, match="crew"):
            await territory.perform(player.id, ActionKind.extortion, hotspot.id, ActionResources(crew=2))
        assert (await reload_player(Session, player.id)).crew == 1

    @pytest.mark.asyncio
    async def test_unknown_hotspot(self, territory, make_player):
        player = await make_player()
        with pytest.raises(NotFound):
            await territory.perform(player.id, ActionKind.extortion, uuid4(), ActionResources(crew=1))


class TestTakeover:
    @pytest.mark.asyncio
    async def test_takeover_of_uncontrolled_hotspot(self, Session, territory, make_player, make_hotspot):
        player = await make_player(crew=5, weapons=4, vehicles=2)
        hotspot = await make_hotspot()

        result = await territory.perform(
            player.id, ActionKind.takeover, hotspot.id, ActionResources(crew=3, weapons=2, vehicles=1)
        )

        assert result.success
        stored = await reload_hotspot(Session, hotspot.id)
        assert stored.controller_id == player.id
        assert (stored.crew, stored.weapons, stored.vehicles) == (3, 2, 1)
        assert stored.defense_strength == 80
        owner = await reload_player(Session, player.id)
        assert (owner.crew, owner.weapons, owner.vehicles) == (2, 2, 1)

    @pytest.mark.asyncio
    async def test_cannot_take_over_own_hotspot(self, territory, make_player, make_hotspot):
        player = await make_player()
        hotspot = await make_hotspot(controller_id=None)
        await territory.perform(player.id, ActionKind.takeover, hotspot.id, ActionResources(crew=1))
        with pytest.raises(InvalidRequest, match="already control"):
            await territory.perform(player.id, ActionKind.takeover, hotspot.id, ActionResources(crew=1))

    @pytest.mark.asyncio
    async def test_defender_hears_about_lost_hotspot(
        self, territory, event_bus, make_player, make_hotspot
    ):
        defender = await make_player()
        attacker = await make_player()
        hotspot = await make_hotspot(controller_id=defender.id, crew=1)
        subscription = await event_bus.subscribe(defender.id)
        drain(subscription)

        await territory.perform(attacker.id, ActionKind.takeover, hotspot.id, ActionResources(crew=4))

        events = [event for event, _ in drain(subscription)]
        assert events == ["hotspot_updated", "hotspot_taken_over"]

    @pytest.mark.asyncio
    async def test_defender_hears_about_repelled_takeover(
        self, Session, territory, event_bus, rng, make_player, make_hotspot
    ):
        defender = await make_player()
        attacker = await make_player()
        hotspot = await make_hotspot(controller_id=defender.id, crew=5, weapons=5)
        subscription = await event_bus.subscribe(defender.id)
        drain(subscription)
        # the takeover roll and every loss roll miss
        rng.script(randoms=[0.99, 0.99, 0.99, 0.99])

        result = await territory.perform(
            attacker.id, ActionKind.takeover, hotspot.id, ActionResources(crew=1)
        )

        assert not result.success
        assert result.respect_lost == 1
        frames = drain(subscription)
        assert [event for event, _ in frames] == ["hotspot_updated", "hotspot_defended"]
        assert attacker.name in json.loads(frames[1][1])["message"]
        assert (await reload_hotspot(Session, hotspot.id)).controller_id == defender.id


class TestCollectionAndDefense:
    @pytest.mark.asyncio
    async def test_successful_collection_action(self, Session, territory, clock, make_player, make_hotspot):
        player = await make_player()
        hotspot = await make_hotspot(controller_id=player.id, pending_collection=1200)

        result = await territory.perform(
            player.id, ActionKind.collection, hotspot.id, ActionResources(crew=1)
        )

        assert result.money_gained == 1200
        stored = await reload_hotspot(Session, hotspot.id)
        assert stored.pending_collection == 0
        assert stored.last_collection_time == clock()
        assert (await reload_player(Session, player.id)).money == 11200

    @pytest.mark.asyncio
    async def test_interrupted_collection_loses_part_of_pending(
        self, Session, territory, rng, make_player, make_hotspot
    ):
        player = await make_player()
        hotspot = await make_hotspot(controller_id=player.id, pending_collection=1000)
        # failed roll, 30 + d(41)=10 percent lost, no crew loss
        rng.script(randoms=[0.99, 0.99], integers=[10])

        result = await territory.perform(
            player.id, ActionKind.collection, hotspot.id, ActionResources(crew=1)
        )

        assert not result.success
        assert result.money_lost == 400
        assert (await reload_hotspot(Session, hotspot.id)).pending_collection == 600
        assert (await reload_player(Session, player.id)).money == 10000

    @pytest.mark.asyncio
    async def test_nothing_to_collect(self, territory, make_player, make_hotspot):
        player = await make_player()
        hotspot = await make_hotspot(controller_id=player.id)
        with pytest.raises(InvalidRequest, match="nothing to collect"):
            await territory.perform(player.id, ActionKind.collection, hotspot.id, ActionResources())

    @pytest.mark.asyncio
    async def test_defense_adds_to_allocation(self, Session, territory, make_player, make_hotspot):
        player = await make_player()
        hotspot = await make_hotspot(controller_id=player.id, crew=2, weapons=1)

        result = await territory.perform(
            player.id, ActionKind.defend, hotspot.id, ActionResources(crew=1, weapons=1, vehicles=1)
        )

        assert result.success
        stored = await reload_hotspot(Session, hotspot.id)
        assert (stored.crew, stored.weapons, stored.vehicles) == (3, 2, 1)
        assert stored.defense_strength == 80
        assert "80" in result.message

    @pytest.mark.asyncio
    async def test_defend_requires_control(self, territory, make_player, make_hotspot):
        player = await make_player()
        hotspot = await make_hotspot()
        with pytest.raises(InvalidRequest, match="do not control"):
            await territory.perform(player.id, ActionKind.defend, hotspot.id, ActionResources(crew=1))


class TestActionRecords:
    @pytest.mark.asyncio
    async def test_action_is_recorded(self, territory, make_player, make_hotspot):
        player = await make_player()
        hotspot = await make_hotspot()
        await territory.perform(player.id, ActionKind.takeover, hotspot.id, ActionResources(crew=2))

        actions = await territory.recent_actions(player.id)
        assert len(actions) == 1
        assert actions[0].type == "takeover"
        assert actions[0].resources == ActionResources(crew=2)
        assert actions[0].result.success

    @pytest.mark.asyncio
    async def test_failed_persistence_refunds_commitment(
        self, Session, territory, monkeypatch, make_player, make_hotspot
    ):
        player = await make_player()
        hotspot = await make_hotspot()

        async def broken_insert(action, session):
            raise StorageError("failed to record territory action")

        monkeypatch.setattr(CreateData, "add_territory_action", broken_insert)

        with pytest.raises(StorageError):
            await territory.perform(
                player.id, ActionKind.takeover, hotspot.id, ActionResources(crew=3, weapons=2)
            )

        stored = await reload_player(Session, player.id)
        assert (stored.crew, stored.weapons, stored.respect) == (5, 3, 0)
        assert (await reload_hotspot(Session, hotspot.id)).controller_id is None

    @pytest.mark.asyncio
    async def test_collection_after_lost_control_refunds_commitment(
        self, Session, territory, monkeypatch, make_player, make_hotspot
    ):
        player = await make_player()
        rival = await make_player()
        hotspot = await make_hotspot(controller_id=rival.id, pending_collection=500)
        read_hotspot = ReadData.read_hotspot

        async def snapshot_before_takeover(hotspot_id, session):
            current = await read_hotspot(hotspot_id, session)
            return current.model_copy(update={"controller_id": player.id})

        monkeypatch.setattr(ReadData, "read_hotspot", snapshot_before_takeover)

        with pytest.raises(InvalidRequest, match="do not control"):
            await territory.perform(
                player.id, ActionKind.collection, hotspot.id, ActionResources(crew=2, weapons=1)
            )

        stored = await reload_player(Session, player.id)
        assert (stored.crew, stored.weapons, stored.money) == (5, 3, 10000)
        stored_hotspot = await reload_hotspot(Session, hotspot.id)
        assert stored_hotspot.controller_id == rival.id
        assert stored_hotspot.pending_collection == 500


class TestDirectCollection:
    @pytest.mark.asyncio
    async def test_collect_hotspot(self, Session, territory, event_bus, clock, make_player, make_hotspot):
        player = await make_player()
        hotspot = await make_hotspot(controller_id=player.id, pending_collection=450)
        subscription = await event_bus.subscribe(player.id)
        drain(subscription)

        result = await territory.collect_hotspot(player.id, hotspot.id)

        assert (result.collected_amount, result.hotspots_count) == (450, 1)
        assert (await reload_player(Session, player.id)).money == 10450
        stored = await reload_hotspot(Session, hotspot.id)
        assert stored.pending_collection == 0
        assert stored.last_collection_time == clock()
        assert [event for event, _ in drain(subscription)] == ["hotspot_updated", "notification"]

    @pytest.mark.asyncio
    async def test_collect_foreign_hotspot(self, territory, make_player, make_hotspot):
        owner = await make_player()
        other = await make_player()
        hotspot = await make_hotspot(controller_id=owner.id, pending_collection=450)
        with pytest.raises(InvalidRequest):
            await territory.collect_hotspot(other.id, hotspot.id)

    @pytest.mark.asyncio
    async def test_collect_all(self, Session, territory, make_player, make_hotspot):
        player = await make_player()
        await make_hotspot(controller_id=player.id, pending_collection=300)
        await make_hotspot(controller_id=player.id, pending_collection=200)
        await make_hotspot(controller_id=player.id, pending_collection=0)

        result = await territory.collect_all(player.id)

        assert (result.collected_amount, result.hotspots_count) == (500, 2)
        assert (await reload_player(Session, player.id)).money == 10500
        again = await territory.collect_all(player.id)
        assert again.collected_amount == 0
        assert again.message == "No resources available to collect at this time."


class TestRefreshIllegal:
    @pytest.mark.asyncio
    async def test_illegal_hotspots_are_released(self, Session, territory, make_player, make_hotspot):
        player = await make_player()
        illegal = await make_hotspot(is_legal=False, controller_id=player.id, crew=2, weapons=1)
        legal = await make_hotspot(controller_id=player.id, crew=2)

        assert await territory.refresh_illegal() == 1

        stored = await reload_hotspot(Session, illegal.id)
        assert stored.controller_id is None
        assert (stored.crew, stored.weapons, stored.vehicles, stored.defense_strength) == (0, 0, 0, 0)
        assert (await reload_hotspot(Session, legal.id)).controller_id == player.id
