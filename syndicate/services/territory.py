"""Territory use cases: the action resolver and direct income collection.

- Routers call this module; it owns session/transaction boundaries.
- Committed resources are debited first in their own transaction. The hotspot
  write, the reward/loss deltas and the action record then commit together,
  with the hotspot row locked and the preconditions re-checked.
- If anything after the debit fails, the debit is credited back.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from syndicate.clock import Clock, utcnow
from syndicate.converter import DataConverter
from syndicate.crud import CreateData, ReadData, UpdateData
from syndicate.domain.dice import RandomSource
from syndicate.domain.territory_rules import (
    ActionOutcome,
    resolve_collection,
    resolve_defense,
    resolve_extortion,
    resolve_takeover,
)
from syndicate.errors import GameError, InvalidRequest, NotFound, StorageError
from syndicate.event_bus import EventBus
from syndicate.models.dc_models import (
    ActionKind,
    ActionResources,
    ActionResultModel,
    CollectResultModel,
    NotificationType,
)
from syndicate.models.schema_models import (
    HotspotSchema,
    PlayerSchema,
    RegionSchema,
    TerritoryActionSchema,
)
from syndicate.models.schemas import Hotspot, TerritoryAction
from syndicate.services.resource_store import ResourceStore


def check_committed(player: PlayerSchema, committed: ActionResources) -> None:
    if player.crew < committed.crew:
        raise InvalidRequest("not enough crew available")
    if player.weapons < committed.weapons:
        raise InvalidRequest("not enough weapons available")
    if player.vehicles < committed.vehicles:
        raise InvalidRequest("not enough vehicles available")


def check_target(action_kind: ActionKind, hotspot: HotspotSchema, player_id: UUID) -> None:
    """Validate that the hotspot is a legal target for the action.

    Raises:
        InvalidRequest: wrong hotspot kind, wrong controller or nothing to collect
    """
    if action_kind == ActionKind.extortion:
        if hotspot.is_legal:
            raise InvalidRequest("extortion can only target illegal businesses")
        return

    if not hotspot.is_legal:
        raise InvalidRequest(f"{action_kind.value} can only target legal businesses")

    if action_kind == ActionKind.takeover:
        if hotspot.controller_id == player_id:
            raise InvalidRequest("you already control this business")
        return

    if hotspot.controller_id != player_id:
        raise InvalidRequest("you do not control this business")
    if action_kind == ActionKind.collection and hotspot.pending_collection <= 0:
        raise InvalidRequest("there is nothing to collect from this business")


class TerritoryService:
    def __init__(
        self,
        Session: async_sessionmaker,
        resource_store: ResourceStore,
        event_bus: EventBus,
        rng: RandomSource,
        clock: Clock = utcnow,
    ):
        self.Session: async_sessionmaker = Session
        self.resource_store: ResourceStore = resource_store
        self.event_bus: EventBus = event_bus
        self.rng: RandomSource = rng
        self.clock: Clock = clock

    async def list_regions(self) -> List[RegionSchema]:
        async with self.Session() as session:
            return await ReadData.read_regions(session)

    async def list_hotspots(self, city_id: Optional[UUID] = None) -> List[HotspotSchema]:
        async with self.Session() as session:
            return await ReadData.read_hotspots(session, city_id)

    async def get_hotspot(self, hotspot_id: UUID) -> HotspotSchema:
        async with self.Session() as session:
            hotspot = await ReadData.read_hotspot(hotspot_id, session)
        if hotspot is None:
            raise NotFound("hotspot not found")
        return hotspot

    async def controlled_hotspots(self, player_id: UUID) -> List[HotspotSchema]:
        async with self.Session() as session:
            return await ReadData.read_controlled_hotspots(player_id, session)

    async def recent_actions(self, player_id: UUID, limit: int = 20) -> List[TerritoryActionSchema]:
        async with self.Session() as session:
            return await ReadData.read_recent_actions(player_id, session, limit)

    def _roll(
        self, action_kind: ActionKind, committed: ActionResources, hotspot: Hotspot, player_id: UUID
    ) -> ActionOutcome:
        if action_kind == ActionKind.extortion:
            return resolve_extortion(committed, hotspot.name, self.rng)
        if action_kind == ActionKind.takeover:
            return resolve_takeover(
                committed,
                hotspot.name,
                hotspot.controller_id,
                hotspot.defense_strength,
                player_id,
                self.rng,
            )
        if action_kind == ActionKind.collection:
            return resolve_collection(
                committed, hotspot.name, hotspot.pending_collection, self.clock(), self.rng
            )
        return resolve_defense(committed, hotspot.name, hotspot.crew, hotspot.weapons, hotspot.vehicles)

    async def perform(
        self,
        player_id: UUID,
        action_kind: ActionKind,
        hotspot_id: UUID,
        committed: ActionResources,
    ) -> ActionResultModel:
        """Resolve one territory action.

        Args:
            player_id (UUID): acting player
            action_kind (ActionKind): extortion, takeover, collection or defend
            hotspot_id (UUID): target business
            committed (ActionResources): crew, weapons and vehicles sent

        Raises:
            NotFound: player or hotspot does not exist
            InvalidRequest: a precondition was violated
            StorageError: persistence failed, the committed resources were refunded

        Returns:
            ActionResultModel: what happened
        """
        action_kind = ActionKind(action_kind)
        async with self.Session() as session:
            player = await ReadData.read_player(player_id, session)
            hotspot = await ReadData.read_hotspot(hotspot_id, session)
        if player is None:
            raise NotFound("player not found")
        if hotspot is None:
            raise NotFound("hotspot not found")
        check_committed(player, committed)
        check_target(action_kind, hotspot, player_id)

        debit = {
            "crew": -committed.crew,
            "weapons": -committed.weapons,
            "vehicles": -committed.vehicles,
        }
        await self.resource_store.apply(player_id, debit)

        try:
            async with self.Session() as session:
                async with session.begin():
                    row = await ReadData.lock_hotspot(hotspot_id, session)
                    if row is None:
                        raise NotFound("hotspot not found")
                    before = HotspotSchema.model_validate(row)
                    # the hotspot may have changed hands since the pre-check
                    check_target(action_kind, before, player_id)

                    outcome = self._roll(action_kind, committed, row, player_id)
                    after = before
                    if outcome.hotspot_changes:
                        after = await UpdateData.update_hotspot(row, outcome.hotspot_changes, session)
                    new_title = await self.resource_store.apply_in_session(
                        player_id, outcome.deltas, session
                    )
                    await CreateData.add_territory_action(
                        TerritoryAction(
                            type=action_kind.value,
                            player_id=player_id,
                            hotspot_id=hotspot_id,
                            resources=committed.model_dump(),
                            result=outcome.result.model_dump(),
                            timestamp=self.clock(),
                        ),
                        session,
                    )
        except (GameError, SQLAlchemyError) as e:
            await self._refund(player_id, debit, e)
            if isinstance(e, (InvalidRequest, NotFound)):
                raise
            raise StorageError(f"failed to resolve {action_kind.value}") from e

        self.resource_store.announce_title(player_id, new_title)
        self._publish(action_kind, player, before, after, outcome.result)
        logging.info(
            f"Player {player_id} {action_kind.value} on hotspot {hotspot_id}: success={outcome.result.success}"
        )
        return outcome.result

    async def _refund(self, player_id: UUID, debit: dict, cause: Exception) -> None:
        if not isinstance(cause, (InvalidRequest, NotFound)):
            logging.error(f"Action for player {player_id} failed after debit, refunding: {cause}")
        try:
            await self.resource_store.apply(player_id, {kind: -delta for kind, delta in debit.items()})
        except GameError as e:
            logging.error(f"Refund for player {player_id} failed, resources lost {debit}: {e}")
            raise StorageError("failed to refund committed resources") from e

    def _publish(
        self,
        action_kind: ActionKind,
        player: PlayerSchema,
        before: HotspotSchema,
        after: HotspotSchema,
        result: ActionResultModel,
    ) -> None:
        self.event_bus.publish_all("hotspot_updated", DataConverter.hotspot_event(after))
        if action_kind != ActionKind.takeover or before.controller_id is None:
            return

        if result.success:
            self.event_bus.publish_player(
                before.controller_id,
                "hotspot_taken_over",
                DataConverter.territory_notice(
                    after,
                    player,
                    f"Your business {before.name} has been taken over by {player.name}!",
                ),
            )
        else:
            self.event_bus.publish_player(
                before.controller_id,
                "hotspot_defended",
                DataConverter.territory_notice(
                    after,
                    player,
                    f"You successfully defended {before.name} from a takeover attempt by {player.name}!",
                ),
            )

    async def collect_hotspot(self, player_id: UUID, hotspot_id: UUID) -> CollectResultModel:
        """Move a controlled hotspot's whole pending collection into the player's money"""
        try:
            async with self.Session() as session:
                async with session.begin():
                    row = await ReadData.lock_hotspot(hotspot_id, session)
                    if row is None:
                        raise NotFound("hotspot not found")
                    check_target(ActionKind.collection, HotspotSchema.model_validate(row), player_id)
                    amount = row.pending_collection
                    updated = await UpdateData.update_hotspot(
                        row, {"pending_collection": 0, "last_collection_time": self.clock()}, session
                    )
                    new_title = await self.resource_store.apply_in_session(
                        player_id, {"money": amount}, session
                    )
        except SQLAlchemyError as e:
            logging.error(f"Failed to collect hotspot {hotspot_id} for player {player_id}: {e}")
            raise StorageError("failed to collect income") from e

        self.resource_store.announce_title(player_id, new_title)
        message = f"Successfully collected ${amount} from {updated.name}."
        self.event_bus.publish_player(player_id, "hotspot_updated", DataConverter.hotspot_event(updated))
        self.event_bus.publish_player(
            player_id,
            "notification",
            {"type": NotificationType.collection.value, "message": message},
        )
        return CollectResultModel(collected_amount=amount, hotspots_count=1, message=message)

    async def collect_all(self, player_id: UUID) -> CollectResultModel:
        now = self.clock()
        try:
            async with self.Session() as session:
                async with session.begin():
                    rows = await ReadData.lock_collectable_hotspots(player_id, session)
                    total = 0
                    updated: List[HotspotSchema] = []
                    for row in rows:
                        total += row.pending_collection
                        updated.append(
                            await UpdateData.update_hotspot(
                                row, {"pending_collection": 0, "last_collection_time": now}, session
                            )
                        )
                    new_title = None
                    if total > 0:
                        new_title = await self.resource_store.apply_in_session(
                            player_id, {"money": total}, session
                        )
        except SQLAlchemyError as e:
            logging.error(f"Failed to collect all hotspots for player {player_id}: {e}")
            raise StorageError("failed to collect income") from e

        if total == 0:
            return CollectResultModel(
                collected_amount=0,
                hotspots_count=0,
                message="No resources available to collect at this time.",
            )

        self.resource_store.announce_title(player_id, new_title)
        message = f"Successfully collected ${total} from {len(updated)} businesses."
        self.event_bus.publish_player(
            player_id,
            "hotspots_updated",
            {"hotspots": [DataConverter.hotspot_event(h) for h in updated]},
        )
        self.event_bus.publish_player(
            player_id,
            "notification",
            {"type": NotificationType.collection.value, "message": message},
        )
        return CollectResultModel(collected_amount=total, hotspots_count=len(updated), message=message)

    async def refresh_illegal(self) -> int:
        """Release every illegal hotspot: no controller, no allocations"""
        try:
            async with self.Session() as session:
                async with session.begin():
                    cleared = await UpdateData.clear_illegal_hotspots(session)
        except (GameError, SQLAlchemyError) as e:
            logging.error(f"Failed to refresh illegal hotspots: {e}")
            return 0
        logging.info(f"Refreshed {cleared} illegal hotspots")
        return cleared
