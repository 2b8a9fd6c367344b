import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from syndicate.clock import Clock, rfc3339, utcnow
from syndicate.config import TravelConfig
from syndicate.crud import CreateData, ReadData, UpdateData
from syndicate.domain.dice import RandomSource, chance
from syndicate.domain.travel_rules import catch_chance, heat_reduction, travel_fine
from syndicate.errors import GameError, InvalidRequest, NotFound, StorageError
from syndicate.event_bus import EventBus
from syndicate.models.dc_models import NotificationType, TravelResultModel
from syndicate.models.schema_models import RegionSchema, TravelAttemptSchema
from syndicate.models.schemas import TravelAttempt
from syndicate.services.resource_store import ResourceStore


class TravelService:
    """Moves players between regions, with a heat-driven chance of a police stop."""

    def __init__(
        self,
        Session: async_sessionmaker,
        resource_store: ResourceStore,
        event_bus: EventBus,
        travel: TravelConfig,
        rng: RandomSource,
        clock: Clock = utcnow,
    ):
        self.Session: async_sessionmaker = Session
        self.resource_store: ResourceStore = resource_store
        self.event_bus: EventBus = event_bus
        self.travel_config: TravelConfig = travel
        self.rng: RandomSource = rng
        self.clock: Clock = clock

    async def current_region(self, player_id: UUID) -> Optional[RegionSchema]:
        async with self.Session() as session:
            player = await ReadData.read_player(player_id, session)
            if player is None:
                raise NotFound("player not found")
            if player.current_region_id is None:
                return None
            return await ReadData.read_region(player.current_region_id, session)

    async def history(self, player_id: UUID, limit: int = 10) -> List[TravelAttemptSchema]:
        async with self.Session() as session:
            return await ReadData.read_travel_attempts(player_id, session, limit)

    async def travel(self, player_id: UUID, region_id: UUID) -> TravelResultModel:
        """Attempt to travel to another region.

        A police stop fines the player and raises heat; the player stays put.
        Otherwise the travel cost is paid, heat drops and the region changes.

        Args:
            player_id (UUID): travelling player
            region_id (UUID): destination region

        Raises:
            NotFound: player or region does not exist
            InvalidRequest: the player cannot afford the trip

        Returns:
            TravelResultModel: outcome of the trip
        """
        now = self.clock()
        async with self.Session() as session:
            player = await ReadData.read_player(player_id, session)
            destination = await ReadData.read_region(region_id, session)
            origin = None
            if player is not None and player.current_region_id is not None:
                origin = await ReadData.read_region(player.current_region_id, session)
        if player is None:
            raise NotFound("player not found")
        if destination is None:
            raise NotFound("destination region not found")

        if player.current_region_id == region_id:
            return TravelResultModel(
                success=True,
                region_id=region_id,
                region_name=destination.name,
                message=f"You are already in {destination.name}.",
            )

        cost = self.travel_config.base_cost
        if player.money < cost:
            raise InvalidRequest("not enough money to travel")

        caught = chance(self.rng, catch_chance(player.heat, self.travel_config))
        if caught:
            fine = travel_fine(player.money, self.travel_config)
            heat_change = self.travel_config.caught_heat_increase
            deltas = {"money": -fine, "heat": heat_change}
            message = (
                f"You were caught by the police while trying to travel to {destination.name}. "
                f"You've been fined ${fine} and your heat has increased by {heat_change}."
            )
        else:
            fine = 0
            reduction = heat_reduction(player.heat, self.travel_config)
            heat_change = -reduction
            deltas = {"money": -cost, "heat": heat_change}
            origin_name = origin.name if origin is not None else "headquarters"
            message = (
                f"You have successfully traveled from {origin_name} to {destination.name} "
                f"for ${cost}. Your heat has decreased by {reduction}."
            )

        try:
            async with self.Session() as session:
                async with session.begin():
                    new_title = await self.resource_store.apply_in_session(player_id, deltas, session)
                    if not caught:
                        await UpdateData.update_player_region(player_id, region_id, now, session)
                    await CreateData.add_travel_attempt(
                        TravelAttempt(
                            player_id=player_id,
                            from_region_id=player.current_region_id,
                            to_region_id=region_id,
                            success=not caught,
                            caught_by_police=caught,
                            fine_amount=fine,
                            heat_change=heat_change,
                            travel_cost=cost,
                            timestamp=now,
                        ),
                        session,
                    )
        except SQLAlchemyError as e:
            logging.error(f"Failed to record travel of player {player_id} to {region_id}: {e}")
            raise StorageError("failed to update player after travel") from e

        self.resource_store.announce_title(player_id, new_title)
        self.event_bus.publish_player(
            player_id, "notification", {"type": NotificationType.travel.value, "message": message}
        )
        if not caught:
            self.event_bus.publish_player(
                player_id,
                "player_region_changed",
                {
                    "player_id": player_id,
                    "region_id": region_id,
                    "region_name": destination.name,
                    "timestamp": rfc3339(now),
                },
            )
        logging.info(f"Player {player_id} travel to {region_id}: caught={caught}")
        return TravelResultModel(
            success=not caught,
            region_id=region_id,
            region_name=destination.name,
            travel_cost=cost,
            caught_by_police=caught,
            fine_amount=fine,
            heat_change=heat_change,
            message=message,
        )
