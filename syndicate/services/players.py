import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from syndicate.clock import Clock, utcnow
from syndicate.config import ResourceLimitConfig
from syndicate.crud import CreateData, ReadData
from syndicate.domain.player_rules import title_for
from syndicate.errors import ConflictState, InvalidRequest, NotFound, StorageError
from syndicate.models.schema_models import PlayerProfileSchema, PlayerSchema
from syndicate.models.schemas import Player


class PlayerService:
    def __init__(self, Session: async_sessionmaker, limits: ResourceLimitConfig, clock: Clock = utcnow):
        self.Session: async_sessionmaker = Session
        self.limits: ResourceLimitConfig = limits
        self.clock: Clock = clock

    async def profile(self, player_id: UUID) -> PlayerProfileSchema:
        async with self.Session() as session:
            profile = await ReadData.read_player_profile(player_id, session)
        if profile is None:
            raise NotFound("player not found")
        return profile

    async def register(self, name: str) -> PlayerSchema:
        """Create a player with the configured starting resources and capacities

        Args:
            name (str): unique player name

        Raises:
            InvalidRequest: the name is empty
            ConflictState: the name is taken

        Returns:
            PlayerSchema: the new player
        """
        name = name.strip()
        if not name:
            raise InvalidRequest("player name must not be empty")
        now = self.clock()
        limits = self.limits
        player = Player(
            name=name,
            title=title_for(limits.initial_respect, limits.initial_influence),
            money=limits.initial_money,
            crew=limits.initial_crew,
            max_crew=limits.max_crew,
            weapons=limits.initial_weapons,
            max_weapons=limits.max_weapons,
            vehicles=limits.initial_vehicles,
            max_vehicles=limits.max_vehicles,
            respect=limits.initial_respect,
            influence=limits.initial_influence,
            heat=limits.initial_heat,
            created_at=now,
            last_active=now,
        )
        try:
            async with self.Session() as session:
                async with session.begin():
                    if await ReadData.read_player_by_name(name, session) is not None:
                        raise ConflictState(f"player name {name} is already taken")
                    await CreateData.add_player(player, session)
                    created = PlayerSchema.model_validate(player)
        except IntegrityError as e:
            raise ConflictState(f"player name {name} is already taken") from e
        except SQLAlchemyError as e:
            logging.error(f"Failed to register player {name}: {e}")
            raise StorageError("failed to create player") from e
        logging.info(f"Registered player {created.id} as {name}")
        return created
