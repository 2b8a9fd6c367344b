"""Player resource mutations.

All changes to a player's resource vector go through ``ResourceStore``. Each
apply is a single clamped UPDATE, followed by a title recompute in the same
transaction.
"""

import logging
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from syndicate.clock import Clock, utcnow
from syndicate.crud import PLAYER_RESOURCE_COLUMNS, ReadData, UpdateData
from syndicate.domain.player_rules import title_change_message, title_for
from syndicate.errors import InvalidRequest, NotFound, StorageError
from syndicate.event_bus import EventBus
from syndicate.models.dc_models import NotificationType
from syndicate.models.schema_models import PlayerSchema


class ResourceStore:
    def __init__(self, Session: async_sessionmaker, event_bus: EventBus, clock: Clock = utcnow):
        self.Session: async_sessionmaker = Session
        self.event_bus: EventBus = event_bus
        self.clock: Clock = clock

    @staticmethod
    def _clean(deltas: Dict[str, int]) -> Dict[str, int]:
        unknown = [kind for kind in deltas if kind not in PLAYER_RESOURCE_COLUMNS]
        if unknown:
            raise InvalidRequest(f"unknown resource kind: {', '.join(unknown)}")
        return {kind: int(delta) for kind, delta in deltas.items() if delta}

    async def apply(self, player_id: UUID, deltas: Dict[str, int]) -> PlayerSchema:
        """Apply resource deltas in their own transaction.

        Every resource ends at max(0, current + delta). The player's title is
        recomputed and a notification is pushed when it changes.

        Args:
            player_id (UUID): To identify the player
            deltas (Dict[str, int]): resource kind to signed change

        Raises:
            NotFound: the player does not exist
            StorageError: the update could not be committed

        Returns:
            PlayerSchema: the player after the update
        """
        try:
            async with self.Session() as session:
                async with session.begin():
                    new_title = await self.apply_in_session(player_id, deltas, session)
                player = await ReadData.read_player(player_id, session)
        except SQLAlchemyError as e:
            logging.error(f"Failed to commit resource update for player {player_id}: {e}")
            raise StorageError("failed to update player resources") from e
        self.announce_title(player_id, new_title)
        return player

    async def apply_in_session(
        self, player_id: UUID, deltas: Dict[str, int], session: AsyncSession
    ) -> Optional[str]:
        """Apply deltas inside a transaction owned by the caller.

        The caller must call ``announce_title`` with the return value after it
        commits.

        Returns:
            Optional[str]: the new title when it changed, otherwise None
        """
        changes = self._clean(deltas)
        updated = await UpdateData.update_player_resources(player_id, changes, self.clock(), session)
        if updated == 0:
            raise NotFound("player not found")

        respect, influence, title = await ReadData.read_player_scores(player_id, session)
        new_title = title_for(respect, influence)
        if new_title == title:
            return None
        await UpdateData.update_player_title(player_id, new_title, session)
        logging.info(f"Player {player_id} title changed from {title} to {new_title}")
        return new_title

    def announce_title(self, player_id: UUID, new_title: Optional[str]) -> None:
        if new_title is None:
            return
        self.event_bus.publish_player(
            player_id,
            "notification",
            {
                "type": NotificationType.system.value,
                "title": new_title,
                "message": title_change_message(new_title),
            },
        )
