import logging
from collections import OrderedDict
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from syndicate.clock import Clock, rfc3339, utcnow
from syndicate.crud import ReadData, UpdateData
from syndicate.domain.territory_rules import (
    COLLECTION_READY_THRESHOLD,
    INCOME_PERIOD,
    accrue_income,
)
from syndicate.errors import GameError
from syndicate.event_bus import EventBus
from syndicate.models.dc_models import NotificationType
from syndicate.models.schema_models import HotspotSchema


class IncomeEngine:
    """Accrues hourly income to every controlled legal hotspot.

    ``tick`` runs every second. Only whole hours are paid; the remainder stays
    on the clock because ``last_income_time`` advances by exactly the hours
    paid, so a restart loses at most one tick.
    """

    def __init__(self, Session: async_sessionmaker, event_bus: EventBus, clock: Clock = utcnow):
        self.Session: async_sessionmaker = Session
        self.event_bus: EventBus = event_bus
        self.clock: Clock = clock

    async def tick(self) -> int:
        """Run one accrual pass over every controlled legal hotspot.

        Returns:
            int: number of hotspots that accrued income
        """
        now = self.clock()
        try:
            async with self.Session() as session:
                hotspots = await ReadData.read_controlled_legal_hotspots(session)
        except GameError as e:
            logging.error(f"Income tick could not read hotspots: {e}")
            return 0

        by_controller: Dict[UUID, List[HotspotSchema]] = OrderedDict()
        for hotspot in hotspots:
            by_controller.setdefault(hotspot.controller_id, []).append(hotspot)

        accrued = 0
        for controller_id, controlled in by_controller.items():
            updates = []
            for hotspot in controlled:
                try:
                    update = await self._accrue(hotspot.id, controller_id, now)
                except (GameError, SQLAlchemyError) as e:
                    logging.error(f"Income accrual failed for hotspot {hotspot.id}: {e}")
                    continue
                if update is not None:
                    updates.append(update)
            if not updates:
                continue
            accrued += len(updates)
            await self._publish_income(controller_id, updates, now)
        return accrued

    async def _accrue(self, hotspot_id: UUID, controller_id: UUID, now: datetime) -> Optional[dict]:
        async with self.Session() as session:
            async with session.begin():
                row = await ReadData.lock_hotspot(hotspot_id, session)
                # control may have changed since the hotspot list was read
                if row is None or row.controller_id != controller_id or not row.is_legal:
                    return None

                if row.last_income_time is None:
                    await UpdateData.update_hotspot_last_income_time(hotspot_id, now, session)
                    return None

                accrual, last_income_time = accrue_income(row.income, row.last_income_time, now)
                if last_income_time == row.last_income_time:
                    return None

                name = row.name
                await UpdateData.update_hotspot_pending_collection(hotspot_id, accrual, session)
                await UpdateData.update_hotspot_last_income_time(hotspot_id, last_income_time, session)
                refreshed = await ReadData.read_hotspot(hotspot_id, session)

        if accrual > COLLECTION_READY_THRESHOLD:
            self.event_bus.publish_player(
                controller_id,
                "notification",
                {
                    "type": NotificationType.collection.value,
                    "hotspot_id": hotspot_id,
                    "message": f"${accrual} is ready for collection at {name}.",
                },
            )
        return {
            "hotspot_id": hotspot_id,
            "hotspot_name": name,
            "new_income": accrual,
            "pending_collection": refreshed.pending_collection,
            "last_income_time": rfc3339(last_income_time),
            "next_income_time": rfc3339(last_income_time + INCOME_PERIOD),
        }

    async def _publish_income(self, controller_id: UUID, updates: List[dict], now: datetime) -> None:
        try:
            async with self.Session() as session:
                total_pending = await ReadData.read_total_pending(controller_id, session)
        except GameError as e:
            logging.error(f"Failed to total pending collections for player {controller_id}: {e}")
            return
        self.event_bus.publish_player(
            controller_id,
            "income_generated",
            {"updates": updates, "total_pending": total_pending, "timestamp": rfc3339(now)},
        )
        logging.debug(f"Accrued income on {len(updates)} hotspots for player {controller_id}")
