"""CRUD helpers.

Every helper takes the caller's session and never commits; services own the
transaction boundaries. Database failures are logged and re-raised as
``StorageError``.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional
from uuid import UUID
import logging

from sqlalchemy import and_, case, delete, desc, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from syndicate.domain.territory_rules import defense_strength
from syndicate.errors import StorageError
from syndicate.models.dc_models import AttemptStatus, ResourceKind
from syndicate.models.schema_models import (
    HotspotSchema,
    MarketListingSchema,
    MarketPriceHistorySchema,
    MarketTransactionSchema,
    OperationAttemptSchema,
    OperationSchema,
    PlayerProfileSchema,
    PlayerSchema,
    RegionSchema,
    TerritoryActionSchema,
    TravelAttemptSchema,
)
from syndicate.models.schemas import (
    Base,
    Hotspot,
    MarketListing,
    MarketPriceHistory,
    MarketTransaction,
    Operation,
    OperationAttempt,
    Player,
    PlayerToken,
    Region,
    TerritoryAction,
    TravelAttempt,
)

PLAYER_RESOURCE_COLUMNS = {kind.value: getattr(Player, kind.value) for kind in ResourceKind}


class CreateData:
    @staticmethod
    async def create_table(engine: AsyncEngine) -> None:
        """Create every table that does not exist yet"""
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except IntegrityError as e:
            logging.warning(f"Table already exists or other integrity error: {e}")

    @staticmethod
    async def add_player(player: Player, session: AsyncSession) -> None:
        try:
            session.add(player)
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to add player {player.name}: {e}")
            raise StorageError("failed to create player") from e

    @staticmethod
    async def add_region(region: Region, session: AsyncSession) -> None:
        """Add a region together with its districts, cities and hotspots"""
        try:
            session.add(region)
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to add region {region.name}: {e}")
            raise StorageError("failed to create region") from e

    @staticmethod
    async def add_territory_action(action: TerritoryAction, session: AsyncSession) -> None:
        """Append the immutable record of one resolved territory action

        Args:
            action (TerritoryAction): the resolved action
        """
        try:
            session.add(action)
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to add territory action for player {action.player_id}: {e}")
            raise StorageError("failed to record territory action") from e

    @staticmethod
    async def add_operation(operation: Operation, session: AsyncSession) -> None:
        try:
            session.add(operation)
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to add operation {operation.name}: {e}")
            raise StorageError("failed to create operation") from e

    @staticmethod
    async def add_operation_attempt(attempt: OperationAttempt, session: AsyncSession) -> None:
        try:
            session.add(attempt)
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to add operation attempt for player {attempt.player_id}: {e}")
            raise StorageError("failed to record operation attempt") from e

    @staticmethod
    async def add_listing(listing: MarketListing, session: AsyncSession) -> None:
        try:
            session.add(listing)
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to add market listing {listing.resource_type}: {e}")
            raise StorageError("failed to create market listing") from e

    @staticmethod
    async def add_price_history(history: MarketPriceHistory, session: AsyncSession) -> None:
        try:
            session.add(history)
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to add price history for {history.resource_type}: {e}")
            raise StorageError("failed to record price history") from e

    @staticmethod
    async def add_market_transaction(transaction: MarketTransaction, session: AsyncSession) -> None:
        try:
            session.add(transaction)
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to add market transaction for player {transaction.player_id}: {e}")
            raise StorageError("failed to record market transaction") from e

    @staticmethod
    async def add_travel_attempt(attempt: TravelAttempt, session: AsyncSession) -> None:
        try:
            session.add(attempt)
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to add travel attempt for player {attempt.player_id}: {e}")
            raise StorageError("failed to record travel attempt") from e

    @staticmethod
    async def add_token(token: PlayerToken, session: AsyncSession) -> None:
        try:
            session.add(token)
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to add token for player {token.player_id}: {e}")
            raise StorageError("failed to store token") from e


class ReadData:
    @staticmethod
    async def read_player(player_id: UUID, session: AsyncSession) -> Optional[PlayerSchema]:
        try:
            stmt = select(Player).where(Player.id == player_id).execution_options(
                populate_existing=True
            )
            result = await session.execute(stmt)
            player = result.scalars().first()
        except SQLAlchemyError as e:
            logging.error(f"Failed to read player {player_id}: {e}")
            raise StorageError("failed to read player") from e
        if player is None:
            return None
        return PlayerSchema.model_validate(player)

    @staticmethod
    async def read_player_by_name(name: str, session: AsyncSession) -> Optional[PlayerSchema]:
        try:
            result = await session.execute(select(Player).where(Player.name == name))
            player = result.scalars().first()
        except SQLAlchemyError as e:
            logging.error(f"Failed to read player {name}: {e}")
            raise StorageError("failed to read player") from e
        if player is None:
            return None
        return PlayerSchema.model_validate(player)

    @staticmethod
    async def read_player_profile(
        player_id: UUID, session: AsyncSession
    ) -> Optional[PlayerProfileSchema]:
        """Read a player together with the figures derived from its hotspots

        Args:
            player_id (UUID): To identify the player

        Returns:
            Optional[PlayerProfileSchema]: None when the player does not exist
        """
        player = await ReadData.read_player(player_id, session)
        if player is None:
            return None
        try:
            stmt = select(
                func.count(Hotspot.id),
                func.coalesce(func.sum(case((Hotspot.is_legal, Hotspot.income), else_=0)), 0),
                func.coalesce(func.sum(Hotspot.pending_collection), 0),
            ).where(Hotspot.controller_id == player_id)
            controlled, hourly_revenue, pending = (await session.execute(stmt)).one()
            total = (await session.execute(select(func.count(Hotspot.id)))).scalar_one()
        except SQLAlchemyError as e:
            logging.error(f"Failed to read profile of player {player_id}: {e}")
            raise StorageError("failed to read player profile") from e
        return PlayerProfileSchema(
            **player.model_dump(),
            controlled_hotspots=controlled,
            total_hotspot_count=total,
            hourly_revenue=hourly_revenue,
            pending_collections=pending,
        )

    @staticmethod
    async def read_player_scores(player_id: UUID, session: AsyncSession) -> Optional[tuple]:
        """Read (respect, influence, title) straight from the row, bypassing the identity map"""
        try:
            stmt = select(Player.respect, Player.influence, Player.title).where(
                Player.id == player_id
            )
            return (await session.execute(stmt)).first()
        except SQLAlchemyError as e:
            logging.error(f"Failed to read scores of player {player_id}: {e}")
            raise StorageError("failed to read player") from e

    @staticmethod
    async def read_player_id_by_token(
        token_hash: str, now: datetime, session: AsyncSession
    ) -> Optional[UUID]:
        try:
            stmt = select(PlayerToken.player_id).where(
                PlayerToken.token_hash == token_hash, PlayerToken.expires_at > now
            )
            return (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            logging.error(f"Failed to read token: {e}")
            raise StorageError("failed to read token") from e

    @staticmethod
    async def read_regions(session: AsyncSession) -> List[RegionSchema]:
        try:
            result = await session.execute(select(Region).order_by(Region.name))
            return [RegionSchema.model_validate(r) for r in result.scalars().all()]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read regions: {e}")
            raise StorageError("failed to read regions") from e

    @staticmethod
    async def read_region(region_id: UUID, session: AsyncSession) -> Optional[RegionSchema]:
        try:
            region = await session.get(Region, region_id)
        except SQLAlchemyError as e:
            logging.error(f"Failed to read region {region_id}: {e}")
            raise StorageError("failed to read region") from e
        return RegionSchema.model_validate(region) if region is not None else None

    @staticmethod
    async def read_hotspot(hotspot_id: UUID, session: AsyncSession) -> Optional[HotspotSchema]:
        try:
            stmt = select(Hotspot).where(Hotspot.id == hotspot_id).execution_options(
                populate_existing=True
            )
            hotspot = (await session.execute(stmt)).scalars().first()
        except SQLAlchemyError as e:
            logging.error(f"Failed to read hotspot {hotspot_id}: {e}")
            raise StorageError("failed to read hotspot") from e
        return HotspotSchema.model_validate(hotspot) if hotspot is not None else None

    @staticmethod
    async def lock_hotspot(hotspot_id: UUID, session: AsyncSession) -> Optional[Hotspot]:
        """Read the current hotspot row and hold its row lock until the transaction ends"""
        try:
            stmt = (
                select(Hotspot)
                .where(Hotspot.id == hotspot_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            return (await session.execute(stmt)).scalars().first()
        except SQLAlchemyError as e:
            logging.error(f"Failed to lock hotspot {hotspot_id}: {e}")
            raise StorageError("failed to read hotspot") from e

    @staticmethod
    async def lock_collectable_hotspots(player_id: UUID, session: AsyncSession) -> List[Hotspot]:
        try:
            stmt = (
                select(Hotspot)
                .where(
                    Hotspot.controller_id == player_id,
                    Hotspot.is_legal.is_(True),
                    Hotspot.pending_collection > 0,
                )
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            return list((await session.execute(stmt)).scalars().all())
        except SQLAlchemyError as e:
            logging.error(f"Failed to lock hotspots of player {player_id}: {e}")
            raise StorageError("failed to read hotspots") from e

    @staticmethod
    async def read_hotspots(
        session: AsyncSession, city_id: Optional[UUID] = None
    ) -> List[HotspotSchema]:
        try:
            stmt = select(Hotspot).order_by(Hotspot.name)
            if city_id is not None:
                stmt = stmt.where(Hotspot.city_id == city_id)
            result = await session.execute(stmt)
            return [HotspotSchema.model_validate(h) for h in result.scalars().all()]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read hotspots: {e}")
            raise StorageError("failed to read hotspots") from e

    @staticmethod
    async def read_controlled_hotspots(
        player_id: UUID, session: AsyncSession
    ) -> List[HotspotSchema]:
        try:
            stmt = (
                select(Hotspot)
                .where(Hotspot.controller_id == player_id)
                .order_by(Hotspot.name)
            )
            result = await session.execute(stmt)
            return [HotspotSchema.model_validate(h) for h in result.scalars().all()]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read hotspots of player {player_id}: {e}")
            raise StorageError("failed to read hotspots") from e

    @staticmethod
    async def read_controlled_legal_hotspots(session: AsyncSession) -> List[HotspotSchema]:
        try:
            stmt = (
                select(Hotspot)
                .where(Hotspot.is_legal.is_(True), Hotspot.controller_id.is_not(None))
                .order_by(Hotspot.controller_id)
                .execution_options(populate_existing=True)
            )
            result = await session.execute(stmt)
            return [HotspotSchema.model_validate(h) for h in result.scalars().all()]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read controlled legal hotspots: {e}")
            raise StorageError("failed to read hotspots") from e

    @staticmethod
    async def read_total_pending(player_id: UUID, session: AsyncSession) -> int:
        try:
            stmt = select(func.coalesce(func.sum(Hotspot.pending_collection), 0)).where(
                Hotspot.controller_id == player_id
            )
            return (await session.execute(stmt)).scalar_one()
        except SQLAlchemyError as e:
            logging.error(f"Failed to read pending collections of player {player_id}: {e}")
            raise StorageError("failed to read pending collections") from e

    @staticmethod
    async def read_recent_actions(
        player_id: UUID, session: AsyncSession, limit: int = 20
    ) -> List[TerritoryActionSchema]:
        try:
            stmt = (
                select(TerritoryAction)
                .where(TerritoryAction.player_id == player_id)
                .order_by(desc(TerritoryAction.timestamp))
                .limit(limit)
            )
            result = await session.execute(stmt)
            return [TerritoryActionSchema.model_validate(a) for a in result.scalars().all()]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read actions of player {player_id}: {e}")
            raise StorageError("failed to read territory actions") from e

    @staticmethod
    async def read_operation(operation_id: UUID, session: AsyncSession) -> Optional[OperationSchema]:
        try:
            operation = await session.get(Operation, operation_id)
        except SQLAlchemyError as e:
            logging.error(f"Failed to read operation {operation_id}: {e}")
            raise StorageError("failed to read operation") from e
        return OperationSchema.model_validate(operation) if operation is not None else None

    @staticmethod
    async def read_active_operations(now: datetime, session: AsyncSession) -> List[OperationSchema]:
        try:
            stmt = (
                select(Operation)
                .where(Operation.is_active.is_(True), Operation.available_until > now)
                .order_by(Operation.is_special, Operation.name)
            )
            result = await session.execute(stmt)
            return [OperationSchema.model_validate(o) for o in result.scalars().all()]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read active operations: {e}")
            raise StorageError("failed to read operations") from e

    @staticmethod
    async def lock_attempt(attempt_id: UUID, session: AsyncSession) -> Optional[OperationAttempt]:
        try:
            stmt = (
                select(OperationAttempt)
                .where(OperationAttempt.id == attempt_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            return (await session.execute(stmt)).scalars().first()
        except SQLAlchemyError as e:
            logging.error(f"Failed to lock operation attempt {attempt_id}: {e}")
            raise StorageError("failed to read operation attempt") from e

    @staticmethod
    async def read_attempts(
        player_id: UUID, statuses: Iterable[AttemptStatus], session: AsyncSession, limit: int = 50
    ) -> List[OperationAttemptSchema]:
        try:
            stmt = (
                select(OperationAttempt)
                .where(
                    OperationAttempt.player_id == player_id,
                    OperationAttempt.status.in_([s.value for s in statuses]),
                )
                .order_by(desc(OperationAttempt.start_time))
                .limit(limit)
            )
            result = await session.execute(stmt)
            return [OperationAttemptSchema.model_validate(a) for a in result.scalars().all()]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read operation attempts of player {player_id}: {e}")
            raise StorageError("failed to read operation attempts") from e

    @staticmethod
    async def read_in_progress_operation_ids(player_id: UUID, session: AsyncSession) -> List[UUID]:
        try:
            stmt = select(OperationAttempt.operation_id).where(
                OperationAttempt.player_id == player_id,
                OperationAttempt.status == AttemptStatus.in_progress.value,
            )
            return list((await session.execute(stmt)).scalars().all())
        except SQLAlchemyError as e:
            logging.error(f"Failed to read running operations of player {player_id}: {e}")
            raise StorageError("failed to read operation attempts") from e

    @staticmethod
    async def read_unnotified_running_attempts(session: AsyncSession) -> List[tuple]:
        """Read (attempt, operation) pairs for every unnotified in-progress attempt"""
        try:
            stmt = (
                select(OperationAttempt, Operation)
                .join(Operation, Operation.id == OperationAttempt.operation_id)
                .where(
                    OperationAttempt.status == AttemptStatus.in_progress.value,
                    OperationAttempt.notified.is_(False),
                )
            )
            return [
                (OperationAttemptSchema.model_validate(a), OperationSchema.model_validate(o))
                for a, o in (await session.execute(stmt)).all()
            ]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read running operation attempts: {e}")
            raise StorageError("failed to read operation attempts") from e

    @staticmethod
    async def count_active_operations(is_special: bool, now: datetime, session: AsyncSession) -> int:
        try:
            stmt = select(func.count(Operation.id)).where(
                Operation.is_active.is_(True),
                Operation.is_special.is_(is_special),
                Operation.available_until > now,
            )
            return (await session.execute(stmt)).scalar_one()
        except SQLAlchemyError as e:
            logging.error(f"Failed to count active operations: {e}")
            raise StorageError("failed to read operations") from e

    @staticmethod
    async def read_active_operation_names(now: datetime, session: AsyncSession) -> List[str]:
        try:
            stmt = select(Operation.name).where(
                Operation.is_active.is_(True), Operation.available_until > now
            )
            return list((await session.execute(stmt)).scalars().all())
        except SQLAlchemyError as e:
            logging.error(f"Failed to read active operation names: {e}")
            raise StorageError("failed to read operations") from e

    @staticmethod
    async def read_latest_operation_time(session: AsyncSession) -> Optional[datetime]:
        try:
            return (await session.execute(select(func.max(Operation.created_at)))).scalar_one()
        except SQLAlchemyError as e:
            logging.error(f"Failed to read latest operation time: {e}")
            raise StorageError("failed to read operations") from e

    @staticmethod
    async def read_listings(session: AsyncSession) -> List[MarketListingSchema]:
        try:
            stmt = select(MarketListing).order_by(MarketListing.resource_type).execution_options(
                populate_existing=True
            )
            result = await session.execute(stmt)
            return [MarketListingSchema.model_validate(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read market listings: {e}")
            raise StorageError("failed to read market listings") from e

    @staticmethod
    async def read_listing(resource_type: str, session: AsyncSession) -> Optional[MarketListingSchema]:
        try:
            stmt = select(MarketListing).where(MarketListing.resource_type == resource_type)
            listing = (await session.execute(stmt)).scalars().first()
        except SQLAlchemyError as e:
            logging.error(f"Failed to read market listing {resource_type}: {e}")
            raise StorageError("failed to read market listing") from e
        return MarketListingSchema.model_validate(listing) if listing is not None else None

    @staticmethod
    async def read_price_history(
        since: datetime, session: AsyncSession, resource_type: Optional[str] = None
    ) -> List[MarketPriceHistorySchema]:
        try:
            stmt = select(MarketPriceHistory).where(MarketPriceHistory.timestamp >= since)
            if resource_type is not None:
                stmt = stmt.where(MarketPriceHistory.resource_type == resource_type)
            stmt = stmt.order_by(MarketPriceHistory.timestamp)
            result = await session.execute(stmt)
            return [MarketPriceHistorySchema.model_validate(h) for h in result.scalars().all()]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read price history: {e}")
            raise StorageError("failed to read price history") from e

    @staticmethod
    async def read_transactions(
        player_id: UUID, session: AsyncSession, limit: int = 20
    ) -> List[MarketTransactionSchema]:
        try:
            stmt = (
                select(MarketTransaction)
                .where(MarketTransaction.player_id == player_id)
                .order_by(desc(MarketTransaction.timestamp))
                .limit(limit)
            )
            result = await session.execute(stmt)
            return [MarketTransactionSchema.model_validate(t) for t in result.scalars().all()]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read market transactions of player {player_id}: {e}")
            raise StorageError("failed to read market transactions") from e

    @staticmethod
    async def read_travel_attempts(
        player_id: UUID, session: AsyncSession, limit: int = 10
    ) -> List[TravelAttemptSchema]:
        try:
            stmt = (
                select(TravelAttempt)
                .where(TravelAttempt.player_id == player_id)
                .order_by(desc(TravelAttempt.timestamp))
                .limit(limit)
            )
            result = await session.execute(stmt)
            return [TravelAttemptSchema.model_validate(t) for t in result.scalars().all()]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read travel history of player {player_id}: {e}")
            raise StorageError("failed to read travel history") from e


class UpdateData:
    @staticmethod
    async def update_player_resources(
        player_id: UUID, deltas: Dict[str, int], now: datetime, session: AsyncSession
    ) -> int:
        """Add deltas to a player's resources in one statement, clamping each at zero

        Every column is set to GREATEST(0, column + delta), written as a CASE
        so the statement runs on any backend.

        Args:
            player_id (UUID): To identify the player
            deltas (Dict[str, int]): resource kind to signed change
            now (datetime): written to last_active

        Returns:
            int: number of rows updated, 0 when the player does not exist
        """
        values = {"last_active": now}
        for kind, delta in deltas.items():
            column = PLAYER_RESOURCE_COLUMNS[kind]
            values[kind] = case((column + delta < 0, 0), else_=column + delta)
        try:
            stmt = (
                update(Player)
                .where(Player.id == player_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            return result.rowcount
        except SQLAlchemyError as e:
            logging.error(f"Failed to update resources of player {player_id}: {e}")
            raise StorageError("failed to update player resources") from e

    @staticmethod
    async def update_player_title(player_id: UUID, title: str, session: AsyncSession) -> None:
        try:
            stmt = (
                update(Player)
                .where(Player.id == player_id)
                .values(title=title)
                .execution_options(synchronize_session=False)
            )
            await session.execute(stmt)
        except SQLAlchemyError as e:
            logging.error(f"Failed to update title of player {player_id}: {e}")
            raise StorageError("failed to update player title") from e

    @staticmethod
    async def update_player_region(
        player_id: UUID, region_id: UUID, now: datetime, session: AsyncSession
    ) -> None:
        try:
            stmt = (
                update(Player)
                .where(Player.id == player_id)
                .values(current_region_id=region_id, last_travel_time=now)
                .execution_options(synchronize_session=False)
            )
            await session.execute(stmt)
        except SQLAlchemyError as e:
            logging.error(f"Failed to update region of player {player_id}: {e}")
            raise StorageError("failed to update player region") from e

    @staticmethod
    async def update_hotspot(hotspot: Hotspot, changes: Dict, session: AsyncSession) -> HotspotSchema:
        """Write changed columns to a locked hotspot row and re-derive its defense strength

        Args:
            hotspot (Hotspot): row obtained from ReadData.lock_hotspot
            changes (Dict): column name to new value

        Returns:
            HotspotSchema: the hotspot after the update
        """
        for name, value in changes.items():
            setattr(hotspot, name, value)
        hotspot.defense_strength = defense_strength(hotspot.crew, hotspot.weapons, hotspot.vehicles)
        try:
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to update hotspot {hotspot.id}: {e}")
            raise StorageError("failed to update hotspot") from e
        return HotspotSchema.model_validate(hotspot)

    @staticmethod
    async def update_hotspot_pending_collection(
        hotspot_id: UUID, delta: int, session: AsyncSession
    ) -> None:
        try:
            stmt = (
                update(Hotspot)
                .where(Hotspot.id == hotspot_id)
                .values(pending_collection=Hotspot.pending_collection + delta)
                .execution_options(synchronize_session=False)
            )
            await session.execute(stmt)
        except SQLAlchemyError as e:
            logging.error(f"Failed to update pending collection of hotspot {hotspot_id}: {e}")
            raise StorageError("failed to update pending collection") from e

    @staticmethod
    async def update_hotspot_last_income_time(
        hotspot_id: UUID, last_income_time: datetime, session: AsyncSession
    ) -> None:
        try:
            stmt = (
                update(Hotspot)
                .where(Hotspot.id == hotspot_id)
                .values(last_income_time=last_income_time)
                .execution_options(synchronize_session=False)
            )
            await session.execute(stmt)
        except SQLAlchemyError as e:
            logging.error(f"Failed to update last income time of hotspot {hotspot_id}: {e}")
            raise StorageError("failed to update last income time") from e

    @staticmethod
    async def clear_illegal_hotspots(session: AsyncSession) -> int:
        try:
            stmt = (
                update(Hotspot)
                .where(Hotspot.is_legal.is_(False))
                .values(
                    controller_id=None,
                    crew=0,
                    weapons=0,
                    vehicles=0,
                    defense_strength=0,
                    pending_collection=0,
                )
                .execution_options(synchronize_session=False)
            )
            return (await session.execute(stmt)).rowcount
        except SQLAlchemyError as e:
            logging.error(f"Failed to clear illegal hotspots: {e}")
            raise StorageError("failed to clear illegal hotspots") from e

    @staticmethod
    async def update_listing(
        resource_type: str,
        price: int,
        trend: str,
        trend_percentage: int,
        now: datetime,
        session: AsyncSession,
    ) -> None:
        try:
            stmt = (
                update(MarketListing)
                .where(MarketListing.resource_type == resource_type)
                .values(price=price, trend=trend, trend_percentage=trend_percentage, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            await session.execute(stmt)
        except SQLAlchemyError as e:
            logging.error(f"Failed to update market listing {resource_type}: {e}")
            raise StorageError("failed to update market listing") from e

    @staticmethod
    async def deactivate_expired_operations(now: datetime, session: AsyncSession) -> int:
        try:
            stmt = (
                update(Operation)
                .where(Operation.is_active.is_(True), Operation.available_until <= now)
                .values(is_active=False)
                .execution_options(synchronize_session=False)
            )
            return (await session.execute(stmt)).rowcount
        except SQLAlchemyError as e:
            logging.error(f"Failed to deactivate expired operations: {e}")
            raise StorageError("failed to prune operations") from e

    @staticmethod
    async def update_operation_attempt(
        attempt: OperationAttempt,
        status: str,
        completion_time: datetime,
        session: AsyncSession,
        result: Optional[dict] = None,
    ) -> OperationAttemptSchema:
        attempt.status = status
        attempt.completion_time = completion_time
        if result is not None:
            attempt.result = result
        try:
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to update operation attempt {attempt.id}: {e}")
            raise StorageError("failed to update operation attempt") from e
        return OperationAttemptSchema.model_validate(attempt)

    @staticmethod
    async def mark_attempts_notified(attempt_ids: List[UUID], session: AsyncSession) -> None:
        if not attempt_ids:
            return
        try:
            stmt = (
                update(OperationAttempt)
                .where(
                    and_(
                        OperationAttempt.id.in_(attempt_ids),
                        OperationAttempt.status == AttemptStatus.in_progress.value,
                    )
                )
                .values(notified=True)
                .execution_options(synchronize_session=False)
            )
            await session.execute(stmt)
        except SQLAlchemyError as e:
            logging.error(f"Failed to mark operation attempts notified: {e}")
            raise StorageError("failed to update operation attempts") from e


class DeleteData:
    @staticmethod
    async def delete_expired_tokens(now: datetime, session: AsyncSession) -> int:
        try:
            result = await session.execute(delete(PlayerToken).where(PlayerToken.expires_at <= now))
            return result.rowcount
        except SQLAlchemyError as e:
            logging.error(f"Failed to delete expired tokens: {e}")
            raise StorageError("failed to delete expired tokens") from e
