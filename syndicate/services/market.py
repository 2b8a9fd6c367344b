import logging
from datetime import timedelta
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from syndicate.clock import Clock, utcnow
from syndicate.config import MarketConfig
from syndicate.crud import CreateData, ReadData, UpdateData
from syndicate.domain.dice import RandomSource
from syndicate.domain.market_rules import classify_trend, draw_price_change, next_price
from syndicate.errors import GameError, InvalidRequest, NotFound, StorageError
from syndicate.event_bus import EventBus
from syndicate.models.dc_models import (
    NotificationType,
    TradeableResource,
    TradeResultModel,
    TransactionType,
    Trend,
)
from syndicate.models.schema_models import (
    MarketListingSchema,
    MarketPriceHistorySchema,
    MarketTransactionSchema,
)
from syndicate.models.schemas import MarketListing, MarketPriceHistory, MarketTransaction
from syndicate.services.resource_store import ResourceStore

RESOURCE_LABELS = {
    TradeableResource.crew: "crew members",
    TradeableResource.weapons: "weapons",
    TradeableResource.vehicles: "vehicles",
}


class MarketService:
    def __init__(
        self,
        Session: async_sessionmaker,
        resource_store: ResourceStore,
        event_bus: EventBus,
        market: MarketConfig,
        rng: RandomSource,
        clock: Clock = utcnow,
    ):
        self.Session: async_sessionmaker = Session
        self.resource_store: ResourceStore = resource_store
        self.event_bus: EventBus = event_bus
        self.market: MarketConfig = market
        self.rng: RandomSource = rng
        self.clock: Clock = clock

    def price_bounds(self, resource_type: str) -> tuple:
        base = self.market.base_prices.get(resource_type, 1000)
        return (
            self.market.min_prices.get(resource_type, 1),
            self.market.max_prices.get(resource_type, base * 10),
        )

    async def update_prices(self) -> List[MarketListingSchema]:
        """Move every listing's price by a random fraction within the fluctuation range.

        Listings are created at their base price on the first run. Each new
        price is clamped to the configured bounds and appended to the history.

        Returns:
            List[MarketListingSchema]: listings after the update
        """
        now = self.clock()
        try:
            async with self.Session() as session:
                async with session.begin():
                    listings = await ReadData.read_listings(session)
                    if not listings:
                        for resource in TradeableResource:
                            price = self.market.base_prices.get(resource.value, 1000)
                            await CreateData.add_listing(
                                MarketListing(
                                    resource_type=resource.value,
                                    price=price,
                                    trend=Trend.stable.value,
                                    trend_percentage=0,
                                    updated_at=now,
                                ),
                                session,
                            )
                            await CreateData.add_price_history(
                                MarketPriceHistory(resource_type=resource.value, price=price, timestamp=now),
                                session,
                            )
                        listings = await ReadData.read_listings(session)
                        logging.info(f"Created {len(listings)} market listings")

                    for listing in listings:
                        change = draw_price_change(self.rng, self.market.price_fluctuation_range)
                        min_price, max_price = self.price_bounds(listing.resource_type)
                        price = next_price(listing.price, change, min_price, max_price)
                        trend, percentage = classify_trend(change)
                        await UpdateData.update_listing(
                            listing.resource_type, price, trend.value, percentage, now, session
                        )
                        await CreateData.add_price_history(
                            MarketPriceHistory(resource_type=listing.resource_type, price=price, timestamp=now),
                            session,
                        )
                    listings = await ReadData.read_listings(session)
        except (GameError, SQLAlchemyError) as e:
            logging.error(f"Market price update failed: {e}")
            return []

        logging.info(
            "Market prices updated: " + ", ".join(f"{l.resource_type}={l.price}" for l in listings)
        )
        self.event_bus.publish_all("market_updated", {"listings": [l.model_dump() for l in listings]})
        return listings

    async def listings(self) -> List[MarketListingSchema]:
        async with self.Session() as session:
            return await ReadData.read_listings(session)

    async def listing(self, resource_type: TradeableResource) -> MarketListingSchema:
        async with self.Session() as session:
            listing = await ReadData.read_listing(TradeableResource(resource_type).value, session)
        if listing is None:
            raise NotFound(f"no market listing for {resource_type}")
        return listing

    async def price_history(
        self, days: int = 7, resource_type: Optional[TradeableResource] = None
    ) -> Dict[str, List[MarketPriceHistorySchema]]:
        since = self.clock() - timedelta(days=max(1, days))
        async with self.Session() as session:
            history = await ReadData.read_price_history(
                since, session, resource_type.value if resource_type else None
            )
        grouped: Dict[str, List[MarketPriceHistorySchema]] = {}
        for record in history:
            grouped.setdefault(record.resource_type, []).append(record)
        return grouped

    async def transactions(self, player_id: UUID, limit: int = 20) -> List[MarketTransactionSchema]:
        async with self.Session() as session:
            return await ReadData.read_transactions(player_id, session, limit)

    async def buy(self, player_id: UUID, resource_type: TradeableResource, quantity: int) -> TradeResultModel:
        return await self._trade(player_id, TradeableResource(resource_type), quantity, TransactionType.buy)

    async def sell(self, player_id: UUID, resource_type: TradeableResource, quantity: int) -> TradeResultModel:
        return await self._trade(player_id, TradeableResource(resource_type), quantity, TransactionType.sell)

    async def _trade(
        self,
        player_id: UUID,
        resource: TradeableResource,
        quantity: int,
        transaction_type: TransactionType,
    ) -> TradeResultModel:
        if quantity <= 0:
            raise InvalidRequest("quantity must be positive")
        async with self.Session() as session:
            player = await ReadData.read_player(player_id, session)
            listing = await ReadData.read_listing(resource.value, session)
        if player is None:
            raise NotFound("player not found")
        if listing is None:
            raise NotFound(f"no market listing for {resource.value}")

        total = listing.price * quantity
        held = getattr(player, resource.value)
        if transaction_type == TransactionType.buy:
            if player.money < total:
                raise InvalidRequest("not enough money for this purchase")
            if held + quantity > getattr(player, f"max_{resource.value}"):
                raise InvalidRequest("this purchase would exceed your maximum capacity")
            deltas = {"money": -total, resource.value: quantity}
        else:
            if held < quantity:
                raise InvalidRequest(f"not enough {resource.value} to sell")
            deltas = {"money": total, resource.value: -quantity}

        await self.resource_store.apply(player_id, deltas)
        try:
            async with self.Session() as session:
                async with session.begin():
                    await CreateData.add_market_transaction(
                        MarketTransaction(
                            player_id=player_id,
                            resource_type=resource.value,
                            quantity=quantity,
                            price=listing.price,
                            total_cost=total,
                            transaction_type=transaction_type.value,
                            timestamp=self.clock(),
                        ),
                        session,
                    )
        except (GameError, SQLAlchemyError) as e:
            logging.error(f"Failed to record {transaction_type.value} for player {player_id}, reverting: {e}")
            await self.resource_store.apply(player_id, {kind: -delta for kind, delta in deltas.items()})
            raise StorageError(f"failed to complete {transaction_type.value}") from e

        verb = "bought" if transaction_type == TransactionType.buy else "sold"
        message = f"You {verb} {quantity} {RESOURCE_LABELS[resource]} for ${total}."
        self.event_bus.publish_player(
            player_id, "notification", {"type": NotificationType.system.value, "message": message}
        )
        return TradeResultModel(
            resource_type=resource,
            quantity=quantity,
            price=listing.price,
            total_cost=total,
            transaction_type=transaction_type,
            message=message,
        )
