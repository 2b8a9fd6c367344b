"""Tests for the resource market."""
import numpy as np
import pytest

from syndicate.errors import InvalidRequest
from syndicate.models.dc_models import TradeableResource, TransactionType, Trend
from syndicate.services.market import MarketService

from helpers import drain, reload_player


class TestPriceUpdates:
    @pytest.mark.asyncio
    async def test_first_update_creates_listings(self, market, rng):
        # listings are visited in resource order: crew, vehicles, weapons
        rng.script(uniforms=[0.05, -0.02, 0.0])

        listings = await market.update_prices()

        by_type = {l.resource_type: l for l in listings}
        assert set(by_type) == {"crew", "weapons", "vehicles"}
        assert (by_type["crew"].price, by_type["crew"].trend, by_type["crew"].trend_percentage) == (
            1050, Trend.up.value, 5
        )
        assert (by_type["vehicles"].price, by_type["vehicles"].trend) == (4900, Trend.down.value)
        assert (by_type["weapons"].price, by_type["weapons"].trend) == (1500, Trend.stable.value)

    @pytest.mark.asyncio
    async def test_history_records_every_price(self, market):
        await market.update_prices()
        await market.update_prices()

        history = await market.price_history(days=7)
        assert set(history) == {"crew", "weapons", "vehicles"}
        assert all(len(records) == 3 for records in history.values())

        crew_only = await market.price_history(days=7, resource_type=TradeableResource.crew)
        assert list(crew_only) == ["crew"]

    @pytest.mark.asyncio
    async def test_prices_stay_within_fluctuation_range(
        self, Session, resource_store, event_bus, game_config, clock
    ):
        config = game_config.mechanics.market
        service = MarketService(
            Session, resource_store, event_bus, config, np.random.default_rng(11), clock
        )
        previous = {l.resource_type: l.price for l in await service.update_prices()}
        for _ in range(20):
            listings = await service.update_prices()
            for listing in listings:
                old = previous[listing.resource_type]
                assert old * 0.95 - 1 <= listing.price <= old * 1.05 + 1
                assert config.min_prices[listing.resource_type] <= listing.price
                assert listing.price <= config.max_prices[listing.resource_type]
                previous[listing.resource_type] = listing.price

    @pytest.mark.asyncio
    async def test_market_updated_is_broadcast(self, market, event_bus, make_player):
        player = await make_player()
        subscription = await event_bus.subscribe(player.id)
        drain(subscription)

        await market.update_prices()

        assert [event for event, _ in drain(subscription)] == ["market_updated"]


class TestTrading:
    @pytest.mark.asyncio
    async def test_buy(self, Session, market, make_player):
        player = await make_player()
        await market.update_prices()

        result = await market.buy(player.id, TradeableResource.crew, 2)

        assert (result.price, result.total_cost) == (1000, 2000)
        assert result.transaction_type == TransactionType.buy
        assert result.message == "You bought 2 crew members for $2000."
        stored = await reload_player(Session, player.id)
        assert (stored.money, stored.crew) == (8000, 7)

    @pytest.mark.asyncio
    async def test_sell(self, Session, market, make_player):
        player = await make_player()
        await market.update_prices()

        result = await market.sell(player.id, TradeableResource.weapons, 2)

        assert result.total_cost == 3000
        stored = await reload_player(Session, player.id)
        assert (stored.money, stored.weapons) == (13000, 1)

    @pytest.mark.asyncio
    async def test_buy_without_money(self, Session, market, make_player):
        player = await make_player(money=500)
        await market.update_prices()
        with pytest.raises(InvalidRequest, match="not enough money"):
            await market.buy(player.id, TradeableResource.crew, 1)
        assert (await reload_player(Session, player.id)).crew == 5

    @pytest.mark.asyncio
    async def test_buy_beyond_capacity(self, market, make_player):
        player = await make_player(money=100000, crew=24)
        await market.update_prices()
        with pytest.raises(InvalidRequest, match="maximum capacity"):
            await market.buy(player.id, TradeableResource.crew, 2)

    @pytest.mark.asyncio
    async def test_sell_more_than_held(self, market, make_player):
        player = await make_player()
        await market.update_prices()
        with pytest.raises(InvalidRequest, match="not enough vehicles"):
            await market.sell(player.id, TradeableResource.vehicles, 2)

    @pytest.mark.asyncio
    async def test_transactions_are_recorded(self, market, clock, make_player):
        player = await make_player()
        await market.update_prices()
        await market.buy(player.id, TradeableResource.vehicles, 1)
        clock.advance(seconds=1)
        await market.sell(player.id, TradeableResource.crew, 1)

        transactions = await market.transactions(player.id)
        assert [t.transaction_type for t in transactions] == ["sell", "buy"]
        assert transactions[1].total_cost == 5000
