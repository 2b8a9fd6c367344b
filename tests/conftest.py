"""Pytest fixtures for syndicate tests."""
import os
import tempfile
from datetime import timedelta

# the API tests import the app, whose engine is built from DATABASE_URL at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.mkdtemp(prefix="syndicate-"), "api.sqlite3"
)

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from syndicate.config import GameConfig, OperationsPool, OperationTemplate
from syndicate.crud import CreateData
from syndicate.domain.territory_rules import defense_strength
from syndicate.event_bus import EventBus
from syndicate.models.dc_models import OperationType
from syndicate.models.schemas import Hotspot, Operation, Player, Region
from syndicate.services.income import IncomeEngine
from syndicate.services.market import MarketService
from syndicate.services.operations import OperationsService
from syndicate.services.players import PlayerService
from syndicate.services.resource_store import ResourceStore
from syndicate.services.territory import TerritoryService
from syndicate.services.travel import TravelService

from helpers import FakeClock, ScriptedRng


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return ScriptedRng()


@pytest.fixture
def game_config():
    return GameConfig()


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'game.sqlite3'}")
    await CreateData.create_table(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def Session(engine):
    return async_sessionmaker(
        class_=AsyncSession, autoflush=True, expire_on_commit=False, bind=engine
    )


@pytest.fixture
def event_bus(clock):
    return EventBus(queue_size=16, clock=clock)


@pytest.fixture
def resource_store(Session, event_bus, clock):
    return ResourceStore(Session, event_bus, clock)


@pytest.fixture
def territory(Session, resource_store, event_bus, rng, clock):
    return TerritoryService(Session, resource_store, event_bus, rng, clock)


@pytest.fixture
def income(Session, event_bus, clock):
    return IncomeEngine(Session, event_bus, clock)


@pytest.fixture
def market(Session, resource_store, event_bus, game_config, rng, clock):
    return MarketService(Session, resource_store, event_bus, game_config.mechanics.market, rng, clock)


@pytest.fixture
def operations_pool():
    return OperationsPool(
        basic_operations=[
            OperationTemplate(
                name="Chop Shop Run",
                type=OperationType.carjacking,
                resources={"crew": 2, "weapons": 1, "vehicles": 0, "money": 0},
                rewards={"money": 3000, "vehicles": 1, "respect": 2},
                risks={"crew_loss": 1, "heat_increase": 5},
                duration=1800,
                success_rate=60,
            ),
            OperationTemplate(
                name="Harbor Contraband",
                type=OperationType.goods_smuggling,
                resources={"crew": 3, "weapons": 0, "vehicles": 1, "money": 1000},
                rewards={"money": 6000, "respect": 3},
                risks={"money_loss": 1000, "heat_increase": 8},
                duration=3600,
                success_rate=55,
            ),
        ],
        special_operations=[
            OperationTemplate(
                name="City Hall Arrangement",
                type=OperationType.official_bribing,
                is_special=True,
                requirements={"min_influence": 10, "max_heat": 50, "min_title": "Soldier"},
                resources={"crew": 1, "money": 5000},
                rewards={"influence": 5, "heat_reduction": 20},
                risks={"heat_increase": 15},
                duration=7200,
                success_rate=50,
            ),
        ],
    )


@pytest.fixture
def operations(Session, resource_store, event_bus, game_config, operations_pool, rng, clock):
    return OperationsService(
        Session, resource_store, event_bus, game_config, operations_pool, rng, clock
    )


@pytest.fixture
def travel(Session, resource_store, event_bus, game_config, rng, clock):
    return TravelService(Session, resource_store, event_bus, game_config.mechanics.travel, rng, clock)


@pytest.fixture
def players(Session, game_config, clock):
    return PlayerService(Session, game_config.resource_limit, clock)


@pytest.fixture
def make_player(Session, clock):
    """Insert a player row; keyword arguments override the starting values."""
    counter = {"n": 0}

    async def factory(**overrides) -> Player:
        counter["n"] += 1
        values = dict(
            name=f"player-{counter['n']}",
            title="Associate",
            money=10000,
            crew=5,
            weapons=3,
            vehicles=1,
            respect=0,
            influence=0,
            heat=0,
            created_at=clock(),
            last_active=clock(),
        )
        values.update(overrides)
        player = Player(**values)
        async with Session() as session:
            async with session.begin():
                session.add(player)
        return player

    return factory


@pytest.fixture
def make_hotspot(Session):
    counter = {"n": 0}

    async def factory(**overrides) -> Hotspot:
        counter["n"] += 1
        values = dict(
            name=f"hotspot-{counter['n']}",
            type="shop",
            business_type="retail",
            is_legal=True,
            income=200,
            pending_collection=0,
            crew=0,
            weapons=0,
            vehicles=0,
        )
        values.update(overrides)
        values["defense_strength"] = defense_strength(values["crew"], values["weapons"], values["vehicles"])
        hotspot = Hotspot(**values)
        async with Session() as session:
            async with session.begin():
                session.add(hotspot)
        return hotspot

    return factory


@pytest.fixture
def make_region(Session):
    async def factory(name: str) -> Region:
        region = Region(name=name)
        async with Session() as session:
            async with session.begin():
                session.add(region)
        return region

    return factory


@pytest.fixture
def make_operation(Session, clock):
    async def factory(**overrides) -> Operation:
        values = dict(
            name="Chop Shop Run",
            description="",
            type=OperationType.carjacking.value,
            is_special=False,
            is_active=True,
            requirements={"min_influence": 0, "max_heat": 0, "min_title": ""},
            resources={"crew": 4, "weapons": 2, "vehicles": 2, "money": 1000},
            rewards={"money": 5000, "crew": 0, "weapons": 0, "vehicles": 0, "respect": 3,
                     "influence": 1, "heat_reduction": 0},
            risks={"crew_loss": 2, "weapons_loss": 0, "vehicles_loss": 0, "money_loss": 500,
                   "heat_increase": 10},
            duration=1800,
            success_rate=60,
            available_until=clock() + timedelta(hours=24),
            created_at=clock(),
        )
        values.update(overrides)
        operation = Operation(**values)
        async with Session() as session:
            async with session.begin():
                session.add(operation)
        return operation

    return factory

