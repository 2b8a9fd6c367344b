"""Process-wide service instances shared by the routers, the scheduler and the CLIs."""

import numpy as np

from syndicate.config import load_game_config, load_operations_pool
from syndicate.db import Session
from syndicate.event_bus import EventBus
from syndicate.load_secrets import game_config_dir
from syndicate.services.income import IncomeEngine
from syndicate.services.market import MarketService
from syndicate.services.operations import OperationsService
from syndicate.services.players import PlayerService
from syndicate.services.resource_store import ResourceStore
from syndicate.services.territory import TerritoryService
from syndicate.services.travel import TravelService

game_config = load_game_config(game_config_dir)
operations_pool = load_operations_pool(game_config_dir)

# single randomness source for every roll in the process
rng = np.random.default_rng()

event_bus = EventBus(queue_size=game_config.mechanics.events.queue_size)
resource_store = ResourceStore(Session, event_bus)
player_service = PlayerService(Session, game_config.resource_limit)
territory_service = TerritoryService(Session, resource_store, event_bus, rng)
income_engine = IncomeEngine(Session, event_bus)
market_service = MarketService(Session, resource_store, event_bus, game_config.mechanics.market, rng)
operations_service = OperationsService(
    Session, resource_store, event_bus, game_config, operations_pool, rng
)
travel_service = TravelService(Session, resource_store, event_bus, game_config.mechanics.travel, rng)
