"""Game configuration loaded from YAML files.

The server reads ``game.yaml``, ``mechanics.yaml``, ``operations.yaml`` and
``territory.yaml`` from one directory at start-up and hands the validated
objects to the services.
"""

import logging
import os
from typing import Dict, List, Tuple

import yaml
from pydantic import BaseModel, Field

from syndicate.models.dc_models import (
    OperationRequirements,
    OperationResources,
    OperationRewards,
    OperationRisks,
    OperationType,
)


class ResourceLimitConfig(BaseModel):
    initial_money: int = 10000
    initial_crew: int = 5
    initial_weapons: int = 3
    initial_vehicles: int = 1
    initial_respect: int = 0
    initial_influence: int = 0
    initial_heat: int = 0
    max_crew: int = 25
    max_weapons: int = 30
    max_vehicles: int = 12


class MarketConfig(BaseModel):
    price_fluctuation_range: int = 5
    base_prices: Dict[str, int] = {"crew": 1000, "weapons": 1500, "vehicles": 5000}
    min_prices: Dict[str, int] = {"crew": 500, "weapons": 750, "vehicles": 2500}
    max_prices: Dict[str, int] = {"crew": 2000, "weapons": 3000, "vehicles": 10000}


class TravelConfig(BaseModel):
    base_cost: int = 1000
    base_catch_chance: float = 5.0
    heat_multiplier: float = 0.5
    max_catch_chance: float = 50.0
    base_fine_factor: float = 0.1
    minimum_fine: int = 500
    max_fine_percent: float = 0.3
    caught_heat_increase: int = 10
    success_heat_reduction: int = 5


class PlaceholderRanges(BaseModel):
    """Inclusive ranges used when the operations pool runs dry."""

    duration: Tuple[int, int] = (1800, 7200)
    success_rate: Tuple[int, int] = (40, 80)
    crew: Tuple[int, int] = (1, 5)
    weapons: Tuple[int, int] = (0, 4)
    vehicles: Tuple[int, int] = (0, 2)
    money: Tuple[int, int] = (0, 5000)
    reward_money: Tuple[int, int] = (2000, 15000)
    reward_respect: Tuple[int, int] = (1, 5)
    reward_influence: Tuple[int, int] = (0, 3)
    risk_crew_loss: Tuple[int, int] = (0, 3)
    risk_money_loss: Tuple[int, int] = (0, 2000)
    risk_heat_increase: Tuple[int, int] = (5, 15)


class OperationsMechanicsConfig(BaseModel):
    placeholder: PlaceholderRanges = PlaceholderRanges()


class EventsConfig(BaseModel):
    heartbeat_interval: float = 30.0
    queue_size: int = 256


class MechanicsConfig(BaseModel):
    market: MarketConfig = MarketConfig()
    travel: TravelConfig = TravelConfig()
    operations: OperationsMechanicsConfig = OperationsMechanicsConfig()
    events: EventsConfig = EventsConfig()


class GameConfig(BaseModel):
    daily_operations_count: int = 5
    special_operations_count: int = 2
    operations_refresh_interval: int = 60
    market_price_update_interval: int = 15
    operations_sweep_interval: int = 30
    income_tick_interval: int = 1
    token_lifetime_hours: int = 72
    resource_limit: ResourceLimitConfig = ResourceLimitConfig()
    mechanics: MechanicsConfig = MechanicsConfig()

    @property
    def market_interval_minutes(self) -> int:
        return max(1, self.market_price_update_interval)

    @property
    def refresh_interval_minutes(self) -> int:
        return max(1, self.operations_refresh_interval)


class OperationTemplate(BaseModel):
    name: str
    description: str = ""
    type: OperationType
    is_special: bool = False
    requirements: OperationRequirements = OperationRequirements()
    resources: OperationResources = OperationResources()
    rewards: OperationRewards = OperationRewards()
    risks: OperationRisks = OperationRisks()
    duration: int = Field(gt=0)
    success_rate: int = Field(ge=0, le=100)


class OperationsPool(BaseModel):
    basic_operations: List[OperationTemplate] = []
    special_operations: List[OperationTemplate] = []


class HotspotSeed(BaseModel):
    name: str
    type: str
    business_type: str = ""
    is_legal: bool = True
    income: int = 0


class CitySeed(BaseModel):
    name: str
    hotspots: List[HotspotSeed] = []


class DistrictSeed(BaseModel):
    name: str
    cities: List[CitySeed] = []


class RegionSeed(BaseModel):
    name: str
    districts: List[DistrictSeed] = []


class TerritorySeed(BaseModel):
    regions: List[RegionSeed] = []


def load_yaml(path: str) -> dict:
    """Read one YAML document, treating a missing file as empty.

    Args:
        path (str): file path

    Returns:
        dict: parsed mapping
    """
    if not os.path.isfile(path):
        logging.info(f"Config file {path} not found, using defaults")
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data or {}


def load_game_config(config_dir: str) -> GameConfig:
    game = load_yaml(os.path.join(config_dir, "game.yaml"))
    game["mechanics"] = load_yaml(os.path.join(config_dir, "mechanics.yaml"))
    config = GameConfig.model_validate(game)
    logging.info(
        f"Loaded game config: daily_operations={config.daily_operations_count} "
        f"special_operations={config.special_operations_count} "
        f"market_interval={config.market_interval_minutes}m"
    )
    return config


def load_operations_pool(config_dir: str) -> OperationsPool:
    return OperationsPool.model_validate(
        load_yaml(os.path.join(config_dir, "operations.yaml"))
    )


def load_territory_seed(config_dir: str) -> TerritorySeed:
    return TerritorySeed.model_validate(
        load_yaml(os.path.join(config_dir, "territory.yaml"))
    )
