from pydantic import BaseModel, Field
from enum import Enum
from uuid import UUID
from datetime import datetime
from typing import Any, Optional


class ResourceKind(str, Enum):
    money = "money"
    crew = "crew"
    weapons = "weapons"
    vehicles = "vehicles"
    respect = "respect"
    influence = "influence"
    heat = "heat"


class TradeableResource(str, Enum):
    crew = "crew"
    weapons = "weapons"
    vehicles = "vehicles"


class ActionKind(str, Enum):
    extortion = "extortion"
    takeover = "takeover"
    collection = "collection"
    defend = "defend"


class AttemptStatus(str, Enum):
    in_progress = "in_progress"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"


class Trend(str, Enum):
    up = "up"
    down = "down"
    stable = "stable"


class TransactionType(str, Enum):
    buy = "buy"
    sell = "sell"


class NotificationType(str, Enum):
    territory = "territory"
    operation = "operation"
    collection = "collection"
    heat = "heat"
    system = "system"
    travel = "travel"


class OperationType(str, Enum):
    carjacking = "carjacking"
    goods_smuggling = "goods_smuggling"
    drug_trafficking = "drug_trafficking"
    official_bribing = "official_bribing"
    intelligence_gathering = "intelligence_gathering"
    crew_recruitment = "crew_recruitment"


class ActionResources(BaseModel):
    crew: int = Field(0, ge=0)
    weapons: int = Field(0, ge=0)
    vehicles: int = Field(0, ge=0)


class ActionRequest(BaseModel):
    hotspot_id: UUID
    resources: ActionResources = ActionResources()


class ActionResultModel(BaseModel):
    success: bool = False
    money_gained: int = 0
    money_lost: int = 0
    crew_gained: int = 0
    crew_lost: int = 0
    weapons_gained: int = 0
    weapons_lost: int = 0
    vehicles_gained: int = 0
    vehicles_lost: int = 0
    respect_gained: int = 0
    respect_lost: int = 0
    influence_gained: int = 0
    heat_generated: int = 0
    message: str = ""


class OperationRequirements(BaseModel):
    min_influence: int = 0
    max_heat: int = 0  # 0 means no heat ceiling
    min_title: str = ""


class OperationResources(BaseModel):
    crew: int = Field(0, ge=0)
    weapons: int = Field(0, ge=0)
    vehicles: int = Field(0, ge=0)
    money: int = Field(0, ge=0)


class OperationRewards(BaseModel):
    money: int = 0
    crew: int = 0
    weapons: int = 0
    vehicles: int = 0
    respect: int = 0
    influence: int = 0
    heat_reduction: int = 0


class OperationRisks(BaseModel):
    crew_loss: int = 0
    weapons_loss: int = 0
    vehicles_loss: int = 0
    money_loss: int = 0
    heat_increase: int = 0


class OperationResultModel(BaseModel):
    success: bool = False
    money_gained: int = 0
    money_lost: int = 0
    crew_gained: int = 0
    crew_lost: int = 0
    weapons_gained: int = 0
    weapons_lost: int = 0
    vehicles_gained: int = 0
    vehicles_lost: int = 0
    respect_gained: int = 0
    influence_gained: int = 0
    heat_generated: int = 0
    heat_reduced: int = 0
    message: str = ""


class StartOperationRequest(BaseModel):
    resources: OperationResources = OperationResources()


class TradeRequest(BaseModel):
    resource_type: TradeableResource
    quantity: int = Field(gt=0)


class TradeResultModel(BaseModel):
    resource_type: TradeableResource
    quantity: int
    price: int
    total_cost: int
    transaction_type: TransactionType
    message: str


class TravelRequest(BaseModel):
    region_id: UUID


class TravelResultModel(BaseModel):
    success: bool
    region_id: UUID
    region_name: str
    travel_cost: int = 0
    caught_by_police: bool = False
    fine_amount: int = 0
    heat_change: int = 0
    message: str = ""


class CollectResultModel(BaseModel):
    collected_amount: int
    hotspots_count: int
    message: str


class RefreshInfoModel(BaseModel):
    refresh_interval: int  # minutes
    last_refresh_time: Optional[datetime] = None
    next_refresh_time: Optional[datetime] = None


class GameMessageModel(BaseModel):
    type: str
    message: str


class ResponseModel(BaseModel):
    success: bool = True
    data: Optional[Any] = None
    game_message: Optional[GameMessageModel] = None
