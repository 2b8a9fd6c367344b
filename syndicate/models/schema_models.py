from pydantic import BaseModel
from typing import Optional
from uuid import UUID
from datetime import datetime

from syndicate.models.dc_models import (
    ActionResources,
    ActionResultModel,
    OperationRequirements,
    OperationResources,
    OperationResultModel,
    OperationRewards,
    OperationRisks,
)


class PlayerSchema(BaseModel):
    id: UUID
    name: str
    title: str
    money: int
    crew: int
    max_crew: int
    weapons: int
    max_weapons: int
    vehicles: int
    max_vehicles: int
    respect: int
    influence: int
    heat: int
    current_region_id: Optional[UUID] = None
    last_travel_time: Optional[datetime] = None
    created_at: datetime
    last_active: datetime

    class Config:
        from_attributes = True


class PlayerProfileSchema(PlayerSchema):
    controlled_hotspots: int = 0
    total_hotspot_count: int = 0
    hourly_revenue: int = 0
    pending_collections: int = 0


class RegionSchema(BaseModel):
    id: UUID
    name: str

    class Config:
        from_attributes = True


class HotspotSchema(BaseModel):
    id: UUID
    city_id: Optional[UUID] = None
    name: str
    type: str
    business_type: str
    is_legal: bool
    controller_id: Optional[UUID] = None
    income: int
    pending_collection: int
    last_collection_time: Optional[datetime] = None
    last_income_time: Optional[datetime] = None
    crew: int
    weapons: int
    vehicles: int
    defense_strength: int

    class Config:
        from_attributes = True


class TerritoryActionSchema(BaseModel):
    id: UUID
    type: str
    player_id: UUID
    hotspot_id: UUID
    resources: ActionResources
    result: ActionResultModel
    timestamp: datetime

    class Config:
        from_attributes = True


class OperationSchema(BaseModel):
    id: UUID
    name: str
    description: str
    type: str
    is_special: bool
    is_active: bool
    requirements: OperationRequirements
    resources: OperationResources
    rewards: OperationRewards
    risks: OperationRisks
    duration: int
    success_rate: int
    available_until: datetime

    class Config:
        from_attributes = True


class OperationAttemptSchema(BaseModel):
    id: UUID
    operation_id: UUID
    player_id: UUID
    start_time: datetime
    resources: OperationResources
    status: str
    result: Optional[OperationResultModel] = None
    completion_time: Optional[datetime] = None
    notified: bool = False

    class Config:
        from_attributes = True


class MarketListingSchema(BaseModel):
    id: UUID
    resource_type: str
    price: int
    trend: str
    trend_percentage: int
    updated_at: datetime

    class Config:
        from_attributes = True


class MarketPriceHistorySchema(BaseModel):
    id: UUID
    resource_type: str
    price: int
    timestamp: datetime

    class Config:
        from_attributes = True


class MarketTransactionSchema(BaseModel):
    id: UUID
    player_id: UUID
    resource_type: str
    quantity: int
    price: int
    total_cost: int
    transaction_type: str
    timestamp: datetime

    class Config:
        from_attributes = True


class TravelAttemptSchema(BaseModel):
    id: UUID
    player_id: UUID
    from_region_id: Optional[UUID] = None
    to_region_id: UUID
    success: bool
    caught_by_police: bool
    fine_amount: int
    heat_change: int
    travel_cost: int
    timestamp: datetime

    class Config:
        from_attributes = True
