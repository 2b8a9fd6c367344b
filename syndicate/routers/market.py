from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from syndicate.authentication.bearer_authentication import bearer_auth
from syndicate.container import market_service
from syndicate.models.dc_models import (
    GameMessageModel,
    NotificationType,
    ResponseModel,
    TradeableResource,
    TradeRequest,
)

market_router = APIRouter(prefix="/api/market", tags=["market"])


class ListingAPI:
    @staticmethod
    @market_router.get("/listings", response_model=ResponseModel)
    async def get_listings(player_id: UUID = Depends(bearer_auth.check_player)):
        return ResponseModel(data=await market_service.listings())

    @staticmethod
    @market_router.get("/listings/{resource_type}", response_model=ResponseModel)
    async def get_listing(
        resource_type: TradeableResource, player_id: UUID = Depends(bearer_auth.check_player)
    ):
        return ResponseModel(data=await market_service.listing(resource_type))

    @staticmethod
    @market_router.get("/history", response_model=ResponseModel)
    async def get_price_history(
        days: int = 7,
        resource_type: Optional[TradeableResource] = None,
        player_id: UUID = Depends(bearer_auth.check_player),
    ):
        return ResponseModel(data=await market_service.price_history(days, resource_type))


class TradeAPI:
    @staticmethod
    @market_router.get("/transactions", response_model=ResponseModel)
    async def get_transactions(limit: int = 20, player_id: UUID = Depends(bearer_auth.check_player)):
        return ResponseModel(data=await market_service.transactions(player_id, limit))

    @staticmethod
    @market_router.post("/buy", response_model=ResponseModel)
    async def buy(request: TradeRequest, player_id: UUID = Depends(bearer_auth.check_player)):
        result = await market_service.buy(player_id, request.resource_type, request.quantity)
        return ResponseModel(
            data=result,
            game_message=GameMessageModel(type=NotificationType.system.value, message=result.message),
        )

    @staticmethod
    @market_router.post("/sell", response_model=ResponseModel)
    async def sell(request: TradeRequest, player_id: UUID = Depends(bearer_auth.check_player)):
        result = await market_service.sell(player_id, request.resource_type, request.quantity)
        return ResponseModel(
            data=result,
            game_message=GameMessageModel(type=NotificationType.system.value, message=result.message),
        )
