from uuid import UUID

from fastapi import APIRouter, Depends

from syndicate.authentication.bearer_authentication import bearer_auth
from syndicate.container import territory_service, travel_service
from syndicate.models.dc_models import (
    GameMessageModel,
    NotificationType,
    ResponseModel,
    TravelRequest,
)

travel_router = APIRouter(prefix="/api/travel", tags=["travel"])


class TravelAPI:
    @staticmethod
    @travel_router.get("/available", response_model=ResponseModel)
    async def get_available_regions(player_id: UUID = Depends(bearer_auth.check_player)):
        # every region is reachable
        return ResponseModel(data=await territory_service.list_regions())

    @staticmethod
    @travel_router.get("/current", response_model=ResponseModel)
    async def get_current_region(player_id: UUID = Depends(bearer_auth.check_player)):
        return ResponseModel(data=await travel_service.current_region(player_id))

    @staticmethod
    @travel_router.post("", response_model=ResponseModel)
    async def travel(request: TravelRequest, player_id: UUID = Depends(bearer_auth.check_player)):
        result = await travel_service.travel(player_id, request.region_id)
        return ResponseModel(
            data=result,
            game_message=GameMessageModel(type=NotificationType.travel.value, message=result.message),
        )

    @staticmethod
    @travel_router.get("/history", response_model=ResponseModel)
    async def get_travel_history(limit: int = 10, player_id: UUID = Depends(bearer_auth.check_player)):
        return ResponseModel(data=await travel_service.history(player_id, limit))
