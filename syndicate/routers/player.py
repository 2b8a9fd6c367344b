from uuid import UUID

from fastapi import APIRouter, Depends

from syndicate.authentication.bearer_authentication import bearer_auth
from syndicate.container import player_service, territory_service
from syndicate.models.dc_models import GameMessageModel, NotificationType, ResponseModel

player_router = APIRouter(prefix="/api/player", tags=["player"])


class PlayerAPI:
    @staticmethod
    @player_router.get("/profile", response_model=ResponseModel)
    async def get_profile(player_id: UUID = Depends(bearer_auth.check_player)):
        return ResponseModel(data=await player_service.profile(player_id))

    @staticmethod
    @player_router.post("/collect-all", response_model=ResponseModel)
    async def collect_all_pending(player_id: UUID = Depends(bearer_auth.check_player)):
        result = await territory_service.collect_all(player_id)
        return ResponseModel(
            data=result,
            game_message=GameMessageModel(type=NotificationType.collection.value, message=result.message),
        )
