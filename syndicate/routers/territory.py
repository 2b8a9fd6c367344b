from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from syndicate.authentication.bearer_authentication import bearer_auth
from syndicate.container import territory_service
from syndicate.models.dc_models import (
    ActionKind,
    ActionRequest,
    GameMessageModel,
    NotificationType,
    ResponseModel,
)

territory_router = APIRouter(prefix="/api/territory", tags=["territory"])


class RegionAPI:
    @staticmethod
    @territory_router.get("/regions", response_model=ResponseModel)
    async def get_regions(player_id: UUID = Depends(bearer_auth.check_player)):
        return ResponseModel(data=await territory_service.list_regions())


class HotspotAPI:
    @staticmethod
    @territory_router.get("/hotspots", response_model=ResponseModel)
    async def get_hotspots(
        city_id: Optional[UUID] = None, player_id: UUID = Depends(bearer_auth.check_player)
    ):
        return ResponseModel(data=await territory_service.list_hotspots(city_id))

    @staticmethod
    @territory_router.get("/hotspots/controlled", response_model=ResponseModel)
    async def get_controlled_hotspots(player_id: UUID = Depends(bearer_auth.check_player)):
        return ResponseModel(data=await territory_service.controlled_hotspots(player_id))

    @staticmethod
    @territory_router.post("/hotspots/collect-all", response_model=ResponseModel)
    async def collect_all(player_id: UUID = Depends(bearer_auth.check_player)):
        result = await territory_service.collect_all(player_id)
        return ResponseModel(
            data=result,
            game_message=GameMessageModel(type=NotificationType.collection.value, message=result.message),
        )

    @staticmethod
    @territory_router.get("/hotspots/{hotspot_id}", response_model=ResponseModel)
    async def get_hotspot(hotspot_id: UUID, player_id: UUID = Depends(bearer_auth.check_player)):
        return ResponseModel(data=await territory_service.get_hotspot(hotspot_id))

    @staticmethod
    @territory_router.post("/hotspots/{hotspot_id}/collect", response_model=ResponseModel)
    async def collect_hotspot(hotspot_id: UUID, player_id: UUID = Depends(bearer_auth.check_player)):
        result = await territory_service.collect_hotspot(player_id, hotspot_id)
        return ResponseModel(
            data=result,
            game_message=GameMessageModel(type=NotificationType.collection.value, message=result.message),
        )


class ActionAPI:
    @staticmethod
    @territory_router.get("/actions", response_model=ResponseModel)
    async def get_recent_actions(player_id: UUID = Depends(bearer_auth.check_player)):
        return ResponseModel(data=await territory_service.recent_actions(player_id))

    @staticmethod
    @territory_router.post("/actions/{action_kind}", response_model=ResponseModel)
    async def perform_action(
        action_kind: ActionKind,
        request: ActionRequest,
        player_id: UUID = Depends(bearer_auth.check_player),
    ):
        """Resolve an extortion, takeover, collection or defend action

        Args:
            action_kind (ActionKind): which action to perform
            request (ActionRequest): target hotspot and committed crew, weapons and vehicles
        """
        result = await territory_service.perform(
            player_id, action_kind, request.hotspot_id, request.resources
        )
        return ResponseModel(
            data=result,
            game_message=GameMessageModel(
                type="success" if result.success else "failure", message=result.message
            ),
        )
