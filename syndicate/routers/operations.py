from uuid import UUID

from fastapi import APIRouter, Depends

from syndicate.authentication.bearer_authentication import bearer_auth
from syndicate.container import operations_service
from syndicate.models.dc_models import (
    GameMessageModel,
    NotificationType,
    ResponseModel,
    StartOperationRequest,
)

operations_router = APIRouter(prefix="/api/operations", tags=["operations"])


class OperationAPI:
    @staticmethod
    @operations_router.get("", response_model=ResponseModel)
    async def get_available_operations(player_id: UUID = Depends(bearer_auth.check_player)):
        return ResponseModel(data=await operations_service.available_operations(player_id))

    @staticmethod
    @operations_router.get("/current", response_model=ResponseModel)
    async def get_current_operations(player_id: UUID = Depends(bearer_auth.check_player)):
        return ResponseModel(data=await operations_service.current_attempts(player_id))

    @staticmethod
    @operations_router.get("/completed", response_model=ResponseModel)
    async def get_completed_operations(player_id: UUID = Depends(bearer_auth.check_player)):
        return ResponseModel(data=await operations_service.completed_attempts(player_id))

    @staticmethod
    @operations_router.get("/refresh-info", response_model=ResponseModel)
    async def get_refresh_info(player_id: UUID = Depends(bearer_auth.check_player)):
        return ResponseModel(data=await operations_service.refresh_info())

    @staticmethod
    @operations_router.get("/{operation_id}", response_model=ResponseModel)
    async def get_operation(operation_id: UUID, player_id: UUID = Depends(bearer_auth.check_player)):
        return ResponseModel(data=await operations_service.get_operation(operation_id))


class AttemptAPI:
    @staticmethod
    @operations_router.post("/{operation_id}/start", response_model=ResponseModel)
    async def start_operation(
        operation_id: UUID,
        request: StartOperationRequest,
        player_id: UUID = Depends(bearer_auth.check_player),
    ):
        attempt, message = await operations_service.start(player_id, operation_id, request.resources)
        return ResponseModel(
            data=attempt,
            game_message=GameMessageModel(type=NotificationType.operation.value, message=message),
        )

    @staticmethod
    @operations_router.post("/{attempt_id}/collect", response_model=ResponseModel)
    async def collect_operation(attempt_id: UUID, player_id: UUID = Depends(bearer_auth.check_player)):
        """Resolve a finished attempt. The path id is the attempt id, not the operation id."""
        attempt = await operations_service.collect(player_id, attempt_id)
        return ResponseModel(
            data=attempt,
            game_message=GameMessageModel(
                type="success" if attempt.status == "completed" else "failure",
                message=attempt.result.message if attempt.result else "",
            ),
        )

    @staticmethod
    @operations_router.post("/{attempt_id}/cancel", response_model=ResponseModel)
    async def cancel_operation(attempt_id: UUID, player_id: UUID = Depends(bearer_auth.check_player)):
        attempt = await operations_service.cancel(player_id, attempt_id)
        return ResponseModel(
            data=attempt,
            game_message=GameMessageModel(
                type=NotificationType.operation.value,
                message=attempt.result.message if attempt.result else "",
            ),
        )
