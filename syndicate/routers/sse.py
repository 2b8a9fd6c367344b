from uuid import UUID

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from syndicate.authentication.bearer_authentication import bearer_auth
from syndicate.container import event_bus, game_config
from syndicate.sse_subscriber import EventSubscriber

sse_router = APIRouter(prefix="/api", tags=["events"])


class EventStreamAPI:
    @staticmethod
    @sse_router.get("/sse")
    async def stream_events(request: Request, player_id: UUID = Depends(bearer_auth.check_stream_player)):
        subscriber = EventSubscriber(
            event_bus, player_id, game_config.mechanics.events.heartbeat_interval
        )
        return StreamingResponse(
            subscriber.event_generator(request),
            media_type="text/event-stream; charset=utf-8",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )
