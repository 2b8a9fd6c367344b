from apscheduler.schedulers.asyncio import AsyncIOScheduler
import logging
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from syndicate.authentication.bearer_authentication import bearer_auth
from syndicate.container import (
    event_bus,
    game_config,
    income_engine,
    market_service,
    operations_service,
    territory_service,
)
from syndicate.create_postgres_engine import engine
from syndicate.crud import CreateData
from syndicate.errors import GameError
from syndicate.routers import market, operations, player, sse, territory, travel

scheduler = AsyncIOScheduler()
logging.basicConfig(level=logging.INFO)
logging.getLogger("aiosqlite").setLevel(logging.WARNING)
logging.getLogger("apscheduler").setLevel(logging.WARNING)


async def refresh_operations_and_territory() -> None:
    await operations_service.refresh_operations()
    await territory_service.refresh_illegal()


@asynccontextmanager
async def lifespan(app):
    """Prepare the world and start every background loop.
    This function is called to start the server.
    """
    await CreateData.create_table(engine)
    await territory_service.refresh_illegal()
    await market_service.update_prices()
    await operations_service.refresh_operations()

    jobs = (
        (income_engine.tick, {"seconds": game_config.income_tick_interval}),
        (market_service.update_prices, {"minutes": game_config.market_interval_minutes}),
        (operations_service.notify_ready, {"seconds": game_config.operations_sweep_interval}),
        (refresh_operations_and_territory, {"minutes": game_config.refresh_interval_minutes}),
        # expired tokens are useless, drop them once a day
        (bearer_auth.delete_expired_tokens, {"hours": 24}),
    )
    for job, interval in jobs:
        scheduler.add_job(job, "interval", max_instances=1, coalesce=True, **interval)
    scheduler.start()
    try:
        yield
    finally:
        scheduler.shutdown()
        await event_bus.close()
        logging.info("Stop Server")


app = FastAPI(lifespan=lifespan)


@app.exception_handler(GameError)
async def game_error_handler(request: Request, exc: GameError):
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logging.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": {"code": exc.code, "message": exc.message}},
    )


app.include_router(player.player_router)
app.include_router(territory.territory_router)
app.include_router(operations.operations_router)
app.include_router(market.market_router)
app.include_router(travel.travel_router)
app.include_router(sse.sse_router)
