import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.app.core.config import settings, setup_logging
from backend.app.core.redis_client import close_redis, init_redis
from backend.app.db.session import engine
import backend.app.routers.availability as availability
import backend.app.routers.health as health
import backend.app.routers.reservations as reservations
import backend.app.routers.tables as tables


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await init_redis()
    logger.info(
        "Taking bookings %s-%s every %d minutes",
        settings.SERVICE_OPEN,
        settings.SERVICE_CLOSE,
        settings.SLOT_INTERVAL_MINUTES,
    )
    try:
        yield
    finally:
        await close_redis()
        await engine.dispose()


app = FastAPI(
    title="Bistro Reservations API",
    description="Reservation intake and best-fit table allocation.",
    lifespan=lifespan,
)

app.include_router(health.router, prefix=settings.API_PREFIX)
app.include_router(availability.router, prefix=settings.API_PREFIX)
app.include_router(reservations.router, prefix=settings.API_PREFIX)
app.include_router(tables.router, prefix=settings.API_PREFIX)
