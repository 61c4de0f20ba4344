from contextlib import asynccontextmanager

from fastapi import FastAPI

from fieldbook.app.core.config import settings
from fieldbook.app.core.logging import configure_logging
from fieldbook.app.core.redis_client import close_redis, init_redis
from fieldbook.app.routers.deps import close_notifier, default_grid, init_notifier
import fieldbook.app.routers.availability as availability
import fieldbook.app.routers.exceptions as exceptions
import fieldbook.app.routers.health as health
import fieldbook.app.routers.reminders as reminders
import fieldbook.app.routers.reservations as reservations


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    # Fail fast on a broken slot window
    default_grid()
    await init_redis()
    await init_notifier()
    try:
        yield
    finally:
        await close_notifier()
        await close_redis()


app = FastAPI(
    title="Field Booking API",
    lifespan=lifespan,
)

app.include_router(health.router, prefix=settings.API_PREFIX)
app.include_router(availability.router, prefix=settings.API_PREFIX)
app.include_router(reservations.router, prefix=settings.API_PREFIX)
app.include_router(exceptions.router, prefix=settings.API_PREFIX)
app.include_router(reminders.router, prefix=settings.API_PREFIX)
