import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from dashboard.app.core.config import settings
from dashboard.app.core.redis_client import close_redis, init_redis
from dashboard.app.core.state import build_dashboard
import dashboard.app.routers.health as health
import dashboard.app.routers.reservations as reservations
import dashboard.app.routers.tables as tables
import dashboard.app.routers.team as team


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_redis()
    app.state.dashboard = build_dashboard()
    logger.info("Dashboard ready for %s against %s", settings.DEMO_USER_EMAIL, settings.BACKEND_API_URL)
    try:
        yield
    finally:
        await app.state.dashboard.aclose()
        await close_redis()


app = FastAPI(
    title="Restaurant Dashboard API",
    lifespan=lifespan,
)

app.include_router(health.router, prefix=settings.API_PREFIX)
app.include_router(tables.router, prefix=settings.API_PREFIX)
app.include_router(reservations.router, prefix=settings.API_PREFIX)
app.include_router(team.router, prefix=settings.API_PREFIX)
