from fastapi import APIRouter, Depends, HTTPException
from redis.exceptions import RedisError

from dashboard.app.core import redis_client as redis_module
from dashboard.app.core.errors import NetworkError
from dashboard.app.core.state import Dashboard, get_dashboard
from dashboard.app.routers.schemas import NotificationsOut


router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, bool]:
    """Basic liveness probe."""
    return {"ok": True}


@router.get("/readiness")
async def readiness(dashboard: Dashboard = Depends(get_dashboard)) -> dict[str, bool]:
    """Ensure the backend API and, when configured, Redis are reachable."""
    try:
        await dashboard.client.ping()
    except NetworkError as exc:
        raise HTTPException(status_code=503, detail="Backend unavailable") from exc

    if redis_module.redis_client is not None:
        try:
            await redis_module.redis_client.ping()
        except RedisError as exc:
            raise HTTPException(status_code=503, detail="Redis unavailable") from exc

    return {"ready": True}


@router.get("/notifications", response_model=NotificationsOut)
async def drain_notifications(dashboard: Dashboard = Depends(get_dashboard)) -> NotificationsOut:
    return NotificationsOut(notifications=dashboard.notifier.drain())
