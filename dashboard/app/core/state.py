from __future__ import annotations

from fastapi import Request

from dashboard.app.core import redis_client as redis_module
from dashboard.app.core.cache import Cache, MemoryCache, RedisCache
from dashboard.app.core.notifications import Notifier
from dashboard.app.services.api_client import BackendClient
from dashboard.app.services.feeds import ReservationFeed, TableFeed
from dashboard.app.services.optimistic import InFlight
from dashboard.app.services.reservations import (
    ReservationEditor,
    ReservationStatusMachine,
    ReservationStore,
)
from dashboard.app.services.tables import TableLinkManager, TableRegistry
from dashboard.app.services.team import TeamService


class Dashboard:
    """Every component the command API works with, wired to one backend client."""

    def __init__(self, client: BackendClient, cache: Cache | None = None) -> None:
        self.client = client
        self.cache = cache if cache is not None else MemoryCache()
        self.notifier = Notifier()
        self.inflight = InFlight()

        self.tables = TableRegistry()
        self.links = TableLinkManager(self.tables, self.notifier)
        self.table_feed = TableFeed(client, self.cache, self.tables, self.notifier)

        self.reservations = ReservationStore()
        self.status = ReservationStatusMachine(self.reservations, client, self.notifier, self.inflight)
        self.editor = ReservationEditor(self.reservations, client, self.notifier, self.tables, self.inflight)
        self.reservation_feed = ReservationFeed(
            client, self.cache, self.reservations, self.notifier, self.tables
        )

        self.team = TeamService(client)

    async def aclose(self) -> None:
        await self.inflight.drain()
        await self.client.aclose()


def build_dashboard(client: BackendClient | None = None) -> Dashboard:
    cache: Cache
    if redis_module.redis_client is not None:
        cache = RedisCache(redis_module.redis_client)
    else:
        cache = MemoryCache()
    return Dashboard(client or BackendClient(), cache)


def get_dashboard(request: Request) -> Dashboard:
    """Dashboard built by the application lifespan."""
    return request.app.state.dashboard
