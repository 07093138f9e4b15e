import asyncio
import json
from collections.abc import Callable
from datetime import date

import httpx
import pytest

from dashboard.app.core.notifications import Notifier
from dashboard.app.models import Reservation, Table
from dashboard.app.services.api_client import BackendClient
from dashboard.app.services.reservations import ReservationStore
from dashboard.app.services.tables import TableLinkManager, TableRegistry


Responder = httpx.Response | Callable[[httpx.Request], httpx.Response]


class FakeBackend:
    """Backend API double served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Responder] = {}
        self.gate: asyncio.Event | None = None

    def route(self, method: str, path: str, responder: Responder) -> None:
        self.routes[(method, path)] = responder

    def json(self, method: str, path: str, body, status_code: int = 200) -> None:
        self.route(method, path, lambda request: httpx.Response(status_code, json=body))

    def hold(self) -> asyncio.Event:
        """Block every request until the returned event is set."""
        self.gate = asyncio.Event()
        return self.gate

    def sent(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    @staticmethod
    def body(request: httpx.Request):
        return json.loads(request.content)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        responder = self.routes.get((request.method, request.url.path))
        if responder is None:
            return httpx.Response(404, json={"message": "Not found"})
        if callable(responder):
            return responder(request)
        return responder

    def client(self) -> BackendClient:
        return BackendClient("http://backend.test", transport=httpx.MockTransport(self.handler))


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def registry() -> TableRegistry:
    return TableRegistry(
        [
            Table(id="T1", number=1, capacity=2),
            Table(id="T2", number=2, capacity=4),
            Table(id="T3", number=3, capacity=6, status="booked"),
            Table(id="T4", number=4, capacity=8, status="occupied"),
        ]
    )


@pytest.fixture
def links(registry: TableRegistry, notifier: Notifier) -> TableLinkManager:
    return TableLinkManager(registry, notifier)


def _reservation(reservation_id: str, **fields) -> Reservation:
    values = {
        "guest_name": "Ada Lovelace",
        "date": date(2025, 11, 5),
        "time": "19:00",
        "party_size": 2,
        "table_id": "T1",
        "status": "pending",
    }
    values.update(fields)
    return Reservation(id=reservation_id, **values)


@pytest.fixture
def make_reservation() -> Callable[..., Reservation]:
    return _reservation


@pytest.fixture
def store() -> ReservationStore:
    return ReservationStore(
        [
            _reservation("r1"),
            _reservation("r2", status="confirmed", guest_name="Grace Hopper"),
            _reservation("r3", status="seated"),
        ]
    )
