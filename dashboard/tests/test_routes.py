from datetime import date, datetime

import pytest
from httpx import ASGITransport, AsyncClient

from dashboard.app.core.state import Dashboard, get_dashboard
from dashboard.app.main import app
from dashboard.app.models import Reservation


pytestmark = pytest.mark.asyncio(loop_scope="module")

TABLES = [
    {"_id": "T1", "name": "Table 1", "capacity": 2, "status": "empty"},
    {"_id": "T2", "name": "Table 2", "capacity": 4, "status": "empty"},
    {"_id": "T3", "name": "Table 3", "capacity": 6, "status": "booked"},
]


@pytest.fixture
def dashboard(backend):
    dashboard = Dashboard(backend.client())
    dashboard.reservations.load(
        [
            Reservation(id="r1", guest_name="Ada Lovelace", date=date(2025, 11, 5), time="19:00", party_size=2, table_id="T1", status="confirmed"),
        ]
    )
    app.dependency_overrides[get_dashboard] = lambda: dashboard
    yield dashboard
    app.dependency_overrides.clear()


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def test_health_endpoints(dashboard):
    async with _client() as client:
        health = await client.get("/api/v1/healthz")
        readiness = await client.get("/api/v1/readiness")

    assert health.status_code == 200
    assert health.json() == {"ok": True}
    assert readiness.status_code == 200
    assert readiness.json() == {"ready": True}


async def test_link_tables_flow(dashboard, backend):
    backend.json("GET", "/api/tables/optimized", {"availableTables": TABLES})

    async with _client() as client:
        listing = await client.get("/api/v1/tables")
        assert listing.status_code == 200, listing.text
        assert [t["id"] for t in listing.json()["tables"]] == ["T1", "T2", "T3"]

        await client.post("/api/v1/tables/link-mode")
        await client.post("/api/v1/tables/T1/select")
        selected = await client.post("/api/v1/tables/T3/select")
        assert selected.json()["selection"] == ["T1", "T3"]
        assert selected.json()["selection_capacity"] == 8

        linked = await client.post("/api/v1/tables/link", json={})
        assert linked.status_code == 200, linked.text
        assert linked.json() == {"table_ids": ["T1", "T3"], "combined_capacity": 8}

        tables = (await client.get("/api/v1/tables")).json()
        first = tables["tables"][0]
        assert tables["link_mode"] is False
        assert first["linked_with"] == ["T3"]
        assert first["effective_capacity"] == 8
        assert first["display_name"] == "Tables 1 + 3"
        assert first["size_class"] == "xlarge"

        unlinked = await client.post("/api/v1/tables/T3/unlink")
        assert unlinked.json() == {"unlinked": ["T1", "T3"]}

    assert len(backend.requests) == 1


async def test_link_single_table_is_rejected(dashboard):
    async with _client() as client:
        response = await client.post("/api/v1/tables/link", json={"table_ids": ["T1"]})

    assert response.status_code == 422
    assert response.json()["detail"] == "Please select at least two tables to link."


async def test_complete_reservation_with_bill(dashboard, backend):
    backend.json("PUT", "/api/reservations/r1", {"id": "r1"})

    async with _client() as client:
        pending = await client.put("/api/v1/reservations/r1/status", json={"status": "completed"})
        assert pending.status_code == 202
        assert pending.json() == {"id": "r1", "status": "confirmed", "bill_amount": None, "awaiting_bill": True}

        invalid = await client.post("/api/v1/reservations/r1/bill", json={"amount": "abc"})
        assert invalid.status_code == 422

        completed = await client.post("/api/v1/reservations/r1/bill", json={"amount": "125.50"})
        assert completed.status_code == 200
        assert completed.json() == {"id": "r1", "status": "completed", "bill_amount": 125.5, "awaiting_bill": False}

    await dashboard.inflight.drain()
    (request,) = backend.sent("PUT", "/api/reservations/r1")
    body = backend.body(request)
    assert body["status"] == "completed"
    assert body["total_amount"] == 125.5
    assert datetime.fromisoformat(body["end_time"]).tzinfo is not None


async def test_status_rollback_is_visible_after_drain(dashboard, backend):
    backend.json("PUT", "/api/reservations/r1", {"message": "Reservation is locked"}, status_code=409)

    async with _client() as client:
        response = await client.put("/api/v1/reservations/r1/status", json={"status": "cancelled"})
        assert response.json()["status"] == "cancelled"

        await dashboard.inflight.drain()

        detail = await client.get("/api/v1/reservations/r1")
        notifications = (await client.get("/api/v1/notifications")).json()["notifications"]

    assert detail.json()["status"] == "confirmed"
    assert notifications[-1]["title"] == "Failed to update reservation"
    assert notifications[-1]["description"] == "Reservation is locked"


async def test_seated_status_is_rejected(dashboard):
    async with _client() as client:
        response = await client.put("/api/v1/reservations/r1/status", json={"status": "seated"})

    assert response.status_code == 422


async def test_unknown_reservation_commands_are_noops(dashboard, backend):
    async with _client() as client:
        status = await client.put("/api/v1/reservations/missing/status", json={"status": "cancelled"})
        bill = await client.post("/api/v1/reservations/missing/bill", json={"amount": "10"})
        detail = await client.get("/api/v1/reservations/missing")

    assert status.status_code == 204
    assert bill.status_code == 204
    assert detail.status_code == 404
    assert backend.requests == []


async def test_detail_selection(dashboard):
    async with _client() as client:
        detail = await client.get("/api/v1/reservations/r1")
        assert dashboard.reservations.selected.id == "r1"

        closed = await client.delete("/api/v1/reservations/selection")

    assert detail.json()["guest_name"] == "Ada Lovelace"
    assert closed.status_code == 204
    assert dashboard.reservations.selected is None


async def test_list_reservations_with_filters(dashboard):
    async with _client() as client:
        response = await client.get("/api/v1/reservations", params={"status": "confirmed", "start": "2025-11-05"})

    (record,) = response.json()
    assert record["id"] == "r1"
    assert record["guest_initials"] == "AL"
    assert record["table_name"] == "Unknown Table"


async def test_notifications_drain(dashboard):
    dashboard.notifier.notify("Hello", "World")

    async with _client() as client:
        first = await client.get("/api/v1/notifications")
        second = await client.get("/api/v1/notifications")

    assert first.json()["notifications"] == [{"title": "Hello", "description": "World", "variant": "default"}]
    assert second.json()["notifications"] == []


async def test_team_list_unwraps_envelope(dashboard, backend):
    backend.json(
        "GET",
        "/api/team",
        {
            "success": True,
            "data": [
                {"_id": "m1", "name": "Sam Cook", "role": "chef", "email": "sam@example.com", "loginStatus": "inactive"},
            ],
        },
    )

    async with _client() as client:
        response = await client.get("/api/v1/team", params={"role": "chef"})

    assert response.status_code == 200, response.text
    (member,) = response.json()
    assert member["id"] == "m1"
    assert member["login_status"] == "inactive"
    assert backend.requests[0].url.params["role"] == "chef"


async def test_team_failure_maps_status(dashboard, backend):
    backend.json("POST", "/api/team", {"success": False, "message": "Email already exists"}, status_code=400)

    async with _client() as client:
        response = await client.post("/api/v1/team", json={"name": "Sam", "role": "chef", "email": "sam@example.com"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Email already exists"


async def test_edit_with_null_required_field_is_rejected(dashboard, backend):
    async with _client() as client:
        response = await client.patch("/api/v1/reservations/r1", json={"guest_name": None})
        listing = await client.get("/api/v1/reservations")

    assert response.status_code == 422
    assert listing.status_code == 200
    assert listing.json()[0]["guest_name"] == "Ada Lovelace"
    assert backend.requests == []


async def test_edit_can_clear_table(dashboard, backend):
    backend.json("PUT", "/api/reservations/r1", {"id": "r1"})

    async with _client() as client:
        response = await client.patch("/api/v1/reservations/r1", json={"table_id": None})

    await dashboard.inflight.drain()
    assert response.status_code == 200, response.text
    assert response.json()["table_id"] is None
    assert backend.body(backend.requests[0]) == {"table_id": None}


async def test_customer_search_ignores_envelope_response(dashboard, backend):
    backend.json("GET", "/api/customers/search", {"success": True, "data": []})

    async with _client() as client:
        response = await client.get("/api/v1/customers/search", params={"q": "ada"})

    assert response.status_code == 200
    assert response.json() == []
