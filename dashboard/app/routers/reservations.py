from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from dashboard.app.core.errors import ValidationError
from dashboard.app.core.state import Dashboard, get_dashboard
from dashboard.app.models import Reservation, ReservationDraft
from dashboard.app.routers.schemas import (
    BillIn,
    CustomerOut,
    ReservationCreateIn,
    ReservationEditIn,
    ReservationOut,
    StatusIn,
    StatusOut,
)
from dashboard.app.services.export import reservations_csv
from dashboard.app.services.feeds import search_customers


router = APIRouter()


def _reservation_out(dashboard: Dashboard, reservation: Reservation) -> ReservationOut:
    return ReservationOut(
        **reservation.model_dump(),
        guest_initials=reservation.guest_initials,
        table_name=dashboard.links.display_name(reservation.table_id),
        awaiting_bill=reservation.id in dashboard.status.awaiting_bill,
    )


def _status_out(dashboard: Dashboard, reservation_id: str) -> StatusOut | Response:
    reservation = dashboard.reservations.get(reservation_id)
    if reservation is None:
        # commands on ids missing from local state are no-ops
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return StatusOut(
        id=reservation.id,
        status=reservation.status,
        bill_amount=reservation.bill_amount,
        awaiting_bill=reservation.id in dashboard.status.awaiting_bill,
    )


def _unprocessable(exc: ValidationError) -> HTTPException:
    return HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.message)


@router.get("/reservations", response_model=list[ReservationOut])
async def list_reservations(
    status_filter: str | None = Query(default=None, alias="status"),
    start: date | None = None,
    end: date | None = None,
    guest_id: str | None = None,
    dashboard: Dashboard = Depends(get_dashboard),
) -> list[ReservationOut]:
    if not len(dashboard.reservations):
        await dashboard.reservation_feed.refresh()
    records = dashboard.reservations.filter(status=status_filter, start=start, end=end, guest_id=guest_id)
    return [_reservation_out(dashboard, record) for record in records]


@router.post("/reservations/refresh", response_model=list[ReservationOut])
async def refresh_reservations(dashboard: Dashboard = Depends(get_dashboard)) -> list[ReservationOut]:
    records = await dashboard.reservation_feed.refresh(force=True)
    return [_reservation_out(dashboard, record) for record in records]


@router.post("/reservations", response_model=ReservationOut, status_code=status.HTTP_202_ACCEPTED)
async def create_reservation(
    payload: ReservationCreateIn,
    dashboard: Dashboard = Depends(get_dashboard),
) -> ReservationOut:
    try:
        record, _ = dashboard.editor.create(ReservationDraft(**payload.model_dump()))
    except ValidationError as exc:
        raise _unprocessable(exc) from exc
    return _reservation_out(dashboard, record)


@router.get("/reservations/export")
async def export_reservations(
    status_filter: str | None = Query(default=None, alias="status"),
    start: date | None = None,
    end: date | None = None,
    dashboard: Dashboard = Depends(get_dashboard),
) -> Response:
    records = dashboard.reservations.filter(status=status_filter, start=start, end=end)
    dashboard.notifier.notify("Export successful", "Reservations data has been exported to CSV.")
    return Response(
        content=reservations_csv(records, dashboard.links),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="reservations_export.csv"'},
    )


@router.delete("/reservations/selection", status_code=status.HTTP_204_NO_CONTENT)
async def close_detail(dashboard: Dashboard = Depends(get_dashboard)) -> Response:
    dashboard.reservations.clear_selection()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/reservations/{reservation_id}", response_model=ReservationOut)
async def get_reservation(reservation_id: str, dashboard: Dashboard = Depends(get_dashboard)) -> ReservationOut:
    record = dashboard.reservations.select(reservation_id)
    if record is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Reservation not found")
    return _reservation_out(dashboard, record)


@router.patch("/reservations/{reservation_id}", response_model=ReservationOut)
async def edit_reservation(
    reservation_id: str,
    payload: ReservationEditIn,
    dashboard: Dashboard = Depends(get_dashboard),
) -> ReservationOut | Response:
    fields = payload.model_dump(exclude_unset=True)
    try:
        dashboard.editor.edit(reservation_id, fields)
    except ValidationError as exc:
        raise _unprocessable(exc) from exc
    record = dashboard.reservations.get(reservation_id)
    if record is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return _reservation_out(dashboard, record)


@router.put("/reservations/{reservation_id}/status", response_model=StatusOut)
async def set_status(
    reservation_id: str,
    payload: StatusIn,
    response: Response,
    dashboard: Dashboard = Depends(get_dashboard),
) -> StatusOut | Response:
    try:
        dashboard.status.set_status(reservation_id, payload.status)
    except ValidationError as exc:
        raise _unprocessable(exc) from exc
    if reservation_id in dashboard.status.awaiting_bill:
        response.status_code = status.HTTP_202_ACCEPTED
    return _status_out(dashboard, reservation_id)


@router.post("/reservations/{reservation_id}/bill", response_model=StatusOut)
async def confirm_bill(
    reservation_id: str,
    payload: BillIn,
    dashboard: Dashboard = Depends(get_dashboard),
) -> StatusOut | Response:
    try:
        dashboard.status.confirm_bill(reservation_id, payload.amount)
    except ValidationError as exc:
        raise _unprocessable(exc) from exc
    return _status_out(dashboard, reservation_id)


@router.delete("/reservations/{reservation_id}/bill", response_model=StatusOut)
async def cancel_bill(reservation_id: str, dashboard: Dashboard = Depends(get_dashboard)) -> StatusOut | Response:
    dashboard.status.cancel_bill(reservation_id)
    return _status_out(dashboard, reservation_id)


@router.get("/customers/search", response_model=list[CustomerOut])
async def customer_search(
    q: str = Query(default=""),
    dashboard: Dashboard = Depends(get_dashboard),
) -> list[CustomerOut]:
    customers = await search_customers(dashboard.client, q)
    return [CustomerOut(**customer.model_dump()) for customer in customers]
