from fastapi import APIRouter, Depends, HTTPException, Response, status

from dashboard.app.core.errors import ValidationError
from dashboard.app.core.state import Dashboard, get_dashboard
from dashboard.app.routers.schemas import LinkTablesIn, LinkTablesOut, TableOut, TablesOut, UnlinkOut
from dashboard.app.services.export import tables_csv
from dashboard.app.services.tables import size_class


router = APIRouter()


def _tables_out(dashboard: Dashboard) -> TablesOut:
    links = dashboard.links
    selection = links.selection
    tables = []
    for table in dashboard.tables.all():
        effective = links.effective_capacity(table.id)
        tables.append(
            TableOut(
                id=table.id,
                number=table.number,
                name=table.label,
                capacity=table.capacity,
                effective_capacity=effective,
                status=table.status,
                location=table.location,
                linked_with=sorted(table.linked_with or ()),
                display_name=links.display_name(table.id),
                size_class=size_class(effective),
                selected=table.id in selection,
            )
        )
    return TablesOut(
        link_mode=links.link_mode,
        selection=selection,
        selection_capacity=links.compute_combined_capacity(selection),
        tables=tables,
    )


@router.get("/tables", response_model=TablesOut)
async def list_tables(dashboard: Dashboard = Depends(get_dashboard)) -> TablesOut:
    if not len(dashboard.tables):
        await dashboard.table_feed.refresh()
    return _tables_out(dashboard)


@router.post("/tables/refresh", response_model=TablesOut)
async def refresh_tables(dashboard: Dashboard = Depends(get_dashboard)) -> TablesOut:
    await dashboard.table_feed.refresh(force=True)
    return _tables_out(dashboard)


@router.post("/tables/link-mode", response_model=TablesOut)
async def enter_link_mode(dashboard: Dashboard = Depends(get_dashboard)) -> TablesOut:
    dashboard.links.enter_link_mode()
    return _tables_out(dashboard)


@router.delete("/tables/link-mode", response_model=TablesOut)
async def exit_link_mode(dashboard: Dashboard = Depends(get_dashboard)) -> TablesOut:
    dashboard.links.exit_link_mode()
    return _tables_out(dashboard)


@router.post("/tables/link", response_model=LinkTablesOut)
async def link_tables(
    payload: LinkTablesIn,
    dashboard: Dashboard = Depends(get_dashboard),
) -> LinkTablesOut:
    try:
        result = dashboard.links.link_tables(payload.table_ids)
    except ValidationError as exc:
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.message) from exc
    return LinkTablesOut(table_ids=result.table_ids, combined_capacity=result.combined_capacity)


@router.get("/tables/export")
async def export_tables(dashboard: Dashboard = Depends(get_dashboard)) -> Response:
    dashboard.notifier.notify("Export successful", "Tables data has been exported to CSV.")
    return Response(
        content=tables_csv(dashboard.tables.all()),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="tables_export.csv"'},
    )


@router.post("/tables/{table_id}/select", response_model=TablesOut)
async def toggle_selection(table_id: str, dashboard: Dashboard = Depends(get_dashboard)) -> TablesOut:
    dashboard.links.toggle_selection(table_id)
    return _tables_out(dashboard)


@router.post("/tables/{table_id}/unlink", response_model=UnlinkOut)
async def unlink_tables(table_id: str, dashboard: Dashboard = Depends(get_dashboard)) -> UnlinkOut:
    return UnlinkOut(unlinked=sorted(dashboard.links.unlink_tables(table_id)))
