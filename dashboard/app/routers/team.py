from fastapi import APIRouter, Depends, HTTPException, Response, status

from dashboard.app.core.errors import BackendError
from dashboard.app.core.state import Dashboard, get_dashboard
from dashboard.app.models import LoginStatus, TeamMember, TeamStats
from dashboard.app.routers.schemas import LoginStatusIn, TeamMemberIn, TeamMemberUpdateIn
from dashboard.app.services.export import team_csv


router = APIRouter()


def _backend_failure(dashboard: Dashboard, exc: BackendError, title: str) -> HTTPException:
    dashboard.notifier.error(exc, title=title)
    code = exc.status_code if exc.status_code and exc.status_code < 500 else status.HTTP_502_BAD_GATEWAY
    return HTTPException(code, detail=exc.message)


@router.get("/team", response_model=list[TeamMember])
async def list_team(
    search: str | None = None,
    role: str | None = None,
    login_status: LoginStatus | None = None,
    dashboard: Dashboard = Depends(get_dashboard),
) -> list[TeamMember]:
    try:
        return await dashboard.team.list_members(search=search, role=role, status=login_status)
    except BackendError as exc:
        raise _backend_failure(dashboard, exc, "Failed to load team members") from exc


@router.get("/team/stats", response_model=TeamStats)
async def team_stats(dashboard: Dashboard = Depends(get_dashboard)) -> TeamStats:
    try:
        return await dashboard.team.stats()
    except BackendError as exc:
        raise _backend_failure(dashboard, exc, "Failed to load team stats") from exc


@router.get("/team/export")
async def export_team(dashboard: Dashboard = Depends(get_dashboard)) -> Response:
    try:
        members = await dashboard.team.list_members()
    except BackendError as exc:
        raise _backend_failure(dashboard, exc, "Export failed") from exc
    dashboard.notifier.notify("Export successful", "Team data has been exported to CSV.")
    return Response(
        content=team_csv(members),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="team_export.csv"'},
    )


@router.get("/team/{member_id}", response_model=TeamMember)
async def get_member(member_id: str, dashboard: Dashboard = Depends(get_dashboard)) -> TeamMember:
    try:
        return await dashboard.team.get_member(member_id)
    except BackendError as exc:
        raise _backend_failure(dashboard, exc, "Failed to load team member") from exc


@router.post("/team", response_model=TeamMember, status_code=status.HTTP_201_CREATED)
async def create_member(payload: TeamMemberIn, dashboard: Dashboard = Depends(get_dashboard)) -> TeamMember:
    try:
        member = await dashboard.team.create_member(payload.model_dump())
    except BackendError as exc:
        raise _backend_failure(dashboard, exc, "Failed to add team member") from exc
    dashboard.notifier.notify("Team member added", f"{member.name} has been added to the team.")
    return member


@router.put("/team/{member_id}", response_model=TeamMember)
async def update_member(
    member_id: str,
    payload: TeamMemberUpdateIn,
    dashboard: Dashboard = Depends(get_dashboard),
) -> TeamMember:
    try:
        member = await dashboard.team.update_member(member_id, payload.model_dump(exclude_unset=True))
    except BackendError as exc:
        raise _backend_failure(dashboard, exc, "Failed to update team member") from exc
    dashboard.notifier.notify("Team member updated", f"{member.name} has been updated.")
    return member


@router.patch("/team/{member_id}/status", response_model=TeamMember)
async def set_login_status(
    member_id: str,
    payload: LoginStatusIn,
    dashboard: Dashboard = Depends(get_dashboard),
) -> TeamMember:
    try:
        return await dashboard.team.set_login_status(member_id, payload.login_status)
    except BackendError as exc:
        raise _backend_failure(dashboard, exc, "Failed to update status") from exc


@router.delete("/team/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_member(member_id: str, dashboard: Dashboard = Depends(get_dashboard)) -> Response:
    try:
        await dashboard.team.delete_member(member_id)
    except BackendError as exc:
        raise _backend_failure(dashboard, exc, "Failed to remove team member") from exc
    dashboard.notifier.notify("Team member removed", "The team member has been removed.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
