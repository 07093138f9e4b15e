from __future__ import annotations

import logging
from typing import Any

from dashboard.app.core.errors import BackendError
from dashboard.app.models import LoginStatus, TeamMember, TeamStats
from dashboard.app.services.api_client import BackendClient
from dashboard.app.services.normalize import normalize_member


logger = logging.getLogger(__name__)


def unwrap(response: Any) -> Any:
    """Return ``data`` from the team API's ``{success, data, message}`` envelope."""
    if not isinstance(response, dict) or "success" not in response:
        return response
    if not response.get("success"):
        raise BackendError(response.get("message") or response.get("error") or "Team request failed")
    return response.get("data")


def _to_backend(fields: dict[str, Any]) -> dict[str, Any]:
    renamed = {"login_status": "loginStatus"}
    return {renamed.get(key, key): value for key, value in fields.items() if value is not None}


class TeamService:
    def __init__(self, client: BackendClient) -> None:
        self.client = client

    async def list_members(
        self,
        *,
        search: str | None = None,
        role: str | None = None,
        status: LoginStatus | None = None,
    ) -> list[TeamMember]:
        data = unwrap(await self.client.get("/team", params={"search": search, "role": role, "status": status}))
        return [normalize_member(item) for item in data or []]

    async def get_member(self, member_id: str) -> TeamMember:
        return normalize_member(unwrap(await self.client.get(f"/team/{member_id}")))

    async def create_member(self, fields: dict[str, Any]) -> TeamMember:
        return normalize_member(unwrap(await self.client.post("/team", _to_backend(fields))))

    async def update_member(self, member_id: str, fields: dict[str, Any]) -> TeamMember:
        return normalize_member(unwrap(await self.client.put(f"/team/{member_id}", _to_backend(fields))))

    async def set_login_status(self, member_id: str, login_status: LoginStatus) -> TeamMember:
        data = unwrap(await self.client.patch(f"/team/{member_id}/status", {"loginStatus": login_status}))
        return normalize_member(data)

    async def delete_member(self, member_id: str) -> None:
        unwrap(await self.client.delete(f"/team/{member_id}"))
        logger.info("Deleted team member %s", member_id)

    async def stats(self) -> TeamStats:
        data = unwrap(await self.client.get("/team/stats/overview")) or {}
        return TeamStats(
            total_members=data.get("totalMembers", 0),
            active_members=data.get("activeMembers", 0),
            inactive_members=data.get("inactiveMembers", 0),
            deactivated_members=data.get("deactivatedMembers", 0),
            role_distribution={
                str(entry.get("_id")): int(entry.get("count", 0)) for entry in data.get("roleDistribution", [])
            },
        )
