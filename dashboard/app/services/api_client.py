from __future__ import annotations

import logging
from typing import Any

import httpx

from dashboard.app.core.config import settings
from dashboard.app.core.errors import BackendError, NetworkError


logger = logging.getLogger(__name__)


def api_path(endpoint: str) -> str:
    """Prefix ``endpoint`` with ``/api`` unless it already carries it."""
    if endpoint.startswith("/api/"):
        return endpoint
    if endpoint.startswith("/"):
        return f"/api{endpoint}"
    return f"/api/{endpoint}"


def error_message(response: httpx.Response) -> str:
    fallback = f"HTTP error! status: {response.status_code}"
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or fallback
    if isinstance(data, dict):
        for key in ("message", "detail", "error"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return fallback


class BackendClient:
    """JSON-over-HTTP client for the restaurant backend API."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.BACKEND_API_URL).rstrip("/"),
            transport=transport,
            timeout=httpx.Timeout(timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS),
            headers={"Content-Type": "application/json"},
            follow_redirects=True,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        path = api_path(endpoint)
        if params:
            params = {key: value for key, value in params.items() if value not in (None, "")}
        logger.debug("%s %s", method, path)
        try:
            response = await self._client.request(method, path, json=json, params=params or None)
        except httpx.RequestError as exc:
            logger.error("Network error for %s %s: %s", method, path, exc)
            raise NetworkError(str(exc) or "Network error") from exc

        if response.is_error:
            message = error_message(response)
            logger.error("%s %s failed with %s: %s", method, path, response.status_code, message)
            raise BackendError(message, status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError(f"Invalid JSON from {path}", status_code=response.status_code) from exc

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, body: Any) -> Any:
        return await self.request("POST", endpoint, json=body)

    async def put(self, endpoint: str, body: Any) -> Any:
        return await self.request("PUT", endpoint, json=body)

    async def patch(self, endpoint: str, body: Any) -> Any:
        return await self.request("PATCH", endpoint, json=body)

    async def delete(self, endpoint: str) -> Any:
        return await self.request("DELETE", endpoint)

    async def ping(self) -> None:
        """Raise unless the backend answers at all."""
        try:
            await self._client.get("/")
        except httpx.RequestError as exc:
            raise NetworkError(str(exc) or "Network error") from exc

    # Reservations

    async def update_reservation(self, reservation_id: str, payload: dict[str, Any]) -> Any:
        return await self.put(f"/reservations/{reservation_id}", payload)

    async def create_reservation(self, payload: dict[str, Any]) -> Any:
        return await self.post("/reservations", payload)

    async def search_customers(self, query: str) -> Any:
        return await self.get("/customers/search", params={"q": query})
