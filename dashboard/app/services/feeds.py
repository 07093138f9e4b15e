"""Fetch tables, reservations and customers from the backend.

Raw payloads are cached, not the normalised models, so a Redis cache only
ever holds plain JSON.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from dashboard.app.core.cache import Cache
from dashboard.app.core.config import settings
from dashboard.app.core.errors import BackendError
from dashboard.app.core.notifications import Notifier
from dashboard.app.models import Customer, Reservation, Table
from dashboard.app.services.api_client import BackendClient
from dashboard.app.services.normalize import normalize_customer, normalize_reservation, normalize_table
from dashboard.app.services.reservations import ReservationStore
from dashboard.app.services.tables import TableRegistry


logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2

MALFORMED = (PydanticValidationError, TypeError, ValueError)


def _unwrap_tables(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, dict) and "availableTables" in data:
        tables = data["availableTables"]
        return tables if isinstance(tables, list) else []
    if isinstance(data, list):
        return data
    logger.warning("Unexpected tables response format: %r", data)
    return []


async def _get_with_fallback(
    client: BackendClient,
    optimized: str,
    plain: str,
    params: dict[str, Any] | None = None,
) -> Any:
    try:
        return await client.get(optimized, params=params)
    except BackendError as exc:
        logger.info("Optimized endpoint %s unavailable (%s), falling back", optimized, exc.message)
    return await client.get(plain, params=params)


class TableFeed:
    def __init__(
        self,
        client: BackendClient,
        cache: Cache,
        registry: TableRegistry,
        notifier: Notifier,
        *,
        ttl: float | None = None,
        today: Callable[[], dt.date] = dt.date.today,
    ) -> None:
        self.client = client
        self.cache = cache
        self.registry = registry
        self.notifier = notifier
        self.ttl = ttl if ttl is not None else settings.CACHE_TTL_SECONDS
        self.today = today
        self.error: str | None = None

    async def refresh(self, *, force: bool = False) -> list[Table]:
        day = self.today().isoformat()
        key = f"tables:{day}"
        payload = None if force else await self.cache.get(key)
        if payload is None:
            try:
                data = await _get_with_fallback(
                    self.client, "/tables/optimized", "/tables", params={"date": day}
                )
            except BackendError as exc:
                self.error = "Failed to load tables. Please try again later."
                self.notifier.error(exc, title="Failed to load tables")
                return self.registry.all()
            payload = _unwrap_tables(data)
            await self.cache.set(key, payload, self.ttl)

        self.error = None
        tables = []
        for position, item in enumerate(payload):
            try:
                tables.append(normalize_table(item, position))
            except MALFORMED as exc:
                logger.warning("Skipping malformed table %r: %s", item, exc)
        self.registry.load(tables)
        return self.registry.all()


class ReservationFeed:
    CACHE_KEY = "reservations:all"

    def __init__(
        self,
        client: BackendClient,
        cache: Cache,
        store: ReservationStore,
        notifier: Notifier,
        registry: TableRegistry | None = None,
        *,
        ttl: float | None = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.store = store
        self.notifier = notifier
        self.registry = registry
        self.ttl = ttl if ttl is not None else settings.CACHE_TTL_SECONDS
        self.error: str | None = None

    async def refresh(self, *, force: bool = False) -> list[Reservation]:
        payload = None if force else await self.cache.get(self.CACHE_KEY)
        if payload is None:
            try:
                data = await _get_with_fallback(self.client, "/reservations/optimized", "/reservations")
            except BackendError as exc:
                self.error = f"Failed to fetch reservations: {exc.message}"
                self.notifier.error(exc, title="Failed to fetch reservations")
                return self.store.all()
            payload = data if isinstance(data, list) else []
            await self.cache.set(self.CACHE_KEY, payload, self.ttl)

        self.error = None
        records = []
        for item in payload:
            try:
                records.append(normalize_reservation(item, self.registry))
            except MALFORMED as exc:
                logger.warning("Skipping malformed reservation %r: %s", item, exc)
        self.store.load(records)
        return self.store.all()

    async def invalidate(self) -> None:
        await self.cache.invalidate(self.CACHE_KEY)


async def search_customers(client: BackendClient, query: str) -> list[Customer]:
    term = query.strip()
    if len(term) < MIN_SEARCH_LENGTH:
        return []
    try:
        data = await client.search_customers(term)
    except BackendError as exc:
        logger.error("Error searching customers: %s", exc.message)
        return []
    if not isinstance(data, list):
        logger.warning("Unexpected customer search response format: %r", data)
        return []
    customers = []
    for item in data:
        try:
            customers.append(normalize_customer(item))
        except MALFORMED as exc:
            logger.warning("Skipping malformed customer %r: %s", item, exc)
    return customers
