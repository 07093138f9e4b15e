from __future__ import annotations

import asyncio
import datetime as dt
import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from dashboard.app.core.errors import (
    BackendError,
    InvalidAmount,
    MissingReservationFields,
    NotFoundLocal,
    ValidationError,
)
from dashboard.app.core.notifications import Notifier
from dashboard.app.models import TRANSITION_TARGETS, Reservation, ReservationDraft
from dashboard.app.services.api_client import BackendClient
from dashboard.app.services.normalize import normalize_reservation
from dashboard.app.services.optimistic import InFlight, begin, settle
from dashboard.app.services.tables import TableRegistry


logger = logging.getLogger(__name__)

TEMP_ID_PREFIX = "temp-"

# local field name -> backend field name
BACKEND_FIELDS = {
    "guest_id": "customer_id",
    "guest_name": "name",
    "guest_email": "email",
    "date": "date",
    "time": "time",
    "end_time": "end_time",
    "party_size": "party_size",
    "table_id": "table_id",
    "special_requests": "notes",
    "status": "status",
}
EDITABLE_FIELDS = frozenset(BACKEND_FIELDS) - {"status", "guest_id"}


def is_temporary(reservation_id: str) -> bool:
    return reservation_id.startswith(TEMP_ID_PREFIX)


def to_backend(fields: dict[str, Any]) -> dict[str, Any]:
    payload = {}
    for name, value in fields.items():
        if name not in BACKEND_FIELDS:
            continue
        if isinstance(value, dt.date):
            value = value.isoformat()
        payload[BACKEND_FIELDS[name]] = value
    return payload


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def merged(record: Reservation, fields: dict[str, Any]) -> Reservation:
    return Reservation.model_validate({**record.model_dump(), **fields})


class ReservationStore:
    """In-memory reservations plus the record open in the detail view.

    The detail record is a separate copy; every local update is applied to
    both so the list and the detail view never disagree.
    """

    def __init__(self, records: Iterable[Reservation] = ()) -> None:
        self._records: list[Reservation] = list(records)
        self.selected: Reservation | None = None

    def __len__(self) -> int:
        return len(self._records)

    def all(self) -> list[Reservation]:
        return list(self._records)

    def get(self, reservation_id: str) -> Reservation | None:
        for record in self._records:
            if record.id == reservation_id:
                return record
        return None

    def require(self, reservation_id: str) -> Reservation:
        record = self.get(reservation_id)
        if record is None:
            raise NotFoundLocal("Reservation", reservation_id)
        return record

    def _index(self, reservation_id: str) -> int | None:
        for index, record in enumerate(self._records):
            if record.id == reservation_id:
                return index
        return None

    def load(self, records: Iterable[Reservation]) -> None:
        """Replace the server records; temporary records still awaiting the backend are kept."""
        pending = [record for record in self._records if is_temporary(record.id)]
        self._records = list(records) + pending
        if self.selected is not None:
            self.select(self.selected.id)

    def select(self, reservation_id: str) -> Reservation | None:
        record = self.get(reservation_id)
        self.selected = record.model_copy() if record is not None else None
        return self.selected

    def clear_selection(self) -> None:
        self.selected = None

    def insert(self, record: Reservation) -> None:
        self._records.append(record)

    def upsert_local(self, reservation_id: str, fields: dict[str, Any]) -> Reservation | None:
        """Merge ``fields`` into a record, revalidating it; bad data raises and leaves the record as it was."""
        index = self._index(reservation_id)
        if index is None:
            logger.debug("upsert_local: reservation %s not in local state", reservation_id)
            return None
        updated = merged(self._records[index], fields)
        selected = self.selected
        if selected is not None and selected.id == reservation_id:
            selected = merged(selected, fields)
        self._records[index] = updated
        self.selected = selected
        return updated

    def replace(self, temp_id: str, record: Reservation) -> None:
        index = self._index(temp_id)
        if index is None:
            self._records.append(record)
        else:
            self._records[index] = record
        if self.selected is not None and self.selected.id == temp_id:
            self.selected = record.model_copy()

    def discard(self, temp_id: str) -> None:
        self._records = [record for record in self._records if record.id != temp_id]
        if self.selected is not None and self.selected.id == temp_id:
            self.selected = None

    def filter(
        self,
        *,
        status: str | None = None,
        start: dt.date | None = None,
        end: dt.date | None = None,
        guest_id: str | None = None,
    ) -> list[Reservation]:
        records = self._records
        if start is not None:
            last = end or start
            records = [record for record in records if start <= record.date <= last]
        if status:
            records = [record for record in records if record.status == status]
        if guest_id:
            records = [record for record in records if record.guest_id == guest_id]
        return list(records)


def parse_bill_amount(raw: str | float | int | None) -> float:
    """Parse a bill amount; blank input means 0."""
    if raw is None:
        return 0.0
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return 0.0
        try:
            value = float(text)
        except ValueError:
            raise InvalidAmount(raw) from None
    elif isinstance(raw, bool):
        raise InvalidAmount(str(raw))
    else:
        value = float(raw)
    if not math.isfinite(value) or value < 0:
        raise InvalidAmount(str(raw))
    return value


@dataclass
class StatusChange:
    reservation_id: str
    status: str
    bill_amount: float | None
    task: asyncio.Task | None = None


class ReservationStatusMachine:
    """Reservation lifecycle transitions with optimistic updates.

    Any of pending, confirmed, completed and cancelled may be requested from
    any state, including from completed and cancelled. Completion goes through
    a bill capture step first. "seated" is only ever set by backend data.
    """

    def __init__(
        self,
        store: ReservationStore,
        client: BackendClient,
        notifier: Notifier,
        inflight: InFlight | None = None,
        now: Callable[[], dt.datetime] = utcnow,
    ) -> None:
        self.store = store
        self.client = client
        self.notifier = notifier
        self.inflight = inflight if inflight is not None else InFlight()
        self.now = now
        self.awaiting_bill: set[str] = set()

    def set_status(self, reservation_id: str, target: str) -> StatusChange | None:
        if target not in TRANSITION_TARGETS:
            exc = ValidationError(f"Status cannot be changed to {target}.")
            self.notifier.error(exc)
            raise exc
        try:
            self.store.require(reservation_id)
        except NotFoundLocal as exc:
            logger.debug("set_status ignored: %s", exc.message)
            return None
        if target == "completed":
            self.awaiting_bill.add(reservation_id)
            return None
        return self._transition(reservation_id, {"status": target})

    def confirm_bill(self, reservation_id: str, raw_amount: str | float | None) -> StatusChange | None:
        try:
            self.store.require(reservation_id)
        except NotFoundLocal as exc:
            logger.debug("confirm_bill ignored: %s", exc.message)
            self.awaiting_bill.discard(reservation_id)
            return None
        try:
            amount = parse_bill_amount(raw_amount)
        except InvalidAmount as exc:
            self.notifier.error(exc)
            raise
        self.awaiting_bill.discard(reservation_id)
        return self._transition(reservation_id, {"status": "completed", "bill_amount": amount})

    def cancel_bill(self, reservation_id: str) -> None:
        self.awaiting_bill.discard(reservation_id)

    def _fields(self, reservation_id: str) -> dict[str, Any] | None:
        record = self.store.get(reservation_id)
        if record is None:
            return None
        return {"status": record.status, "bill_amount": record.bill_amount}

    def _transition(self, reservation_id: str, changes: dict[str, Any]) -> StatusChange:
        mutation = begin(
            snapshot=lambda: self._fields(reservation_id),
            apply=lambda: self.store.upsert_local(reservation_id, changes),
            restore=lambda prior: self.store.upsert_local(reservation_id, prior),
        )
        status = changes["status"]
        self.notifier.notify("Status updated", f"Reservation status changed to {status}.")

        payload: dict[str, Any] = {"status": status}
        if "bill_amount" in changes:
            payload["total_amount"] = changes["bill_amount"]
            payload["end_time"] = self.now().isoformat()

        async def commit() -> None:
            try:
                await settle(mutation, self.client.update_reservation(reservation_id, payload))
            except BackendError as exc:
                self.notifier.error(exc, title="Failed to update reservation")

        return StatusChange(
            reservation_id=reservation_id,
            status=status,
            bill_amount=changes.get("bill_amount"),
            task=self.inflight.spawn(commit()),
        )


class ReservationEditor:
    """Creates reservations and edits their fields, optimistically."""

    def __init__(
        self,
        store: ReservationStore,
        client: BackendClient,
        notifier: Notifier,
        registry: TableRegistry | None = None,
        inflight: InFlight | None = None,
    ) -> None:
        self.store = store
        self.client = client
        self.notifier = notifier
        self.registry = registry
        self.inflight = inflight if inflight is not None else InFlight()

    def _missing(self, draft: ReservationDraft) -> list[str]:
        missing = []
        if not draft.guest_name.strip():
            missing.append("guest")
        if draft.date is None:
            missing.append("date")
        if not draft.time.strip():
            missing.append("time")
        if not draft.table_id:
            missing.append("table")
        if draft.party_size < 1:
            missing.append("party size")
        return missing

    def create(self, draft: ReservationDraft) -> tuple[Reservation, asyncio.Task]:
        missing = self._missing(draft)
        if missing:
            exc = MissingReservationFields(missing)
            self.notifier.error(exc)
            raise exc

        table_id = draft.table_id
        if self.registry is not None:
            table_id = self.registry.resolve_ref(draft.table_id) or draft.table_id

        temp = Reservation(
            id=f"{TEMP_ID_PREFIX}{uuid4().hex[:12]}",
            guest_id=draft.guest_id,
            guest_name=draft.guest_name.strip(),
            guest_email=draft.guest_email,
            date=draft.date,
            time=draft.time,
            party_size=draft.party_size,
            table_id=table_id,
            status="confirmed",
            special_requests=draft.special_requests,
        )
        self.store.insert(temp)
        self.notifier.notify(
            "Reservation created",
            f"Reservation for {temp.date:%B %d, %Y} at {temp.time} has been created.",
        )
        return temp, self.inflight.spawn(self._commit_create(temp))

    async def _commit_create(self, temp: Reservation) -> Reservation | None:
        payload = to_backend(temp.model_dump(exclude={"id", "bill_amount", "end_time"}))
        try:
            data = await self.client.create_reservation(payload)
            if not isinstance(data, dict):
                raise BackendError("Unexpected response when creating reservation")
            record = normalize_reservation({**payload, **data}, self.registry)
        except BackendError as exc:
            self.store.discard(temp.id)
            self.notifier.error(exc, title="Failed to create reservation")
            return None
        except (PydanticValidationError, TypeError, ValueError) as exc:
            logger.error("Malformed reservation returned by backend: %s", exc)
            self.store.discard(temp.id)
            self.notifier.notify(
                "Failed to create reservation",
                "The server returned an invalid reservation.",
                variant="destructive",
            )
            return None
        self.store.replace(temp.id, record)
        return record

    def edit(self, reservation_id: str, fields: dict[str, Any]) -> asyncio.Task | None:
        unknown = sorted(set(fields) - EDITABLE_FIELDS)
        if unknown:
            exc = ValidationError(f"Fields cannot be edited: {', '.join(unknown)}.")
            self.notifier.error(exc)
            raise exc
        record = self.store.get(reservation_id)
        if record is None or not fields:
            return None

        if self.registry is not None and fields.get("table_id") is not None:
            table_ref = fields["table_id"]
            fields = {**fields, "table_id": self.registry.resolve_ref(table_ref) or str(table_ref)}
        try:
            merged(record, fields)
        except PydanticValidationError as error:
            exc = ValidationError(f"Invalid reservation details: {error.error_count()} field error(s).")
            self.notifier.error(exc)
            raise exc from error

        names = list(fields)

        def current() -> dict[str, Any] | None:
            record = self.store.get(reservation_id)
            return None if record is None else {name: getattr(record, name) for name in names}

        mutation = begin(
            snapshot=current,
            apply=lambda: self.store.upsert_local(reservation_id, fields),
            restore=lambda prior: self.store.upsert_local(reservation_id, prior),
        )
        self.notifier.notify("Reservation updated", "The reservation details have been updated.")

        async def commit() -> None:
            try:
                await settle(mutation, self.client.update_reservation(reservation_id, to_backend(fields)))
            except BackendError as exc:
                self.notifier.error(exc, title="Failed to update reservation")

        return self.inflight.spawn(commit())
