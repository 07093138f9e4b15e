"""Turn the backend's loosely shaped JSON records into domain models."""

from __future__ import annotations

import datetime as dt
import logging
import re
from collections.abc import Callable
from typing import Any

from dashboard.app.models import RESERVATION_STATUSES, Customer, Reservation, Table, TeamMember
from dashboard.app.services.tables import TableRegistry


logger = logging.getLogger(__name__)

TABLE_STATUSES = ("empty", "occupied", "booked")


def first(item: dict[str, Any], *keys: str) -> Any:
    """Value of the first key present with a non-empty value."""
    for key in keys:
        value = item.get(key)
        if value not in (None, ""):
            return value
    return None


def record_id(item: dict[str, Any]) -> str:
    value = first(item, "id", "_id")
    if value is None:
        raise ValueError("record has no id")
    return str(value)


def parse_datetime(value: Any) -> dt.datetime | None:
    if isinstance(value, dt.datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return dt.datetime.fromisoformat(text)
    except ValueError:
        pass
    try:
        return dt.datetime.combine(dt.date.fromisoformat(text[:10]), dt.time())
    except ValueError:
        return None


def normalize_table(item: dict[str, Any], position: int) -> Table:
    name = first(item, "name") or ""
    table_id = record_id(item)
    number = first(item, "number", "table_number", "tableNumber")
    if number is None:
        match = re.search(r"\d+", name) or re.search(r"\d+", table_id)
        number = int(match.group()) if match else position + 1
    status = first(item, "status") or "empty"
    if status not in TABLE_STATUSES:
        logger.warning("Unknown table status %r, treating as empty", status)
        status = "empty"
    linked = first(item, "linkedWith", "linked_with")
    return Table(
        id=table_id,
        number=int(number),
        capacity=int(first(item, "capacity", "seats") or 0),
        status=status,
        name=name,
        location=first(item, "location") or "",
        linked_with={str(tid) for tid in linked} if linked else None,
    )


def normalize_reservation(
    item: dict[str, Any],
    registry: TableRegistry | None = None,
    today: Callable[[], dt.date] = dt.date.today,
) -> Reservation:
    raw_date = first(item, "date", "reservation_time", "date_time")
    parsed = parse_datetime(raw_date)
    if parsed is None and raw_date is not None:
        logger.error("Invalid date format from API: %r", raw_date)

    time_value = first(item, "time")
    if time_value is None:
        reservation_time = parse_datetime(item.get("reservation_time"))
        time_value = reservation_time.strftime("%H:%M") if reservation_time else ""

    # the backend mixes table numbers and table ids here
    table_ref = first(item, "tableNumber", "tableId", "table_id")
    table_id = registry.resolve_ref(table_ref) if registry is not None else None
    if table_id is None and table_ref is not None:
        table_id = str(table_ref)

    status = first(item, "status") or "pending"
    if status not in RESERVATION_STATUSES:
        logger.warning("Unknown reservation status %r, treating as pending", status)
        status = "pending"

    bill = first(item, "billAmount", "bill_amount", "total_amount")
    end_time = first(item, "endTime", "end_time")
    guest_id = first(item, "guestId", "guest_id", "customer_id")
    return Reservation(
        id=record_id(item),
        guest_id=str(guest_id) if guest_id is not None else None,
        guest_name=first(item, "guestName", "name", "customer_name") or "",
        guest_email=first(item, "guestEmail", "email", "customer_email"),
        date=parsed.date() if parsed else today(),
        time=str(time_value),
        end_time=str(end_time) if end_time is not None else None,
        party_size=int(first(item, "partySize", "party_size", "guests") or 0),
        table_id=table_id,
        status=status,
        special_requests=first(item, "specialRequests", "notes") or "",
        bill_amount=float(bill) if bill is not None else None,
    )


def normalize_customer(item: dict[str, Any]) -> Customer:
    return Customer(
        id=record_id(item),
        name=first(item, "name") or "",
        email=first(item, "email"),
        phone=first(item, "phone"),
    )


def normalize_member(item: dict[str, Any]) -> TeamMember:
    return TeamMember(
        id=record_id(item),
        name=first(item, "name") or "",
        role=first(item, "role") or "",
        email=first(item, "email") or "",
        phone=first(item, "phone"),
        login_status=first(item, "loginStatus", "login_status") or "active",
        last_login=first(item, "lastLogin", "last_login"),
        avatar=first(item, "avatar"),
    )
