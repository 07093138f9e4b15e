import csv
import io
from collections.abc import Iterable, Sequence

from dashboard.app.models import Reservation, Table, TeamMember
from dashboard.app.services.tables import TableLinkManager


TABLE_HEADER = ("id", "name", "capacity", "status", "location", "linked")
RESERVATION_HEADER = ("id", "guest", "date", "time", "party_size", "table", "status", "bill_amount")
TEAM_HEADER = ("id", "name", "role", "email", "phone", "login_status")


def _write(header: Sequence[str], rows: Iterable[Sequence[object]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def tables_csv(tables: Iterable[Table]) -> str:
    return _write(
        TABLE_HEADER,
        (
            (table.id, table.label, table.capacity, table.status, table.location, "Yes" if table.is_linked else "No")
            for table in tables
        ),
    )


def reservations_csv(reservations: Iterable[Reservation], links: TableLinkManager | None = None) -> str:
    def table_cell(reservation: Reservation) -> str:
        if links is None or not reservation.table_id:
            return reservation.table_id or ""
        return links.display_name(reservation.table_id)

    return _write(
        RESERVATION_HEADER,
        (
            (
                r.id,
                r.guest_name,
                r.date.isoformat(),
                r.time,
                r.party_size,
                table_cell(r),
                r.status,
                "" if r.bill_amount is None else f"{r.bill_amount:.2f}",
            )
            for r in reservations
        ),
    )


def team_csv(members: Iterable[TeamMember]) -> str:
    return _write(
        TEAM_HEADER,
        ((m.id, m.name, m.role, m.email, m.phone or "", m.login_status) for m in members),
    )
