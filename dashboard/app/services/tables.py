from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from dashboard.app.core.errors import InsufficientSelection, UnknownTable
from dashboard.app.core.notifications import Notifier
from dashboard.app.models import Table


logger = logging.getLogger(__name__)

# (upper bound of effective capacity, layout size bucket)
SIZE_CLASSES: tuple[tuple[int, str], ...] = (
    (2, "small"),
    (4, "medium"),
    (6, "large"),
    (8, "xlarge"),
)


class TableRegistry:
    """Physical tables keyed by id, in backend order."""

    def __init__(self, tables: Iterable[Table] = ()) -> None:
        self._tables: dict[str, Table] = {}
        self.load(tables)

    def __contains__(self, table_id: object) -> bool:
        return table_id in self._tables

    def __len__(self) -> int:
        return len(self._tables)

    def all(self) -> list[Table]:
        return list(self._tables.values())

    def get(self, table_id: str) -> Table | None:
        return self._tables.get(table_id)

    def load(self, tables: Iterable[Table]) -> None:
        """Replace the table set, keeping link state for tables that are still present."""
        previous = self._tables
        self._tables = {}
        for table in tables:
            existing = previous.get(table.id)
            if existing is not None and existing.linked_with and not table.linked_with:
                table = table.model_copy(update={"linked_with": set(existing.linked_with)})
            self._tables[table.id] = table
        self._prune_links()

    def _prune_links(self) -> None:
        for table in self._tables.values():
            if not table.linked_with:
                continue
            remaining = {tid for tid in table.linked_with if tid in self._tables and tid != table.id}
            table.linked_with = remaining or None

    def set_links(self, table_id: str, linked_with: set[str] | None) -> None:
        table = self._tables.get(table_id)
        if table is None:
            return
        table.linked_with = set(linked_with) if linked_with else None

    def resolve_ref(self, ref: str | int | None) -> str | None:
        """Translate a table reference (id or display number) to a table id."""
        if ref is None or ref == "":
            return None
        key = str(ref).strip()
        if key in self._tables:
            return key
        if key.isdigit():
            number = int(key)
            for table in self._tables.values():
                if table.number == number:
                    return table.id
        return None


@dataclass
class LinkResult:
    table_ids: list[str]
    combined_capacity: int


class TableLinkManager:
    """Groups tables into linked parties and runs the interactive link mode.

    Link groups are held locally only. A table belongs to at most one group
    and every member of a group lists all the other members.
    """

    def __init__(self, registry: TableRegistry, notifier: Notifier) -> None:
        self.registry = registry
        self.notifier = notifier
        self.link_mode = False
        self._selection: list[str] = []

    @property
    def selection(self) -> list[str]:
        return list(self._selection)

    def enter_link_mode(self) -> None:
        self.link_mode = True

    def exit_link_mode(self) -> None:
        self.link_mode = False
        self._selection.clear()

    def toggle_selection(self, table_id: str) -> None:
        if not self.link_mode:
            return
        if table_id in self._selection:
            self._selection.remove(table_id)
        else:
            self._selection.append(table_id)

    def compute_combined_capacity(self, table_ids: Iterable[str]) -> int:
        total = 0
        for table_id in set(table_ids):
            table = self.registry.get(table_id)
            total += table.capacity if table is not None else 0
        return total

    def group_of(self, table_id: str) -> set[str]:
        """Every table reachable from ``table_id`` through its links, itself included."""
        if table_id not in self.registry:
            return set()
        seen = {table_id}
        frontier = [table_id]
        while frontier:
            table = self.registry.get(frontier.pop())
            if table is None or not table.linked_with:
                continue
            for linked_id in table.linked_with:
                if linked_id not in seen:
                    seen.add(linked_id)
                    frontier.append(linked_id)
        return seen

    def link_tables(self, table_ids: Iterable[str] | None = None) -> LinkResult:
        ids = list(dict.fromkeys(self._selection if table_ids is None else table_ids))
        if len(ids) < 2:
            exc = InsufficientSelection(len(ids))
            self.notifier.error(exc)
            raise exc

        missing = [table_id for table_id in ids if table_id not in self.registry]
        if missing:
            exc = UnknownTable(missing)
            self.notifier.error(exc)
            raise exc

        # leave any previous group first, a group has no partial membership
        for table_id in ids:
            if self.registry.get(table_id).linked_with:
                self._dissolve(table_id)

        members = set(ids)
        for table_id in ids:
            self.registry.set_links(table_id, members - {table_id})

        self.exit_link_mode()
        result = LinkResult(table_ids=ids, combined_capacity=self.compute_combined_capacity(ids))
        self.notifier.notify(
            "Tables linked",
            f"Successfully linked {len(ids)} tables with combined capacity of {result.combined_capacity}.",
        )
        return result

    def unlink_tables(self, table_id: str) -> set[str]:
        table = self.registry.get(table_id)
        if table is None or not table.linked_with:
            return set()
        dissolved = self._dissolve(table_id)
        self.notifier.notify("Tables unlinked", "The tables have been successfully unlinked.")
        return dissolved

    def _dissolve(self, table_id: str) -> set[str]:
        group = self.group_of(table_id)
        for member in group:
            self.registry.set_links(member, None)
        logger.debug("Dissolved link group %s", sorted(group))
        return group

    def effective_capacity(self, table_id: str) -> int:
        return self.compute_combined_capacity(self.group_of(table_id))

    def display_name(self, table_id: str | None) -> str:
        table = self.registry.get(table_id) if table_id else None
        if table is None:
            return "Unknown Table"
        if not table.linked_with:
            return f"Table {table.number}"
        numbers = sorted(self.registry.get(tid).number for tid in self.group_of(table_id))
        return "Tables " + " + ".join(str(number) for number in numbers)


def size_class(effective_capacity: int) -> str:
    for limit, name in SIZE_CLASSES:
        if effective_capacity <= limit:
            return name
    return "banquet"
