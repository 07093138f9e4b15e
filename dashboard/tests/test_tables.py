from itertools import permutations

import pytest

from dashboard.app.core.errors import InsufficientSelection, UnknownTable
from dashboard.app.models import Table
from dashboard.app.services.tables import TableRegistry, size_class


def _links_state(registry):
    return {table.id: table.linked_with for table in registry.all()}


def test_link_mode_scenario(links, registry, notifier):
    links.enter_link_mode()
    links.toggle_selection("T1")
    links.toggle_selection("T2")

    result = links.link_tables()

    assert registry.get("T1").linked_with == {"T2"}
    assert registry.get("T2").linked_with == {"T1"}
    assert result.combined_capacity == 6
    assert links.link_mode is False
    assert links.selection == []

    notification = notifier.drain()[-1]
    assert notification.title == "Tables linked"
    assert "2 tables" in notification.description
    assert "combined capacity of 6" in notification.description


@pytest.mark.parametrize("order", list(permutations(["T1", "T2", "T3"])))
def test_link_is_symmetric_and_order_independent(links, registry, order):
    result = links.link_tables(order)

    assert result.combined_capacity == 12
    for table_id in order:
        others = set(order) - {table_id}
        assert registry.get(table_id).linked_with == others
        assert table_id not in registry.get(table_id).linked_with


def test_unlink_dissolves_whole_group(links, registry, notifier):
    links.link_tables(["T1", "T2", "T3"])

    dissolved = links.unlink_tables("T2")

    assert dissolved == {"T1", "T2", "T3"}
    for table_id in ("T1", "T2", "T3"):
        assert not registry.get(table_id).linked_with
    assert notifier.drain()[-1].title == "Tables unlinked"


def test_link_requires_two_tables(links, registry, notifier):
    links.enter_link_mode()
    links.toggle_selection("T1")
    before = _links_state(registry)

    with pytest.raises(InsufficientSelection):
        links.link_tables()

    assert _links_state(registry) == before
    assert links.link_mode is True
    assert links.selection == ["T1"]
    error = notifier.drain()[-1]
    assert error.variant == "destructive"
    assert error.title == "Cannot link tables"


def test_link_rejects_duplicate_only_selection(links):
    with pytest.raises(InsufficientSelection):
        links.link_tables(["T1", "T1"])


def test_link_rejects_unknown_tables(links, registry):
    before = _links_state(registry)

    with pytest.raises(UnknownTable):
        links.link_tables(["T1", "nope"])

    assert _links_state(registry) == before


def test_unlink_unknown_or_unlinked_is_noop(links, registry, notifier):
    links.link_tables(["T1", "T2"])
    notifier.drain()
    before = _links_state(registry)

    assert links.unlink_tables("does-not-exist") == set()
    assert links.unlink_tables("T3") == set()

    assert _links_state(registry) == before
    assert notifier.drain() == []


def test_toggle_selection_only_in_link_mode(links):
    links.toggle_selection("T1")
    assert links.selection == []

    links.enter_link_mode()
    links.toggle_selection("T1")
    links.toggle_selection("T3")
    links.toggle_selection("T1")
    assert links.selection == ["T3"]


def test_exit_link_mode_clears_selection(links):
    links.enter_link_mode()
    links.toggle_selection("T1")
    links.toggle_selection("T2")

    links.exit_link_mode()

    assert links.link_mode is False
    assert links.selection == []


def test_relinking_leaves_previous_group(links, registry):
    links.link_tables(["T1", "T2"])
    links.link_tables(["T2", "T3"])

    assert not registry.get("T1").linked_with
    assert registry.get("T2").linked_with == {"T3"}
    assert registry.get("T3").linked_with == {"T2"}


def test_combined_capacity_ignores_missing_ids(links):
    assert links.compute_combined_capacity(["T1", "T4", "missing"]) == 10
    assert links.compute_combined_capacity([]) == 0


def test_effective_capacity_counts_self_once(links):
    links.link_tables(["T1", "T2", "T4"])

    assert links.effective_capacity("T1") == 14
    assert links.effective_capacity("T4") == 14
    assert links.effective_capacity("T3") == 6
    assert links.effective_capacity("missing") == 0


def test_display_name(links):
    links.link_tables(["T3", "T1"])

    assert links.display_name("T1") == "Tables 1 + 3"
    assert links.display_name("T2") == "Table 2"
    assert links.display_name("missing") == "Unknown Table"
    assert links.display_name(None) == "Unknown Table"


@pytest.mark.parametrize(
    "capacity, expected",
    [(2, "small"), (3, "medium"), (6, "large"), (8, "xlarge"), (9, "banquet")],
)
def test_size_class(capacity, expected):
    assert size_class(capacity) == expected


def test_resolve_ref_prefers_id_then_number():
    registry = TableRegistry(
        [
            Table(id="a1", number=7, capacity=2),
            Table(id="12", number=3, capacity=4),
        ]
    )

    assert registry.resolve_ref("a1") == "a1"
    assert registry.resolve_ref(7) == "a1"
    assert registry.resolve_ref("12") == "12"
    assert registry.resolve_ref("3") == "12"
    assert registry.resolve_ref("99") is None
    assert registry.resolve_ref("") is None


def test_reload_keeps_links_for_remaining_tables(links, registry):
    links.link_tables(["T1", "T2", "T3"])

    registry.load(
        [
            Table(id="T1", number=1, capacity=2, status="occupied"),
            Table(id="T2", number=2, capacity=4),
            Table(id="T4", number=4, capacity=8),
        ]
    )

    assert registry.get("T1").status == "occupied"
    assert registry.get("T1").linked_with == {"T2"}
    assert registry.get("T2").linked_with == {"T1"}
    assert not registry.get("T4").linked_with


def test_reload_drops_group_left_with_single_table(links, registry):
    links.link_tables(["T1", "T2"])

    registry.load([Table(id="T1", number=1, capacity=2)])

    assert registry.get("T1").linked_with is None
