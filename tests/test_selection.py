from __future__ import annotations

from reviewdesk.models.filter import QueueFilter
from reviewdesk.models.items import PlateReview
from reviewdesk.state.review_state import ReviewState, remove_items, replace_snapshot, with_filter, with_selection
from reviewdesk.state.selection import SelectionSet
from reviewdesk.state.snapshot import QueueSnapshot


def _snapshot(*ids: str, total: int | None = None) -> QueueSnapshot[PlateReview]:
    items = [PlateReview(id=item_id) for item_id in ids]
    return QueueSnapshot.from_page(items, total if total is not None else len(ids))


def test_toggle_adds_and_removes() -> None:
    snapshot = _snapshot("A", "B")
    selection = SelectionSet().toggle("A", snapshot)
    assert "A" in selection
    assert "A" not in selection.toggle("A", snapshot)


def test_toggle_ignores_ids_not_loaded() -> None:
    snapshot = _snapshot("A")
    selection = SelectionSet()
    assert selection.toggle("Z", snapshot) is selection


def test_select_all_selects_loaded_items_not_server_total() -> None:
    snapshot = _snapshot("A", "B", "C", total=500)
    selection = SelectionSet().select_all(snapshot)
    assert len(selection) == 3


def test_toggle_all_clears_when_everything_is_selected() -> None:
    snapshot = _snapshot("A", "B")
    partial = SelectionSet().toggle("A", snapshot)
    full = partial.toggle_all(snapshot)
    assert set(full) == {"A", "B"}
    assert len(full.toggle_all(snapshot)) == 0


def test_ordered_follows_queue_order() -> None:
    snapshot = _snapshot("A", "B", "C")
    selection = SelectionSet(frozenset({"C", "A"}))
    assert selection.ordered(snapshot) == ("A", "C")


def test_snapshot_replacement_prunes_selection() -> None:
    state = replace_snapshot(ReviewState(), _snapshot("A", "B", "C"))
    state = with_selection(state, state.selection.select_all(state.snapshot))

    state = replace_snapshot(state, _snapshot("B", "D"))
    assert set(state.selection) == {"B"}


def test_single_removal_prunes_selection() -> None:
    state = replace_snapshot(ReviewState(), _snapshot("A", "B", "C"))
    state = with_selection(state, SelectionSet(frozenset({"A", "C"})))

    state = remove_items(state, ["A"])
    assert set(state.selection) == {"C"}


def test_bulk_removal_clears_selection() -> None:
    state = replace_snapshot(ReviewState(), _snapshot("A", "B", "C"))
    state = with_selection(state, SelectionSet(frozenset({"A", "B"})))

    state = remove_items(state, ["A", "B"], bulk=True)
    assert len(state.selection) == 0
    assert state.snapshot.ids == ("C",)


def test_filter_change_clears_selection_and_page() -> None:
    state = replace_snapshot(ReviewState(page=3), _snapshot("A"))
    state = with_selection(state, state.selection.select_all(state.snapshot))

    state = with_filter(state, QueueFilter(site_ids=frozenset({"S1"})))
    assert state.page == 0
    assert len(state.selection) == 0
