from __future__ import annotations

import pytest

from reviewdesk.models.items import PlateReview
from reviewdesk.state.snapshot import QueueSnapshot


def _items(*ids: str) -> list[PlateReview]:
    return [PlateReview(id=item_id, original_vrm=f"VRM{item_id}") for item_id in ids]


def _snapshot(*ids: str, cursor: int = 0, total: int | None = None) -> QueueSnapshot[PlateReview]:
    snapshot = QueueSnapshot.from_page(_items(*ids), total if total is not None else len(ids))
    for _ in range(cursor):
        snapshot = snapshot.advance()
    return snapshot


def test_from_page_starts_at_first_item() -> None:
    snapshot = _snapshot("A", "B", "C", total=120)
    assert snapshot.cursor == 0
    assert snapshot.current_id == "A"
    assert snapshot.total == 120
    assert snapshot.ids == ("A", "B", "C")


def test_from_page_empty_has_no_cursor() -> None:
    snapshot = QueueSnapshot.from_page([], 0)
    assert snapshot.is_empty
    assert snapshot.cursor is None
    assert snapshot.current is None


def test_from_page_drops_duplicate_ids() -> None:
    snapshot = QueueSnapshot.from_page(_items("A", "B", "A"), 3)
    assert snapshot.ids == ("A", "B")


def test_from_page_focus_id_preserves_position() -> None:
    snapshot = QueueSnapshot.from_page(_items("A", "B", "C"), 3, focus_id="C")
    assert snapshot.current_id == "C"

    missing = QueueSnapshot.from_page(_items("A", "B"), 2, focus_id="Z")
    assert missing.cursor == 0


def test_advance_and_retreat_clamp_at_boundaries() -> None:
    snapshot = _snapshot("A", "B")
    assert snapshot.retreat() is snapshot

    last = snapshot.advance()
    assert last.current_id == "B"
    assert last.advance() is last
    assert last.retreat().current_id == "A"


def test_jump_to_unknown_id_is_noop() -> None:
    snapshot = _snapshot("A", "B", "C")
    assert snapshot.jump_to("C").cursor == 2
    assert snapshot.jump_to("nope") is snapshot


def test_remove_current_slides_next_item_into_slot() -> None:
    # [A, B, C] with B focused: removing B focuses C at the same index.
    snapshot = _snapshot("A", "B", "C", cursor=1)
    after = snapshot.remove_current()
    assert after.ids == ("A", "C")
    assert after.cursor == 1
    assert after.current_id == "C"
    assert after.total == 2


@pytest.mark.parametrize("size", [2, 3, 5])
def test_remove_current_cursor_is_min_of_old_cursor_and_new_last(size: int) -> None:
    ids = tuple(str(i) for i in range(size))
    for cursor in range(size):
        snapshot = _snapshot(*ids, cursor=cursor)
        after = snapshot.remove_current()
        assert len(after) == size - 1
        assert after.cursor == min(cursor, size - 2)
        assert ids[cursor] not in after


def test_remove_last_item_leaves_empty_snapshot() -> None:
    after = _snapshot("A").remove_current()
    assert after.is_empty
    assert after.cursor is None
    assert after.total == 0


def test_remove_many_keeps_surviving_cursor_item() -> None:
    snapshot = _snapshot("A", "B", "C", "D", cursor=2, total=40)
    after = snapshot.remove_many(["A", "D"])
    assert after.ids == ("B", "C")
    assert after.current_id == "C"
    assert after.total == 38


def test_remove_many_falls_back_to_first_item() -> None:
    snapshot = _snapshot("A", "B", "C", cursor=1)
    after = snapshot.remove_many(["B", "C"])
    assert after.ids == ("A",)
    assert after.cursor == 0


def test_remove_of_non_current_item_keeps_focus() -> None:
    snapshot = _snapshot("A", "B", "C", cursor=2)
    after = snapshot.remove("A")
    assert after.current_id == "C"
    assert after.total == 2


def test_remove_unknown_id_is_noop() -> None:
    snapshot = _snapshot("A", "B")
    assert snapshot.remove_many(["Z"]) is snapshot


def test_cursor_out_of_range_is_rejected() -> None:
    with pytest.raises(ValueError):
        QueueSnapshot(items=tuple(_items("A")), total=1, cursor=3)
    with pytest.raises(ValueError):
        QueueSnapshot(items=(), total=0, cursor=0)
