"""Queue snapshot and cursor transitions.

A :class:`QueueSnapshot` is an immutable ordered page of queue items plus
a cursor.  Every transition returns a new snapshot; item order is the
server's and is never re-sorted here.

Invariants:

- ids are unique within a snapshot
- ``0 <= cursor < len(items)`` whenever ``items`` is non-empty
- ``cursor is None`` when ``items`` is empty
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable, Sequence
from typing import Generic, TypeVar

from reviewdesk.models.items import ReviewItem

_logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT", bound=ReviewItem)


def _clamp(index: int, size: int) -> int | None:
    if size <= 0:
        return None
    return max(0, min(index, size - 1))


@dataclasses.dataclass(frozen=True, slots=True)
class QueueSnapshot(Generic[ItemT]):
    items: tuple[ItemT, ...] = ()
    total: int = 0
    """Server-side total; may exceed ``len(items)`` when paginated."""
    cursor: int | None = None

    def __post_init__(self) -> None:
        expected = _clamp(self.cursor if self.cursor is not None else 0, len(self.items))
        if self.cursor != expected:
            raise ValueError(f"cursor {self.cursor} out of range for {len(self.items)} items")

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def empty(cls) -> QueueSnapshot[ItemT]:
        return cls()

    @classmethod
    def from_page(
        cls,
        items: Sequence[ItemT],
        total: int,
        *,
        focus_id: str | None = None,
    ) -> QueueSnapshot[ItemT]:
        """Build a snapshot from a fetched page.

        The cursor starts at 0, or on *focus_id* when it is still present
        (position-preserving refresh).  Duplicate ids keep their first
        occurrence.
        """
        seen: set[str] = set()
        unique: list[ItemT] = []
        for item in items:
            if item.id in seen:
                _logger.warning("Dropping duplicate queue item id=%s", item.id)
                continue
            seen.add(item.id)
            unique.append(item)

        cursor = 0 if unique else None
        if focus_id is not None:
            for index, item in enumerate(unique):
                if item.id == focus_id:
                    cursor = index
                    break
        return cls(items=tuple(unique), total=max(total, len(unique)), cursor=cursor)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def current(self) -> ItemT | None:
        if self.cursor is None:
            return None
        return self.items[self.cursor]

    @property
    def current_id(self) -> str | None:
        item = self.current
        return item.id if item is not None else None

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(item.id for item in self.items)

    def index_of(self, item_id: str) -> int | None:
        for index, item in enumerate(self.items):
            if item.id == item_id:
                return index
        return None

    def __contains__(self, item_id: object) -> bool:
        return isinstance(item_id, str) and self.index_of(item_id) is not None

    def __len__(self) -> int:
        return len(self.items)

    # ------------------------------------------------------------------
    # Cursor transitions
    # ------------------------------------------------------------------

    def _with_cursor(self, cursor: int | None) -> QueueSnapshot[ItemT]:
        if cursor == self.cursor:
            return self
        return dataclasses.replace(self, cursor=cursor)

    def advance(self) -> QueueSnapshot[ItemT]:
        """Move to the next item; no-op on the last one."""
        if self.cursor is None:
            return self
        return self._with_cursor(_clamp(self.cursor + 1, len(self.items)))

    def retreat(self) -> QueueSnapshot[ItemT]:
        """Move to the previous item; no-op on the first one."""
        if self.cursor is None:
            return self
        return self._with_cursor(_clamp(self.cursor - 1, len(self.items)))

    def jump_to(self, item_id: str) -> QueueSnapshot[ItemT]:
        """Focus the item with *item_id*; no-op when it is not loaded."""
        index = self.index_of(item_id)
        if index is None:
            return self
        return self._with_cursor(index)

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def remove_current(self) -> QueueSnapshot[ItemT]:
        """Remove the focused item.

        The item that slides into the same slot becomes current, or the
        new last item when the removed one was last.
        """
        if self.cursor is None:
            return self
        items = self.items[: self.cursor] + self.items[self.cursor + 1 :]
        return QueueSnapshot(
            items=items,
            total=max(self.total - 1, len(items)),
            cursor=_clamp(self.cursor, len(items)),
        )

    def remove_many(self, ids: Iterable[str]) -> QueueSnapshot[ItemT]:
        """Remove every item whose id is in *ids*.

        The cursor stays on the focused item if it survives, otherwise it
        falls back to index 0.
        """
        doomed = set(ids)
        items = tuple(item for item in self.items if item.id not in doomed)
        removed = len(self.items) - len(items)
        if removed == 0:
            return self

        current_id = self.current_id
        cursor: int | None = 0 if items else None
        if current_id is not None and current_id not in doomed:
            cursor = next(i for i, item in enumerate(items) if item.id == current_id)
        return QueueSnapshot(
            items=items,
            total=max(self.total - removed, len(items)),
            cursor=cursor,
        )

    def remove(self, item_id: str) -> QueueSnapshot[ItemT]:
        """Remove a single item after a decision on it."""
        if item_id == self.current_id:
            return self.remove_current()
        return self.remove_many((item_id,))
