"""Selection set for bulk actions.

Independent of the cursor.  Always a subset of the ids loaded in the
current snapshot: ids that leave the snapshot are pruned silently.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator

from reviewdesk.state.snapshot import QueueSnapshot


@dataclasses.dataclass(frozen=True, slots=True)
class SelectionSet:
    ids: frozenset[str] = frozenset()

    def __contains__(self, item_id: object) -> bool:
        return item_id in self.ids

    def __len__(self) -> int:
        return len(self.ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self.ids)

    def ordered(self, snapshot: QueueSnapshot) -> tuple[str, ...]:
        """Selected ids in queue order."""
        return tuple(item_id for item_id in snapshot.ids if item_id in self.ids)

    def toggle(self, item_id: str, snapshot: QueueSnapshot) -> SelectionSet:
        if item_id in self.ids:
            return SelectionSet(self.ids - {item_id})
        if item_id not in snapshot:
            return self
        return SelectionSet(self.ids | {item_id})

    def select_all(self, snapshot: QueueSnapshot) -> SelectionSet:
        """Select every loaded id (not the server-side total)."""
        return SelectionSet(frozenset(snapshot.ids))

    def toggle_all(self, snapshot: QueueSnapshot) -> SelectionSet:
        if snapshot.items and len(self.pruned(snapshot)) == len(snapshot.items):
            return self.clear()
        return self.select_all(snapshot)

    def clear(self) -> SelectionSet:
        if not self.ids:
            return self
        return SelectionSet()

    def pruned(self, snapshot: QueueSnapshot) -> SelectionSet:
        kept = frozenset(item_id for item_id in self.ids if item_id in snapshot)
        if kept == self.ids:
            return self
        return SelectionSet(kept)
