"""Explicit controller state and reducer-style transitions.

:class:`ReviewState` is an immutable value; every transition below is a
pure function ``state -> state``.  The controller owns the only mutable
reference and swaps it after each transition, so the state machine can
be exercised without an event loop or a front end.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from typing import Any

from reviewdesk.models.audit import AuditLogEntry
from reviewdesk.models.filter import QueueFilter
from reviewdesk.models.stats import CorrectionSuggestion, ReviewStatistics
from reviewdesk.state.epochs import RequestCategory
from reviewdesk.state.selection import SelectionSet
from reviewdesk.state.snapshot import QueueSnapshot


@dataclasses.dataclass(frozen=True, slots=True)
class ReviewState:
    filter: QueueFilter = dataclasses.field(default_factory=QueueFilter)
    page: int = 0
    page_size: int = 50
    snapshot: QueueSnapshot[Any] = dataclasses.field(default_factory=QueueSnapshot)
    selection: SelectionSet = dataclasses.field(default_factory=SelectionSet)
    loading: frozenset[RequestCategory] = frozenset()
    submitting: frozenset[str] = frozenset()

    queue_error: str | None = None
    audit_error: str | None = None
    decision_error: str | None = None

    audit: tuple[AuditLogEntry, ...] = ()
    audit_item_id: str | None = None
    statistics: ReviewStatistics | None = None
    suggestions: tuple[CorrectionSuggestion, ...] = ()

    editing: bool = False
    correction_draft: str = ""
    notes: str = ""
    help_visible: bool = False
    details_visible: bool = True
    theme: str = "light"

    @property
    def current_item(self) -> Any | None:
        return self.snapshot.current

    @property
    def current_id(self) -> str | None:
        return self.snapshot.current_id

    @property
    def queue_empty(self) -> bool:
        return self.snapshot.is_empty

    @property
    def page_count(self) -> int:
        if self.snapshot.total <= 0:
            return 0
        return -(-self.snapshot.total // self.page_size)

    @property
    def has_next_page(self) -> bool:
        return (self.page + 1) * self.page_size < self.snapshot.total

    @property
    def has_previous_page(self) -> bool:
        return self.page > 0

    def is_loading(self, category: RequestCategory) -> bool:
        return category in self.loading

    def is_submitting(self, item_id: str) -> bool:
        return item_id in self.submitting


def with_loading(state: ReviewState, category: RequestCategory, on: bool) -> ReviewState:
    loading = state.loading | {category} if on else state.loading - {category}
    if loading == state.loading:
        return state
    return dataclasses.replace(state, loading=loading)


def with_filter(state: ReviewState, queue_filter: QueueFilter) -> ReviewState:
    """A new filter starts from page 0 with an empty selection."""
    return dataclasses.replace(state, filter=queue_filter, page=0, selection=state.selection.clear())


def _focus_changed(state: ReviewState, snapshot: QueueSnapshot[Any]) -> ReviewState:
    """Drop per-item context when the focused item is no longer the same."""
    if snapshot.current_id == state.snapshot.current_id and snapshot.current_id is not None:
        return state
    return dataclasses.replace(
        state,
        audit=(),
        audit_item_id=None,
        audit_error=None,
        suggestions=(),
        editing=False,
        correction_draft="",
    )


def replace_snapshot(state: ReviewState, snapshot: QueueSnapshot[Any]) -> ReviewState:
    """Apply a successful fetch: wholesale replacement."""
    state = _focus_changed(state, snapshot)
    return dataclasses.replace(
        state,
        snapshot=snapshot,
        selection=state.selection.pruned(snapshot),
        queue_error=None,
    )


def move_cursor(state: ReviewState, snapshot: QueueSnapshot[Any]) -> ReviewState:
    if snapshot is state.snapshot:
        return state
    state = _focus_changed(state, snapshot)
    return dataclasses.replace(state, snapshot=snapshot)


def remove_items(state: ReviewState, ids: Iterable[str], *, bulk: bool = False) -> ReviewState:
    """Apply a successful decision: in-place removal of the acted-on ids."""
    ids = tuple(ids)
    if len(ids) == 1 and not bulk:
        snapshot = state.snapshot.remove(ids[0])
    else:
        snapshot = state.snapshot.remove_many(ids)
    state = _focus_changed(state, snapshot)
    selection = state.selection.clear() if bulk else state.selection.pruned(snapshot)
    return dataclasses.replace(
        state,
        snapshot=snapshot,
        selection=selection,
        decision_error=None,
        notes="" if not bulk else state.notes,
    )


def mark_submitting(state: ReviewState, ids: Iterable[str], on: bool) -> ReviewState:
    ids = frozenset(ids)
    submitting = state.submitting | ids if on else state.submitting - ids
    loading = state.loading | {RequestCategory.DECISION} if submitting else state.loading - {RequestCategory.DECISION}
    return dataclasses.replace(state, submitting=submitting, loading=loading)


def with_audit(state: ReviewState, item_id: str, entries: Iterable[AuditLogEntry], error: str | None = None) -> ReviewState:
    return dataclasses.replace(state, audit=tuple(entries), audit_item_id=item_id, audit_error=error)


def with_selection(state: ReviewState, selection: SelectionSet) -> ReviewState:
    if selection is state.selection:
        return state
    return dataclasses.replace(state, selection=selection)


def start_editing(state: ReviewState, draft: str) -> ReviewState:
    return dataclasses.replace(state, editing=True, correction_draft=draft, suggestions=())


def stop_editing(state: ReviewState) -> ReviewState:
    return dataclasses.replace(state, editing=False, correction_draft="", suggestions=())
