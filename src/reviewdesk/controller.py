"""Review queue controller: the public entry point of reviewdesk."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import aiohttp
from pydantic import ValidationError

from reviewdesk._controller.audit import AuditReconstructor
from reviewdesk._controller.decisions import DecisionDispatcher
from reviewdesk._controller.queue import QueueFetcher
from reviewdesk._transport import HttpTransport, Transport
from reviewdesk.config import ReviewConfig
from reviewdesk.exceptions import (
    DecisionError,
    FetchFailed,
    RequestSuperseded,
    ReviewConfigError,
    ReviewDeskError,
)
from reviewdesk.keyboard import Handler, KeyAction, KeyboardDispatcher, KeyboardScopeStack, KeyEvent
from reviewdesk.models.actions import DecisionPayload, DecisionResult, DispatchOutcome, DispatchState, ReviewAction
from reviewdesk.models.filter import QueueFilter
from reviewdesk.models.stats import ReviewStatistics
from reviewdesk.state.epochs import InFlightTracker, RequestCategory, RequestEpochs
from reviewdesk.state.review_state import (
    ReviewState,
    mark_submitting,
    move_cursor,
    remove_items,
    replace_snapshot,
    start_editing,
    stop_editing,
    with_audit,
    with_filter,
    with_loading,
    with_selection,
)
from reviewdesk.state.selection import SelectionSet
from reviewdesk.state.snapshot import QueueSnapshot
from reviewdesk.surfaces import ReviewSurface

_logger = logging.getLogger(__name__)

ChangeCallback = Callable[[ReviewState], None]


class ReviewQueueController:
    """Drive one operator review queue.

    The controller owns the queue snapshot, cursor, selection and the
    per-item audit context of a single :class:`ReviewSurface`.  Every
    change is applied to an immutable :class:`ReviewState`; front ends
    read :attr:`state` or subscribe with *on_change*.

    Public coroutines never raise fetch or decision failures: they return
    a flag or a :class:`DecisionResult` and leave an error banner in the
    state.  Cancelling the awaiting task is always propagated.

    Usage::

        async with ReviewQueueController(config, PlateReviewSurface()) as queue:
            await queue.apply(ReviewAction.APPROVE)
    """

    def __init__(
        self,
        config: ReviewConfig,
        surface: ReviewSurface,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        on_change: ChangeCallback | None = None,
        keyboard: KeyboardScopeStack | None = None,
        theme: str = "light",
        initial_filter: QueueFilter | None = None,
    ) -> None:
        self._config = config
        self._surface = surface
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = None
        self._on_change = on_change
        self._keyboard_stack = keyboard
        self._epochs = RequestEpochs()
        self._decision_tracker = InFlightTracker(RequestCategory.DECISION)
        self._background: set[asyncio.Task[Any]] = set()
        self._fetcher: QueueFetcher | None = None
        self._reconstructor: AuditReconstructor | None = None
        self._dispatcher: DecisionDispatcher | None = None
        self._closed = False

        queue_filter = initial_filter or config.default_filter(status=surface.default_status)
        self._state = ReviewState(filter=queue_filter, page_size=config.page_size, theme=theme)
        self._keyboard = KeyboardDispatcher(
            self.key_handlers(),
            is_editing=lambda: self._state.editing,
            spawn=self._spawn,
        )
        if transport is not None:
            self._bind(transport)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ReviewQueueController:
        await self.open()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def open(self, *, load: bool = True) -> None:
        """Mount the controller: bind transport, register keys, load the queue."""
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._bind(HttpTransport(self._config, self._http_session))
        if self._keyboard_stack is not None:
            self._keyboard_stack.push(self._keyboard)
        if load:
            await self.refresh()

    async def close(self) -> None:
        """Tear down: abort every outstanding request of every category."""
        if self._closed:
            return
        self._closed = True
        if self._keyboard_stack is not None:
            self._keyboard_stack.pop(self._keyboard)

        self._epochs.cancel_all()
        self._decision_tracker.cancel_all()
        background = list(self._background)
        for task in background:
            task.cancel()
        if background:
            await asyncio.gather(*background, return_exceptions=True)
        self._background.clear()

        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        _logger.debug("Closed %s review queue", self._surface.kind)

    def _bind(self, transport: Transport) -> None:
        self._transport = transport
        self._fetcher = QueueFetcher(
            self._surface,
            transport,
            self._epochs[RequestCategory.QUEUE],
            page_size=self._config.page_size,
        )
        self._reconstructor = AuditReconstructor(
            transport,
            self._epochs[RequestCategory.AUDIT],
            vehicle_limit=self._config.audit_vehicle_limit,
            window_margin=self._config.audit_window_margin,
        )
        self._dispatcher = DecisionDispatcher(
            self._surface,
            transport,
            self._decision_tracker,
            operator_id=self._config.operator_id,
            on_state=self._on_dispatch_state,
        )

    # ------------------------------------------------------------------
    # State plumbing
    # ------------------------------------------------------------------

    @property
    def state(self) -> ReviewState:
        return self._state

    @property
    def surface(self) -> ReviewSurface:
        return self._surface

    @property
    def epochs(self) -> RequestEpochs:
        return self._epochs

    @property
    def keyboard(self) -> KeyboardDispatcher:
        return self._keyboard

    @property
    def closed(self) -> bool:
        return self._closed

    def _set_state(self, state: ReviewState) -> None:
        if state is self._state:
            return
        self._state = state
        if not self._closed:
            self._notify()

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self._state)
        except Exception:
            _logger.debug("on_change callback failed", exc_info=True)

    def _set_loading(self, category: RequestCategory, on: bool) -> None:
        self._set_state(with_loading(self._state, category, on))

    def _on_dispatch_state(self, ids: tuple[str, ...], state: DispatchState) -> None:
        self._set_state(mark_submitting(self._state, ids, state is DispatchState.SUBMITTING))

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise ReviewDeskError("Controller not open. Use 'async with ReviewQueueController(...) as queue:'")
        return self._transport

    def _spawn(self, awaitable: Awaitable[Any]) -> asyncio.Task[Any] | None:
        """Run *awaitable* in the background, owned by this controller."""
        if self._closed:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            return None
        task = asyncio.ensure_future(awaitable)
        self._background.add(task)
        task.add_done_callback(self._background_done)
        return task

    def _background_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error("Background task failed", exc_info=exc)

    async def wait_idle(self) -> None:
        """Wait until every background task (stats refresh, key actions) settled."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    async def _load_queue(self, *, focus_id: str | None = None, page: int | None = None) -> bool:
        self._require_transport()
        assert self._fetcher is not None
        guard = self._fetcher.guard
        queue_filter = self._state.filter
        if page is None:
            page = self._state.page

        self._set_loading(RequestCategory.QUEUE, True)
        try:
            snapshot = await self._fetcher.fetch(queue_filter, page=page, focus_id=focus_id)
        except RequestSuperseded:
            return False
        except FetchFailed as exc:
            self._set_state(dataclasses.replace(self._state, queue_error=str(exc)))
            return False
        finally:
            if not guard.in_flight:
                self._set_loading(RequestCategory.QUEUE, False)

        self._set_state(replace_snapshot(dataclasses.replace(self._state, page=page), snapshot))
        self._spawn(self.refresh_statistics())
        await self._load_audit()
        return True

    async def refresh(self, *, preserve_position: bool = False) -> bool:
        """Re-fetch the current page.

        With *preserve_position* the cursor stays on the focused item if
        it is still in the queue.  Returns ``True`` if a snapshot was
        applied.
        """
        focus_id = self._state.current_id if preserve_position else None
        return await self._load_queue(focus_id=focus_id)

    async def set_filter(self, queue_filter: QueueFilter) -> bool:
        """Replace the filter and load its first page."""
        self._set_state(with_filter(self._state, queue_filter))
        return await self._load_queue()

    async def update_filter(self, **changes: Any) -> bool:
        """Apply *changes* to the current filter.

        An invalid combination (e.g. ``date_from`` after ``date_to``) is
        reported in ``queue_error`` and nothing is fetched.
        """
        try:
            queue_filter = self._state.filter.replace(**changes)
        except ReviewConfigError as exc:
            self._set_state(dataclasses.replace(self._state, queue_error=str(exc)))
            return False
        return await self.set_filter(queue_filter)

    async def toggle_site(self, site_id: str) -> bool:
        return await self.set_filter(self._state.filter.with_site_toggled(site_id))

    async def clear_filter(self) -> bool:
        return await self.set_filter(self._state.filter.cleared())

    async def goto_page(self, page: int) -> bool:
        last = max(self._state.page_count - 1, 0)
        if page < 0 or page > last:
            return False
        return await self._load_queue(page=page)

    async def next_page(self) -> bool:
        if not self._state.has_next_page:
            return False
        return await self.goto_page(self._state.page + 1)

    async def previous_page(self) -> bool:
        if not self._state.has_previous_page:
            return False
        return await self.goto_page(self._state.page - 1)

    async def refresh_statistics(self) -> ReviewStatistics | None:
        """Reload review statistics; failures keep the previous figures."""
        if not self._config.load_statistics:
            return None
        transport = self._require_transport()
        guard = self._epochs[RequestCategory.STATS]
        queue_filter = self._state.filter

        self._set_loading(RequestCategory.STATS, True)
        try:
            statistics = await guard.run(lambda: self._surface.fetch_statistics(transport, queue_filter))
        except RequestSuperseded:
            return None
        except FetchFailed as exc:
            _logger.debug("Keeping previous statistics: %s", exc)
            return self._state.statistics
        finally:
            if not guard.in_flight:
                self._set_loading(RequestCategory.STATS, False)

        if statistics is not None:
            self._set_state(dataclasses.replace(self._state, statistics=statistics))
        return statistics

    # ------------------------------------------------------------------
    # Audit context
    # ------------------------------------------------------------------

    async def _load_audit(self) -> None:
        assert self._reconstructor is not None
        guard = self._reconstructor.guard
        item = self._state.current_item
        if item is None:
            guard.cancel()
            self._set_loading(RequestCategory.AUDIT, False)
            return

        item_id = item.id
        self._set_loading(RequestCategory.AUDIT, True)
        try:
            entries = await self._reconstructor.reconstruct(item.correlation_keys())
        except RequestSuperseded:
            return
        except FetchFailed as exc:
            if self._state.current_id == item_id:
                self._set_state(with_audit(self._state, item_id, (), error=str(exc)))
            return
        finally:
            if not guard.in_flight:
                self._set_loading(RequestCategory.AUDIT, False)

        if self._state.current_id == item_id:
            self._set_state(with_audit(self._state, item_id, entries))

    async def reload_audit(self) -> None:
        """Rebuild the audit timeline of the focused item."""
        self._require_transport()
        await self._load_audit()

    # ------------------------------------------------------------------
    # Cursor
    # ------------------------------------------------------------------

    async def _move(self, snapshot: QueueSnapshot[Any]) -> bool:
        before = self._state.current_id
        self._set_state(move_cursor(self._state, snapshot))
        if self._state.current_id == before:
            return False
        await self._load_audit()
        return True

    async def advance(self) -> bool:
        return await self._move(self._state.snapshot.advance())

    async def retreat(self) -> bool:
        return await self._move(self._state.snapshot.retreat())

    async def jump_to(self, item_id: str) -> bool:
        return await self._move(self._state.snapshot.jump_to(item_id))

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def toggle_selection(self, item_id: str | None = None) -> SelectionSet:
        target = item_id if item_id is not None else self._state.current_id
        if target is not None:
            self._set_state(with_selection(self._state, self._state.selection.toggle(target, self._state.snapshot)))
        return self._state.selection

    def select_all(self) -> SelectionSet:
        self._set_state(with_selection(self._state, self._state.selection.select_all(self._state.snapshot)))
        return self._state.selection

    def toggle_all(self) -> SelectionSet:
        self._set_state(with_selection(self._state, self._state.selection.toggle_all(self._state.snapshot)))
        return self._state.selection

    def clear_selection(self) -> SelectionSet:
        self._set_state(with_selection(self._state, self._state.selection.clear()))
        return self._state.selection

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def _default_payload(self, payload: DecisionPayload | Mapping[str, Any] | None) -> DecisionPayload:
        if isinstance(payload, DecisionPayload):
            return payload
        if payload is None:
            return DecisionPayload(notes=self._state.notes or None)
        try:
            return DecisionPayload.model_validate(payload)
        except ValidationError as exc:
            raise DecisionError(f"Invalid decision payload: {exc}") from exc

    async def _dispatch(
        self,
        action: ReviewAction,
        ids: tuple[str, ...],
        payload: DecisionPayload | Mapping[str, Any] | None,
        *,
        bulk: bool,
    ) -> DecisionResult:
        assert self._dispatcher is not None
        try:
            decision_payload = self._default_payload(payload)
        except DecisionError as exc:
            result = DecisionResult(action, ids, DispatchOutcome.FAILED, exc)
        else:
            result = await self._dispatcher.dispatch(action, ids, decision_payload, bulk=bulk)
        await self._settle(result, bulk=bulk)
        return result

    async def apply(
        self,
        action: ReviewAction | str,
        target: str | SelectionSet | None = None,
        payload: DecisionPayload | Mapping[str, Any] | None = None,
    ) -> DecisionResult:
        """Apply an operator action.

        Parameters
        ----------
        action : ReviewAction or str
            ``approve``, ``reject``, ``correct``, ``discard`` or ``skip``.
        target : str, SelectionSet or None
            An item id, a selection (bulk) or ``None`` for the focused item.
        payload : DecisionPayload, mapping or None
            Notes, corrected VRM or reason.  Defaults to the operator notes.

        Returns
        -------
        DecisionResult
            SUCCESS removes the target(s) from the snapshot; FAILED leaves
            the queue unchanged and sets ``decision_error``.
        """
        action = ReviewAction(action)
        if isinstance(target, SelectionSet):
            return await self.bulk_apply(action, target, payload)

        item_id = target if target is not None else self._state.current_id
        if item_id is None or item_id not in self._state.snapshot:
            return DecisionResult(action, (item_id,) if item_id else (), DispatchOutcome.IGNORED)

        if action is ReviewAction.SKIP:
            if item_id == self._state.current_id:
                await self.advance()
            return DecisionResult(action, (item_id,), DispatchOutcome.SKIPPED)

        self._require_transport()
        return await self._dispatch(action, (item_id,), payload, bulk=False)

    async def bulk_apply(
        self,
        action: ReviewAction | str,
        selection: SelectionSet | None = None,
        payload: DecisionPayload | Mapping[str, Any] | None = None,
    ) -> DecisionResult:
        """Apply *action* to every selected item in one atomic batch."""
        action = ReviewAction(action)
        selection = selection if selection is not None else self._state.selection
        ids = selection.ordered(self._state.snapshot)

        self._require_transport()
        if payload is None:
            payload = DecisionPayload()
        return await self._dispatch(action, ids, payload, bulk=True)

    async def _settle(self, result: DecisionResult, *, bulk: bool) -> None:
        if result.outcome is DispatchOutcome.FAILED:
            self._set_state(dataclasses.replace(self._state, decision_error=result.message))
            return
        if result.outcome is not DispatchOutcome.SUCCESS:
            return

        before = self._state.current_id
        state = remove_items(self._state, result.ids, bulk=bulk)
        if state.editing and state.current_id != before:
            state = stop_editing(state)
        self._set_state(state)
        self._spawn(self.refresh_statistics())

        if self._state.queue_empty and self._state.snapshot.total > 0:
            # Items from later pages shift into the emptied page.
            await self._load_queue(page=min(self._state.page, max(self._state.page_count - 1, 0)))
        elif not bulk or self._state.current_id != before:
            await self._load_audit()

    # ------------------------------------------------------------------
    # Corrections
    # ------------------------------------------------------------------

    async def start_correction(self) -> bool:
        """Enter edit mode on the focused item and load suggestions."""
        item = self._state.current_item
        if item is None or ReviewAction.CORRECT not in self._surface.supported_actions:
            return False
        transport = self._require_transport()
        self._set_state(start_editing(self._state, item.vrm))

        guard = self._epochs[RequestCategory.SUGGESTIONS]
        item_id = item.id
        self._set_loading(RequestCategory.SUGGESTIONS, True)
        try:
            suggestions = await guard.run(lambda: self._surface.fetch_suggestions(transport, item_id))
        except RequestSuperseded:
            return True
        except FetchFailed as exc:
            _logger.debug("No correction suggestions for %s: %s", item_id, exc)
            return True
        finally:
            if not guard.in_flight:
                self._set_loading(RequestCategory.SUGGESTIONS, False)

        if self._state.editing and self._state.current_id == item_id:
            self._set_state(dataclasses.replace(self._state, suggestions=tuple(suggestions)))
        return True

    def set_correction_draft(self, text: str) -> None:
        if self._state.editing:
            self._set_state(dataclasses.replace(self._state, correction_draft=text))

    def use_suggestion(self, index: int) -> bool:
        suggestions = self._state.suggestions
        if not self._state.editing or not 0 <= index < len(suggestions):
            return False
        self.set_correction_draft(suggestions[index].suggested_vrm)
        return True

    async def commit_correction(self) -> DecisionResult:
        """Submit the draft as a Correct decision for the focused item."""
        if not self._state.editing:
            return DecisionResult(ReviewAction.CORRECT, (), DispatchOutcome.IGNORED)
        payload = DecisionPayload(corrected_vrm=self._state.correction_draft, notes=self._state.notes or None)
        result = await self.apply(ReviewAction.CORRECT, payload=payload)
        if result.outcome is DispatchOutcome.SUCCESS and self._state.editing:
            self._set_state(stop_editing(self._state))
        return result

    def cancel_correction(self) -> bool:
        if not self._state.editing:
            return False
        self._epochs[RequestCategory.SUGGESTIONS].cancel()
        self._set_state(with_loading(stop_editing(self._state), RequestCategory.SUGGESTIONS, False))
        return True

    # ------------------------------------------------------------------
    # Notes and panels
    # ------------------------------------------------------------------

    def set_notes(self, text: str) -> None:
        self._set_state(dataclasses.replace(self._state, notes=text))

    def toggle_help(self) -> bool:
        self._set_state(dataclasses.replace(self._state, help_visible=not self._state.help_visible))
        return self._state.help_visible

    def toggle_details(self) -> bool:
        self._set_state(dataclasses.replace(self._state, details_visible=not self._state.details_visible))
        return self._state.details_visible

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------

    def key_handlers(self) -> dict[KeyAction, Handler]:
        """Handlers for the shortcuts this surface supports."""
        supported = self._surface.supported_actions
        handlers: dict[KeyAction, Handler] = {
            KeyAction.SKIP: lambda: self.apply(ReviewAction.SKIP),
            KeyAction.PREVIOUS: self.retreat,
            KeyAction.NEXT: self.advance,
            KeyAction.TOGGLE_HELP: self.toggle_help,
            KeyAction.TOGGLE_DETAILS: self.toggle_details,
            KeyAction.CANCEL_EDIT: self.cancel_correction,
        }
        if ReviewAction.APPROVE in supported:
            handlers[KeyAction.APPROVE] = lambda: self.apply(ReviewAction.APPROVE)
        if ReviewAction.REJECT in supported:
            handlers[KeyAction.REJECT] = lambda: self.apply(ReviewAction.REJECT)
        if ReviewAction.DISCARD in supported:
            handlers[KeyAction.DISCARD] = lambda: self.apply(ReviewAction.DISCARD)
        if ReviewAction.CORRECT in supported:
            handlers[KeyAction.START_CORRECTION] = self.start_correction
            handlers[KeyAction.COMMIT_EDIT] = self.commit_correction
        return handlers

    def handle_key(self, event: KeyEvent) -> bool:
        """Route a key press to this controller's shortcuts."""
        return self._keyboard.handle(event)
