"""Keyboard shortcuts for a queue surface.

A :class:`KeyboardDispatcher` maps key events onto controller actions.
Dispatchers are registered on a :class:`KeyboardScopeStack` when a queue
surface is mounted and removed when it is torn down; only the top-most
scope receives events.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

_logger = logging.getLogger(__name__)


class FocusTarget(StrEnum):
    """What currently holds keyboard focus in the front end."""

    NONE = "none"
    INPUT = "input"
    TEXTAREA = "textarea"


class KeyAction(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"
    DISCARD = "discard"
    SKIP = "skip"
    START_CORRECTION = "start_correction"
    PREVIOUS = "previous"
    NEXT = "next"
    TOGGLE_HELP = "toggle_help"
    TOGGLE_DETAILS = "toggle_details"
    CANCEL_EDIT = "cancel_edit"
    COMMIT_EDIT = "commit_edit"


@dataclass(frozen=True, slots=True)
class KeyEvent:
    """A key press as reported by the front end.

    ``key`` follows the DOM ``KeyboardEvent.key`` names (``"a"``,
    ``"ArrowLeft"``, ``"Escape"``).
    """

    key: str
    focus: FocusTarget = FocusTarget.NONE
    ctrl: bool = False
    meta: bool = False
    alt: bool = False

    @property
    def input_focused(self) -> bool:
        return self.focus is not FocusTarget.NONE

    @property
    def has_modifier(self) -> bool:
        return self.ctrl or self.meta or self.alt


DEFAULT_KEYMAP: Mapping[str, KeyAction] = {
    "a": KeyAction.APPROVE,
    "r": KeyAction.REJECT,
    "d": KeyAction.DISCARD,
    "s": KeyAction.SKIP,
    "c": KeyAction.START_CORRECTION,
    "ArrowLeft": KeyAction.PREVIOUS,
    "k": KeyAction.PREVIOUS,
    "ArrowRight": KeyAction.NEXT,
    "j": KeyAction.NEXT,
    "?": KeyAction.TOGGLE_HELP,
    "h": KeyAction.TOGGLE_HELP,
    "i": KeyAction.TOGGLE_DETAILS,
    "Escape": KeyAction.CANCEL_EDIT,
    "Enter": KeyAction.COMMIT_EDIT,
}

#: Keys that belong to the text cursor while a correction is being edited.
ARROW_KEYS: frozenset[str] = frozenset({"ArrowLeft", "ArrowRight", "ArrowUp", "ArrowDown"})

Handler = Callable[[], Any]


class KeyboardDispatcher:
    """Translate :class:`KeyEvent` objects into handler calls.

    Gating rules:

    - modified keys (ctrl/meta/alt) are never claimed
    - ``Escape`` cancels while editing or while an input has focus
    - ``Enter`` commits only while editing
    - any other key is ignored while an input has focus
    - arrow keys are ignored while editing
    - keys without a mapped handler are ignored

    :meth:`handle` never raises.  A handler returning an awaitable is
    scheduled through *spawn* (or on the running loop).
    """

    def __init__(
        self,
        handlers: Mapping[KeyAction, Handler],
        *,
        is_editing: Callable[[], bool] = lambda: False,
        keymap: Mapping[str, KeyAction] = DEFAULT_KEYMAP,
        spawn: Callable[[Awaitable[Any]], Any] | None = None,
    ) -> None:
        self._handlers = dict(handlers)
        self._is_editing = is_editing
        self._keymap = dict(keymap)
        self._spawn = spawn

    def resolve(self, event: KeyEvent) -> KeyAction | None:
        """Return the action *event* would trigger, or ``None`` if unclaimed."""
        if event.has_modifier:
            return None
        action = self._keymap.get(event.key)
        if action is None:
            return None

        editing = self._is_editing()
        if action is KeyAction.CANCEL_EDIT:
            claimed = editing or event.input_focused
        elif action is KeyAction.COMMIT_EDIT:
            claimed = editing
        elif event.input_focused:
            claimed = False
        elif editing and event.key in ARROW_KEYS:
            claimed = False
        else:
            claimed = True

        if not claimed or action not in self._handlers:
            return None
        return action

    def handle(self, event: KeyEvent) -> bool:
        """Dispatch *event*; return ``True`` if the key was claimed."""
        action = self.resolve(event)
        if action is None:
            return False
        try:
            result = self._handlers[action]()
            if inspect.isawaitable(result):
                self._schedule(action, result)
        except Exception:
            _logger.exception("Keyboard handler for %s failed", action)
        return True

    def _schedule(self, action: KeyAction, awaitable: Awaitable[Any]) -> None:
        if self._spawn is not None:
            self._spawn(awaitable)
            return
        try:
            future = asyncio.ensure_future(awaitable)
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            _logger.warning("No running event loop for keyboard action %s", action)
            return
        future.add_done_callback(_log_failure)


def _log_failure(future: asyncio.Future[Any]) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        _logger.error("Keyboard action failed", exc_info=exc)


class KeyboardScopeStack:
    """Stack of keyboard scopes; the top-most dispatcher receives events."""

    def __init__(self) -> None:
        self._scopes: list[KeyboardDispatcher] = []

    def __len__(self) -> int:
        return len(self._scopes)

    @property
    def active(self) -> KeyboardDispatcher | None:
        return self._scopes[-1] if self._scopes else None

    def push(self, dispatcher: KeyboardDispatcher) -> KeyboardDispatcher:
        self._scopes.append(dispatcher)
        return dispatcher

    def pop(self, dispatcher: KeyboardDispatcher) -> None:
        """Remove *dispatcher* wherever it sits; unknown dispatchers are ignored."""
        with contextlib.suppress(ValueError):
            self._scopes.remove(dispatcher)

    @contextlib.contextmanager
    def scoped(self, dispatcher: KeyboardDispatcher) -> Iterator[KeyboardDispatcher]:
        self.push(dispatcher)
        try:
            yield dispatcher
        finally:
            self.pop(dispatcher)

    def handle(self, event: KeyEvent) -> bool:
        dispatcher = self.active
        if dispatcher is None:
            return False
        return dispatcher.handle(event)
