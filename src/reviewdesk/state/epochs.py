"""Request epochs: latest-wins guards for overlapping fetches.

Each request category owns a monotonically increasing epoch.  Issuing a
request bumps the epoch and aborts the previous in-flight task of the
same category; a response is only handed back if its epoch is still the
latest when it arrives.  Categories are independent: cancelling one never
touches another.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any, TypeVar

from reviewdesk.exceptions import RequestSuperseded

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestCategory(StrEnum):
    QUEUE = "queue"
    AUDIT = "audit"
    STATS = "stats"
    SUGGESTIONS = "suggestions"
    DECISION = "decision"


class LatestRequestGuard:
    """Run at most one live request of a category at a time."""

    def __init__(self, category: RequestCategory) -> None:
        self.category = category
        self._epoch = 0
        self._task: asyncio.Future[Any] | None = None
        self.aborted = 0
        """Number of in-flight requests this guard has aborted."""

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def is_current(self, epoch: int) -> bool:
        return epoch == self._epoch

    def _abort_running(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            self.aborted += 1
            _logger.debug("Aborted %s request (superseded by epoch=%d)", self.category, self._epoch)

    async def run(self, factory: Callable[[], Awaitable[T]]) -> T:
        """Issue a new request and wait for its result.

        Raises :class:`RequestSuperseded` when a newer request of the same
        category (or :meth:`cancel`) overtook this one.  Exceptions of a
        still-current request propagate unchanged.  Cancelling the caller
        aborts the request and propagates the cancellation.
        """
        self._epoch += 1
        epoch = self._epoch
        self._abort_running()

        task = asyncio.ensure_future(factory())
        self._task = task
        _logger.debug("Issued %s request epoch=%d", self.category, epoch)

        try:
            await asyncio.wait((task,))
        except asyncio.CancelledError:
            task.cancel()
            if self._task is task:
                self._task = None
            raise
        finally:
            if self._task is task and task.done():
                self._task = None

        if task.cancelled() or not self.is_current(epoch):
            if not task.cancelled():
                # Mark the stale outcome as retrieved; it is dropped either way.
                task.exception()
            _logger.debug("Dropped stale %s response epoch=%d (latest=%d)", self.category, epoch, self._epoch)
            raise RequestSuperseded(f"{self.category} request epoch={epoch} superseded by epoch={self._epoch}")

        return task.result()

    def cancel(self) -> None:
        """Abort the in-flight request and invalidate its epoch."""
        self._epoch += 1
        self._abort_running()


class RequestEpochs:
    """One :class:`LatestRequestGuard` per latest-wins category."""

    LATEST_WINS: tuple[RequestCategory, ...] = (
        RequestCategory.QUEUE,
        RequestCategory.AUDIT,
        RequestCategory.STATS,
        RequestCategory.SUGGESTIONS,
    )

    def __init__(self) -> None:
        self._guards = {category: LatestRequestGuard(category) for category in self.LATEST_WINS}

    def __getitem__(self, category: RequestCategory) -> LatestRequestGuard:
        return self._guards[category]

    def cancel_all(self) -> None:
        for guard in self._guards.values():
            guard.cancel()


class InFlightTracker:
    """Track concurrent requests that must all be aborted on teardown.

    Used for decision submissions, which are not latest-wins: actions on
    different items may overlap.
    """

    def __init__(self, category: RequestCategory) -> None:
        self.category = category
        self._tasks: set[asyncio.Future[Any]] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    async def run(self, factory: Callable[[], Awaitable[T]]) -> T:
        """Run a tracked request; teardown surfaces as :class:`asyncio.CancelledError`."""
        task = asyncio.ensure_future(factory())
        self._tasks.add(task)
        try:
            return await task
        finally:
            self._tasks.discard(task)

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            if not task.done():
                task.cancel()
        self._tasks.clear()
