"""Queue fetching under a latest-wins guard."""

from __future__ import annotations

import logging
from typing import Any

from reviewdesk._transport import Transport
from reviewdesk.models.filter import QueueFilter
from reviewdesk.state.epochs import LatestRequestGuard
from reviewdesk.state.snapshot import QueueSnapshot
from reviewdesk.surfaces import ReviewSurface

_logger = logging.getLogger(__name__)


class QueueFetcher:
    """Fetch queue pages for one surface.

    Every :meth:`fetch` supersedes the previous one: the older request is
    aborted and, should it still complete, its response is never
    returned (:class:`~reviewdesk.exceptions.RequestSuperseded` is raised
    instead).
    """

    def __init__(
        self,
        surface: ReviewSurface,
        transport: Transport,
        guard: LatestRequestGuard,
        *,
        page_size: int,
    ) -> None:
        self._surface = surface
        self._transport = transport
        self._guard = guard
        self._page_size = page_size

    @property
    def guard(self) -> LatestRequestGuard:
        return self._guard

    async def fetch(
        self,
        queue_filter: QueueFilter,
        *,
        page: int = 0,
        focus_id: str | None = None,
    ) -> QueueSnapshot[Any]:
        """Load *page* of the queue matching *queue_filter*.

        Parameters
        ----------
        queue_filter : QueueFilter
            Site set, date range and status to scope the queue to.
        page : int
            Zero-based page; the request offset is ``page * page_size``.
        focus_id : str or None
            Keep the cursor on this item if the new page still holds it.

        Raises
        ------
        FetchFailed
            Network or parse failure.  The caller keeps its old snapshot.
        RequestSuperseded
            A newer fetch was issued while this one was pending.
        """
        offset = max(page, 0) * self._page_size

        async def _load() -> QueueSnapshot[Any]:
            result = await self._surface.list_queue(
                self._transport, queue_filter, offset=offset, limit=self._page_size
            )
            return QueueSnapshot.from_page(result.items, result.total, focus_id=focus_id)

        snapshot = await self._guard.run(_load)
        _logger.debug(
            "Loaded %s queue page=%d items=%d total=%d",
            self._surface.kind,
            page,
            len(snapshot),
            snapshot.total,
        )
        return snapshot
