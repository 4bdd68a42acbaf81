"""Audit trail reconstruction for the focused item.

Three independent streams can describe the same item: the vehicle's
history around its visit, the parking session and the enforcement
decision.  They are fetched in parallel and merged into one timeline.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import timedelta

from reviewdesk._api import audit as _audit_api
from reviewdesk._constants import is_correlatable_vrm
from reviewdesk._redact import mask_vrm
from reviewdesk._transport import Transport
from reviewdesk.exceptions import FetchFailed
from reviewdesk.models.audit import AuditLogEntry, AuditSource
from reviewdesk.models.items import AuditKey
from reviewdesk.state.epochs import LatestRequestGuard

_logger = logging.getLogger(__name__)


def merge_audit_streams(*streams: Iterable[AuditLogEntry]) -> list[AuditLogEntry]:
    """Merge audit streams into a single newest-first timeline.

    Entries are concatenated in stream order, stable-sorted by timestamp
    descending and de-duplicated on ``id`` keeping the first occurrence.
    """
    combined = [entry for stream in streams for entry in stream]
    combined.sort(key=lambda entry: entry.timestamp, reverse=True)

    seen: set[str] = set()
    merged: list[AuditLogEntry] = []
    for entry in combined:
        if entry.id in seen:
            continue
        seen.add(entry.id)
        merged.append(entry)
    return merged


class AuditReconstructor:
    """Best-effort audit aggregation with its own latest-wins guard."""

    def __init__(
        self,
        transport: Transport,
        guard: LatestRequestGuard,
        *,
        vehicle_limit: int = 100,
        window_margin: timedelta = timedelta(hours=1),
    ) -> None:
        self._transport = transport
        self._guard = guard
        self._vehicle_limit = vehicle_limit
        self._window_margin = window_margin

    @property
    def guard(self) -> LatestRequestGuard:
        return self._guard

    def _sources(self, key: AuditKey) -> dict[AuditSource, Callable[[], Awaitable[list[AuditLogEntry]]]]:
        sources: dict[AuditSource, Callable[[], Awaitable[list[AuditLogEntry]]]] = {}
        vrm = key.vrm or ""

        start = end = None
        if key.entry_time is not None:
            start = key.entry_time - self._window_margin
            end = (key.exit_time or key.entry_time) + self._window_margin

        sources[AuditSource.VEHICLE] = lambda: _audit_api.list_audit_by_vehicle(
            self._transport,
            vrm,
            key.site_id or None,
            start=start,
            end=end,
            limit=self._vehicle_limit,
        )
        if key.session_id:
            session_id = key.session_id
            sources[AuditSource.SESSION] = lambda: _audit_api.list_audit_by_session(self._transport, session_id)
        if key.decision_id:
            decision_id = key.decision_id
            sources[AuditSource.DECISION] = lambda: _audit_api.list_audit_by_decision(self._transport, decision_id)
        return sources

    async def _gather(self, key: AuditKey) -> list[AuditLogEntry]:
        sources = self._sources(key)
        results = await asyncio.gather(*(call() for call in sources.values()), return_exceptions=True)

        streams: list[list[AuditLogEntry]] = []
        failures: list[str] = []
        for source, result in zip(sources, results, strict=True):
            if isinstance(result, FetchFailed):
                _logger.debug("Audit source %s failed for vrm=%s: %s", source, mask_vrm(key.vrm), result)
                failures.append(f"{source}: {result}")
                continue
            if isinstance(result, BaseException):
                raise result
            streams.append(result)

        if not streams:
            raise FetchFailed("Failed to load audit history (" + "; ".join(failures) + ")", category="audit")
        return merge_audit_streams(*streams)

    async def reconstruct(self, key: AuditKey) -> list[AuditLogEntry]:
        """Return the merged audit timeline for *key*.

        An unresolved plate (``UNKNOWN`` or empty VRM) has nothing to
        correlate on and yields ``[]`` without any request.  Individual
        streams may fail; :class:`FetchFailed` is raised only when every
        requested stream failed.

        Raises
        ------
        RequestSuperseded
            Focus moved to another item before this reconstruction finished.
        """
        if not is_correlatable_vrm(key.vrm):
            # Still supersede any reconstruction for the previous item.
            self._guard.cancel()
            return []
        return await self._guard.run(lambda: self._gather(key))
