"""Review surfaces: the capability interface the controller is written against.

The controller logic (fetch, cursor, selection, dispatch, audit) is
written once; a surface maps it onto one queue of the operator API.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import ClassVar, Protocol

from reviewdesk._api import decisions as _decisions_api
from reviewdesk._api import queue as _queue_api
from reviewdesk._api import stats as _stats_api
from reviewdesk._constants import DEFAULT_DISCARD_REASON
from reviewdesk._transport import Transport
from reviewdesk.exceptions import CorrectionMissing, UnsupportedAction
from reviewdesk.models.actions import BULK_ACTIONS, DecisionPayload, ReviewAction
from reviewdesk.models.filter import QueueFilter, ReviewStatus
from reviewdesk.models.items import QueueItemKind, QueuePage
from reviewdesk.models.stats import CorrectionSuggestion, ReviewStatistics


class ReviewSurface(Protocol):
    """One queue of the operator API."""

    kind: QueueItemKind
    supported_actions: frozenset[ReviewAction]
    supports_bulk: bool
    default_status: str | None

    async def list_queue(
        self, transport: Transport, queue_filter: QueueFilter, *, offset: int, limit: int
    ) -> QueuePage: ...

    async def submit(
        self,
        transport: Transport,
        action: ReviewAction,
        item_id: str,
        payload: DecisionPayload,
        *,
        operator_id: str,
    ) -> None: ...

    async def submit_bulk(
        self,
        transport: Transport,
        action: ReviewAction,
        ids: Sequence[str],
        payload: DecisionPayload,
        *,
        operator_id: str,
    ) -> None: ...

    async def fetch_statistics(self, transport: Transport, queue_filter: QueueFilter) -> ReviewStatistics | None: ...

    async def fetch_suggestions(self, transport: Transport, item_id: str) -> list[CorrectionSuggestion]: ...


def _discard_reason(payload: DecisionPayload) -> str:
    return payload.reason or payload.notes or DEFAULT_DISCARD_REASON


class EnforcementSurface:
    """Enforcement candidates: approve or decline one decision at a time."""

    kind: ClassVar[QueueItemKind] = QueueItemKind.DECISION
    supported_actions: ClassVar[frozenset[ReviewAction]] = frozenset(
        {ReviewAction.APPROVE, ReviewAction.REJECT, ReviewAction.SKIP}
    )
    supports_bulk: ClassVar[bool] = False
    default_status: ClassVar[str | None] = None

    _ACTION_CODES: ClassVar[dict[ReviewAction, str]] = {
        ReviewAction.APPROVE: "APPROVE",
        ReviewAction.REJECT: "DECLINE",
    }

    async def list_queue(
        self, transport: Transport, queue_filter: QueueFilter, *, offset: int, limit: int
    ) -> QueuePage:
        return await _queue_api.fetch_enforcement_queue(transport, queue_filter, offset=offset, limit=limit)

    async def submit(
        self,
        transport: Transport,
        action: ReviewAction,
        item_id: str,
        payload: DecisionPayload,
        *,
        operator_id: str,
    ) -> None:
        code = self._ACTION_CODES.get(action)
        if code is None:
            raise UnsupportedAction(f"Enforcement review does not support {action}")
        await _decisions_api.review_enforcement_decision(
            transport,
            item_id,
            action=code,  # type: ignore[arg-type]
            operator_id=operator_id,
            notes=payload.notes,
        )

    async def submit_bulk(
        self,
        transport: Transport,
        action: ReviewAction,
        ids: Sequence[str],
        payload: DecisionPayload,
        *,
        operator_id: str,
    ) -> None:
        raise UnsupportedAction("Enforcement review has no bulk actions")

    async def fetch_statistics(self, transport: Transport, queue_filter: QueueFilter) -> ReviewStatistics | None:
        return None

    async def fetch_suggestions(self, transport: Transport, item_id: str) -> list[CorrectionSuggestion]:
        return []


class PlateReviewSurface:
    """Ambiguous plate reads: approve, correct or discard, singly or in bulk.

    Reject has no endpoint of its own and is sent as a discard.
    """

    kind: ClassVar[QueueItemKind] = QueueItemKind.PLATE
    supported_actions: ClassVar[frozenset[ReviewAction]] = frozenset(ReviewAction)
    supports_bulk: ClassVar[bool] = True
    default_status: ClassVar[str | None] = ReviewStatus.PENDING.value

    async def list_queue(
        self, transport: Transport, queue_filter: QueueFilter, *, offset: int, limit: int
    ) -> QueuePage:
        return await _queue_api.fetch_plate_queue(transport, queue_filter, offset=offset, limit=limit)

    async def submit(
        self,
        transport: Transport,
        action: ReviewAction,
        item_id: str,
        payload: DecisionPayload,
        *,
        operator_id: str,
    ) -> None:
        if action is ReviewAction.APPROVE:
            await _decisions_api.approve_plate(transport, item_id, user_id=operator_id, notes=payload.notes)
        elif action is ReviewAction.CORRECT:
            if not payload.corrected_vrm:
                raise CorrectionMissing("A corrected registration is required")
            await _decisions_api.correct_plate(
                transport,
                item_id,
                user_id=operator_id,
                corrected_vrm=payload.corrected_vrm,
                notes=payload.notes,
            )
        elif action in (ReviewAction.DISCARD, ReviewAction.REJECT):
            await _decisions_api.discard_plate(transport, item_id, user_id=operator_id, reason=_discard_reason(payload))
        else:
            raise UnsupportedAction(f"Plate review cannot submit {action}")

    async def submit_bulk(
        self,
        transport: Transport,
        action: ReviewAction,
        ids: Sequence[str],
        payload: DecisionPayload,
        *,
        operator_id: str,
    ) -> None:
        if action not in BULK_ACTIONS:
            raise UnsupportedAction(f"{action} cannot be applied in bulk")
        if action is ReviewAction.APPROVE:
            await _decisions_api.bulk_approve_plates(transport, ids, user_id=operator_id)
        else:
            await _decisions_api.bulk_discard_plates(transport, ids, user_id=operator_id, reason=_discard_reason(payload))

    async def fetch_statistics(self, transport: Transport, queue_filter: QueueFilter) -> ReviewStatistics | None:
        site_ids = sorted(queue_filter.site_ids)
        return await _stats_api.fetch_plate_statistics(transport, site_ids[0] if len(site_ids) == 1 else None)

    async def fetch_suggestions(self, transport: Transport, item_id: str) -> list[CorrectionSuggestion]:
        return await _stats_api.fetch_plate_suggestions(transport, item_id)
