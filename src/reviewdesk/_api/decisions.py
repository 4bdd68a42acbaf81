"""Decision endpoints.

Endpoints:
  - POST /enforcement/review/{id}
  - POST /plate-review/{id}/approve
  - POST /plate-review/{id}/correct
  - POST /plate-review/{id}/discard
  - POST /plate-review/bulk-approve
  - POST /plate-review/bulk-discard

Every call raises :class:`~reviewdesk.exceptions.DecisionRejected` with the
server's message when the backend answers 4xx/5xx.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Literal

from reviewdesk._api._common import submit_or_reject
from reviewdesk._constants import (
    ENFORCEMENT_REVIEW,
    PLATE_APPROVE,
    PLATE_BULK_APPROVE,
    PLATE_BULK_DISCARD,
    PLATE_CORRECT,
    PLATE_DISCARD,
)
from reviewdesk._transport import Transport


def _without_none(body: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in body.items() if value is not None}


async def review_enforcement_decision(
    transport: Transport,
    decision_id: str,
    *,
    action: Literal["APPROVE", "DECLINE"],
    operator_id: str,
    notes: str | None = None,
) -> Any:
    endpoint = ENFORCEMENT_REVIEW.format(id=decision_id)
    body = _without_none({"action": action, "operatorId": operator_id, "notes": notes})
    return await submit_or_reject(endpoint, lambda: transport.post_json(endpoint, body))


async def approve_plate(transport: Transport, review_id: str, *, user_id: str, notes: str | None = None) -> Any:
    endpoint = PLATE_APPROVE.format(id=review_id)
    body = _without_none({"userId": user_id, "notes": notes})
    return await submit_or_reject(endpoint, lambda: transport.post_json(endpoint, body))


async def correct_plate(
    transport: Transport,
    review_id: str,
    *,
    user_id: str,
    corrected_vrm: str,
    notes: str | None = None,
) -> Any:
    endpoint = PLATE_CORRECT.format(id=review_id)
    body = _without_none({"userId": user_id, "correctedVrm": corrected_vrm, "notes": notes})
    return await submit_or_reject(endpoint, lambda: transport.post_json(endpoint, body))


async def discard_plate(transport: Transport, review_id: str, *, user_id: str, reason: str) -> Any:
    endpoint = PLATE_DISCARD.format(id=review_id)
    body = {"userId": user_id, "reason": reason}
    return await submit_or_reject(endpoint, lambda: transport.post_json(endpoint, body))


async def bulk_approve_plates(transport: Transport, review_ids: Sequence[str], *, user_id: str) -> Any:
    body = {"userId": user_id, "reviewIds": list(review_ids)}
    return await submit_or_reject(PLATE_BULK_APPROVE, lambda: transport.post_json(PLATE_BULK_APPROVE, body))


async def bulk_discard_plates(
    transport: Transport,
    review_ids: Sequence[str],
    *,
    user_id: str,
    reason: str,
) -> Any:
    body = {"userId": user_id, "reviewIds": list(review_ids), "reason": reason}
    return await submit_or_reject(PLATE_BULK_DISCARD, lambda: transport.post_json(PLATE_BULK_DISCARD, body))
