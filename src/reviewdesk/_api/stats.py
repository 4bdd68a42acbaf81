"""Plate review statistics and correction suggestion endpoints.

Endpoints:
  - GET /plate-review/stats/summary
  - GET /plate-review/{id}/suggestions
"""

from __future__ import annotations

from reviewdesk._api._common import compact_params, extract_list, fetch_or_fail
from reviewdesk._constants import PLATE_STATS, PLATE_SUGGESTIONS
from reviewdesk._transport import Transport
from reviewdesk.models.stats import CorrectionSuggestion, ReviewStatistics


async def fetch_plate_statistics(transport: Transport, site_id: str | None = None) -> ReviewStatistics:
    params = compact_params(siteId=site_id)

    async def _call() -> ReviewStatistics:
        payload = await transport.get_json(PLATE_STATS, params or None)
        return ReviewStatistics.model_validate(payload if isinstance(payload, dict) else {})

    return await fetch_or_fail("statistics", PLATE_STATS, _call)


async def fetch_plate_suggestions(transport: Transport, review_id: str) -> list[CorrectionSuggestion]:
    endpoint = PLATE_SUGGESTIONS.format(id=review_id)

    async def _call() -> list[CorrectionSuggestion]:
        payload = await transport.get_json(endpoint)
        return [CorrectionSuggestion.model_validate(record) for record in extract_list(payload, "suggestions", "items")]

    return await fetch_or_fail("suggestions", endpoint, _call)
