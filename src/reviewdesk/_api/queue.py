"""Queue listing endpoints.

Endpoints:
  - GET /enforcement/queue
  - GET /plate-review/queue
"""

from __future__ import annotations

from reviewdesk._api._common import compact_params, extract_list, extract_total, fetch_or_fail, format_date
from reviewdesk._constants import ENFORCEMENT_QUEUE, PLATE_QUEUE
from reviewdesk._transport import Transport
from reviewdesk.models.filter import QueueFilter
from reviewdesk.models.items import EnforcementDecision, PlateReview, QueuePage


async def fetch_enforcement_queue(
    transport: Transport,
    queue_filter: QueueFilter,
    *,
    offset: int = 0,
    limit: int = 50,
) -> QueuePage:
    """Fetch one page of enforcement candidates."""
    params = compact_params(
        siteIds=",".join(sorted(queue_filter.site_ids)) or None,
        dateFrom=format_date(queue_filter.date_from),
        dateTo=format_date(queue_filter.date_to),
        status=queue_filter.status,
        limit=limit,
        offset=offset,
    )

    async def _call() -> QueuePage:
        payload = await transport.get_json(ENFORCEMENT_QUEUE, params)
        records = extract_list(payload, "items")
        items = tuple(EnforcementDecision.model_validate(record) for record in records)
        return QueuePage(items=items, total=extract_total(payload, len(items)), limit=limit, offset=offset)

    return await fetch_or_fail("queue", ENFORCEMENT_QUEUE, _call)


async def fetch_plate_queue(
    transport: Transport,
    queue_filter: QueueFilter,
    *,
    offset: int = 0,
    limit: int = 50,
) -> QueuePage:
    """Fetch one page of plate reviews.

    The endpoint filters on a single ``siteId``; several sites are sent
    as a comma separated ``siteIds``.
    """
    sites = sorted(queue_filter.site_ids)
    params = compact_params(
        siteId=sites[0] if len(sites) == 1 else None,
        siteIds=",".join(sites) if len(sites) > 1 else None,
        validationStatus=queue_filter.validation.value if queue_filter.validation else None,
        reviewStatus=queue_filter.status,
        startDate=format_date(queue_filter.date_from),
        endDate=format_date(queue_filter.date_to),
        limit=limit,
        offset=offset,
    )

    async def _call() -> QueuePage:
        payload = await transport.get_json(PLATE_QUEUE, params)
        records = extract_list(payload, "items")
        items = tuple(PlateReview.model_validate(record) for record in records)
        return QueuePage(items=items, total=extract_total(payload, len(items)), limit=limit, offset=offset)

    return await fetch_or_fail("queue", PLATE_QUEUE, _call)
