"""Audit log endpoints.

Endpoints:
  - GET /api/audit/search            (vehicle-scoped, time windowed)
  - GET /api/audit/session/{id}
  - GET /api/audit/decision/{id}
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from reviewdesk._api._common import compact_params, extract_list, fetch_or_fail
from reviewdesk._constants import AUDIT_DECISION, AUDIT_SEARCH, AUDIT_SESSION, normalize_vrm
from reviewdesk._transport import Transport
from reviewdesk.models.audit import AuditLogEntry, AuditSource

_logger = logging.getLogger(__name__)

# Response envelopes differ per endpoint: search returns ``auditLogs`` or
# ``items``, session/decision return ``{"auditLogs": [...]}`` or a bare list.
_LIST_KEYS = ("auditLogs", "items", "auditTrail", "events")


def _parse_entries(payload: Any, source: AuditSource) -> list[AuditLogEntry]:
    entries: list[AuditLogEntry] = []
    for record in extract_list(payload, *_LIST_KEYS):
        try:
            entries.append(AuditLogEntry.from_api(record, source))
        except ValidationError as exc:
            _logger.debug("Skipping unparseable %s audit record id=%s: %s", source, record.get("id"), exc)
    return entries


async def list_audit_by_vehicle(
    transport: Transport,
    vrm: str,
    site_id: str | None,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 100,
) -> list[AuditLogEntry]:
    params = compact_params(
        vrm=normalize_vrm(vrm),
        siteId=site_id or None,
        startDate=start.isoformat() if start else None,
        endDate=end.isoformat() if end else None,
        limit=limit,
    )

    async def _call() -> list[AuditLogEntry]:
        payload = await transport.get_json(AUDIT_SEARCH, params)
        return _parse_entries(payload, AuditSource.VEHICLE)

    return await fetch_or_fail("vehicle audit", AUDIT_SEARCH, _call)


async def list_audit_by_session(transport: Transport, session_id: str) -> list[AuditLogEntry]:
    endpoint = AUDIT_SESSION.format(id=session_id)

    async def _call() -> list[AuditLogEntry]:
        payload = await transport.get_json(endpoint)
        return _parse_entries(payload, AuditSource.SESSION)

    return await fetch_or_fail("session audit", endpoint, _call)


async def list_audit_by_decision(transport: Transport, decision_id: str) -> list[AuditLogEntry]:
    endpoint = AUDIT_DECISION.format(id=decision_id)

    async def _call() -> list[AuditLogEntry]:
        payload = await transport.get_json(endpoint)
        return _parse_entries(payload, AuditSource.DECISION)

    return await fetch_or_fail("decision audit", endpoint, _call)
