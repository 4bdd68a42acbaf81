"""Shared helpers for operator API endpoint modules.

This module centralizes the most repeated patterns:
- unwrapping list payloads (``{"items": [...]}``, ``{"auditLogs": [...]}`` or a bare array)
- formatting query parameters
- mapping HTTP failures onto the fetch/decision error taxonomy

It is internal to reviewdesk and may change at any time.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import date, datetime
from typing import Any, TypeVar

from reviewdesk.exceptions import (
    DecisionError,
    DecisionRejected,
    FetchFailed,
    ReviewApiError,
    ReviewTransportError,
)

_logger = logging.getLogger(__name__)

T = TypeVar("T")


def extract_list(payload: Any, *keys: str) -> list[dict[str, Any]]:
    """Return the list of record dicts inside *payload*.

    The first of *keys* holding a list wins; a bare list is returned as-is.
    Non-dict entries are skipped.
    """
    items: Any = None
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict):
        for key in keys:
            candidate = payload.get(key)
            if isinstance(candidate, list):
                items = candidate
                break
    if items is None:
        return []
    return [item for item in items if isinstance(item, dict)]


def extract_total(payload: Any, default: int) -> int:
    if isinstance(payload, dict):
        total = payload.get("total")
        if isinstance(total, int) and not isinstance(total, bool) and total >= 0:
            return total
        if isinstance(total, str) and total.isdigit():
            return int(total)
    return default


def format_date(value: date | datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def compact_params(**params: str | int | None) -> dict[str, str | int]:
    """Drop ``None``/empty values from query parameters."""
    return {key: value for key, value in params.items() if value is not None and value != ""}


async def fetch_or_fail(category: str, endpoint: str, call: Callable[[], Awaitable[T]]) -> T:
    """Run a read call, converting transport failures into :class:`FetchFailed`."""
    try:
        return await call()
    except ReviewTransportError as exc:
        _logger.warning("%s fetch from %s failed: %s", category, endpoint, exc)
        raise FetchFailed(f"Failed to load {category}: {exc}", category=category) from exc
    except ValueError as exc:
        # pydantic.ValidationError is a ValueError
        _logger.warning("%s payload from %s could not be parsed: %s", category, endpoint, exc)
        raise FetchFailed(f"Failed to parse {category} response", category=category) from exc


async def submit_or_reject(endpoint: str, call: Callable[[], Awaitable[T]]) -> T:
    """Run a write call, converting failures into decision errors.

    A non-2xx answer becomes :class:`DecisionRejected` carrying the
    server's message verbatim.
    """
    try:
        return await call()
    except ReviewApiError as exc:
        raise DecisionRejected(str(exc), status_code=exc.status_code) from exc
    except ReviewTransportError as exc:
        raise DecisionError(f"Could not reach the server: {exc}") from exc


