from __future__ import annotations

import asyncio
import copy
import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest

from reviewdesk.config import ReviewConfig

Route = Any


@dataclass
class FakeReviewBackend:
    """In-memory operator API implementing the ``Transport`` protocol.

    ``routes`` maps an endpoint path to a payload, an exception to raise,
    or a callable receiving the query params / body (sync or async).
    ``gates`` hold matching requests open until the event is set.
    """

    routes: dict[str, Route] = field(default_factory=dict)
    gates: dict[str, asyncio.Event] = field(default_factory=dict)
    calls: list[tuple[str, str, dict[str, Any]]] = field(default_factory=list)
    cancelled: list[str] = field(default_factory=list)

    def gate(self, endpoint: str) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[endpoint] = event
        return event

    def calls_to(self, endpoint: str, method: str | None = None) -> list[dict[str, Any]]:
        return [data for m, ep, data in self.calls if ep == endpoint and (method is None or m == method)]

    @property
    def posts(self) -> list[tuple[str, dict[str, Any]]]:
        return [(ep, data) for m, ep, data in self.calls if m == "POST"]

    async def get_json(self, endpoint: str, params: Mapping[str, Any] | None = None) -> Any:
        return await self._handle("GET", endpoint, dict(params or {}))

    async def post_json(self, endpoint: str, body: Mapping[str, Any]) -> Any:
        return await self._handle("POST", endpoint, dict(body))

    async def _handle(self, method: str, endpoint: str, data: dict[str, Any]) -> Any:
        self.calls.append((method, endpoint, data))
        try:
            gate = self.gates.get(endpoint)
            if gate is not None:
                await gate.wait()
            response = self.routes.get(endpoint)
            if callable(response) and not isinstance(response, BaseException):
                response = response(data)
            if inspect.isawaitable(response):
                response = await response
        except asyncio.CancelledError:
            self.cancelled.append(endpoint)
            raise
        if isinstance(response, BaseException):
            raise response
        if response is None and method == "POST":
            return {"success": True}
        return copy.deepcopy(response)


def plate_record(review_id: str, vrm: str = "AB12CDE", **extra: Any) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": review_id,
        "movementId": f"mov-{review_id}",
        "originalVrm": vrm,
        "normalizedVrm": vrm,
        "siteId": "S1",
        "timestamp": "2026-03-02T10:00:00.000Z",
        "confidence": 0.62,
        "suspicionReasons": ["LOW_CONFIDENCE"],
        "validationStatus": "UK_SUSPICIOUS",
        "reviewStatus": "PENDING",
        "images": [{"url": f"/images/{review_id}-plate.jpg", "type": "plate"}],
        "metadata": {},
    }
    record.update(extra)
    return record


def decision_record(decision_id: str, vrm: str = "AB12CDE", **extra: Any) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": decision_id,
        "vrm": vrm,
        "siteId": "S1",
        "reason": "OVERSTAY",
        "confidenceScore": 0.91,
        "createdAt": "2026-03-02T10:00:00.000Z",
        "sessionId": f"sess-{decision_id}",
        "entryTime": "2026-03-02T08:00:00.000Z",
        "exitTime": "2026-03-02T11:30:00.000Z",
        "status": "CANDIDATE",
        "metadata": {},
    }
    record.update(extra)
    return record


def page(records: list[dict[str, Any]], total: int | None = None) -> Callable[[dict[str, Any]], dict[str, Any]]:
    return lambda _params: {"items": list(records), "total": len(records) if total is None else total}


@pytest.fixture
def backend() -> FakeReviewBackend:
    return FakeReviewBackend()


@pytest.fixture
def config() -> ReviewConfig:
    return ReviewConfig(base_url="http://review.test", operator_id="op-7", load_statistics=False)
