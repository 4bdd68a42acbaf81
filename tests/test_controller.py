from __future__ import annotations

import asyncio
import dataclasses
from collections.abc import Callable
from datetime import timedelta
from typing import Any

import pytest
from conftest import FakeReviewBackend, page, plate_record

from reviewdesk.config import ReviewConfig
from reviewdesk.controller import ReviewQueueController
from reviewdesk.exceptions import ReviewTransportError
from reviewdesk.models.actions import DispatchOutcome, ReviewAction
from reviewdesk.models.filter import QueueFilter
from reviewdesk.state.epochs import RequestCategory
from reviewdesk.surfaces import PlateReviewSurface

pytestmark = pytest.mark.e2e

QUEUE = "/plate-review/queue"


async def _until(predicate: Callable[[], bool]) -> None:
    for _ in range(100):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


def _controller(backend: FakeReviewBackend, config: ReviewConfig, **kwargs: Any) -> ReviewQueueController:
    return ReviewQueueController(config, PlateReviewSurface(), transport=backend, **kwargs)


@pytest.mark.asyncio
async def test_filter_change_discards_pending_fetch(backend: FakeReviewBackend, config: ReviewConfig) -> None:
    old_release = asyncio.Event()

    async def respond(params: dict[str, Any]) -> dict[str, Any]:
        if params.get("siteId") == "S1":
            return {"items": [plate_record("NEW")], "total": 1}
        await old_release.wait()
        return {"items": [plate_record("OLD")], "total": 1}

    backend.routes[QUEUE] = respond
    controller = _controller(backend, config)
    await controller.open(load=False)

    stale = asyncio.create_task(controller.set_filter(QueueFilter()))
    await _until(lambda: len(backend.calls_to(QUEUE)) == 1)

    assert await controller.update_filter(site_ids={"S1"})
    old_release.set()

    assert await stale is False
    guard = controller.epochs[RequestCategory.QUEUE]
    assert guard.epoch == 2
    assert guard.aborted == 1
    assert backend.cancelled == [QUEUE]
    assert controller.state.snapshot.ids == ("NEW",)
    assert controller.state.filter.site_ids == frozenset({"S1"})
    await controller.close()


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_snapshot(backend: FakeReviewBackend, config: ReviewConfig) -> None:
    backend.routes[QUEUE] = page([plate_record("A"), plate_record("B")])
    controller = _controller(backend, config)
    await controller.open()

    backend.routes[QUEUE] = ReviewTransportError("Request to /plate-review/queue timed out after 30.0s")
    assert await controller.refresh() is False

    state = controller.state
    assert state.snapshot.ids == ("A", "B")
    assert state.queue_error is not None and "timed out" in state.queue_error
    assert not state.is_loading(RequestCategory.QUEUE)

    backend.routes[QUEUE] = page([plate_record("A")])
    assert await controller.refresh()
    assert controller.state.queue_error is None
    await controller.close()


@pytest.mark.asyncio
async def test_invalid_filter_is_reported_without_fetching(backend: FakeReviewBackend, config: ReviewConfig) -> None:
    backend.routes[QUEUE] = page([plate_record("A")])
    controller = _controller(backend, config)
    await controller.open()
    date_to = controller.state.filter.date_to
    assert date_to is not None

    assert not await controller.update_filter(date_from=date_to + timedelta(days=1))

    assert controller.state.queue_error
    assert len(backend.calls_to(QUEUE)) == 1
    await controller.close()


@pytest.mark.asyncio
async def test_mount_filter_requests_pending_plates(backend: FakeReviewBackend, config: ReviewConfig) -> None:
    backend.routes[QUEUE] = page([])
    controller = _controller(backend, config)
    await controller.open()

    params = backend.calls_to(QUEUE)[0]
    assert params["reviewStatus"] == "PENDING"
    assert params["limit"] == 50
    assert params["offset"] == 0
    assert "startDate" in params and "endDate" in params
    assert controller.state.queue_empty
    assert controller.state.current_item is None
    await controller.close()


@pytest.mark.asyncio
async def test_pagination_uses_offsets(backend: FakeReviewBackend, config: ReviewConfig) -> None:
    ids = ["A", "B", "C", "D", "E"]

    def respond(params: dict[str, Any]) -> dict[str, Any]:
        offset, limit = params["offset"], params["limit"]
        return {"items": [plate_record(i) for i in ids[offset : offset + limit]], "total": len(ids)}

    backend.routes[QUEUE] = respond
    controller = _controller(backend, dataclasses.replace(config, page_size=2))
    await controller.open()
    assert controller.state.page_count == 3

    assert await controller.next_page()
    assert controller.state.snapshot.ids == ("C", "D")
    assert await controller.goto_page(2)
    assert controller.state.snapshot.ids == ("E",)
    assert not await controller.next_page()
    assert await controller.previous_page()
    assert controller.state.page == 1

    offsets = [params["offset"] for params in backend.calls_to(QUEUE)]
    assert offsets == [0, 2, 4, 2]
    await controller.close()


@pytest.mark.asyncio
async def test_emptied_page_pulls_in_remaining_items(backend: FakeReviewBackend, config: ReviewConfig) -> None:
    remaining = ["A", "B", "C"]

    def respond(params: dict[str, Any]) -> dict[str, Any]:
        offset, limit = params["offset"], params["limit"]
        return {"items": [plate_record(i) for i in remaining[offset : offset + limit]], "total": len(remaining)}

    backend.routes[QUEUE] = respond
    backend.routes["/plate-review/A/approve"] = lambda _body: remaining.remove("A")
    controller = _controller(backend, dataclasses.replace(config, page_size=1))
    await controller.open()

    await controller.apply(ReviewAction.APPROVE)

    assert controller.state.snapshot.ids == ("B",)
    assert controller.state.snapshot.total == 2
    await controller.close()


@pytest.mark.asyncio
async def test_refresh_can_preserve_position(backend: FakeReviewBackend, config: ReviewConfig) -> None:
    backend.routes[QUEUE] = page([plate_record("A"), plate_record("B"), plate_record("C")])
    controller = _controller(backend, config)
    await controller.open()
    await controller.jump_to("C")

    backend.routes[QUEUE] = page([plate_record("X"), plate_record("C"), plate_record("A")])
    await controller.refresh(preserve_position=True)
    assert controller.state.current_id == "C"

    await controller.refresh()
    assert controller.state.current_id == "X"
    await controller.close()


@pytest.mark.asyncio
async def test_teardown_aborts_every_category(backend: FakeReviewBackend, config: ReviewConfig) -> None:
    backend.routes[QUEUE] = page([plate_record("A"), plate_record("B")])
    changes: list[object] = []
    controller = _controller(backend, config, on_change=changes.append)
    await controller.open()

    backend.gate(QUEUE)
    backend.gate("/plate-review/A/approve")
    decision = asyncio.create_task(controller.apply(ReviewAction.APPROVE))
    refresh = asyncio.create_task(controller.refresh())
    await _until(lambda: len(backend.calls_to(QUEUE)) == 2 and bool(backend.posts))

    await controller.close()
    notified = len(changes)

    assert (await decision).outcome is DispatchOutcome.CANCELLED
    assert await refresh is False
    assert sorted(backend.cancelled) == sorted([QUEUE, "/plate-review/A/approve"])
    assert controller.state.snapshot.ids == ("A", "B")
    assert len(changes) == notified
    assert controller.closed


@pytest.mark.asyncio
async def test_statistics_follow_queue_and_decisions(backend: FakeReviewBackend, config: ReviewConfig) -> None:
    backend.routes[QUEUE] = page([plate_record("A"), plate_record("B")])
    backend.routes["/plate-review/stats/summary"] = {
        "totalPending": 12,
        "totalApproved": 30,
        "totalCorrected": 4,
        "totalDiscarded": 2,
        "total": 48,
        "byValidationStatus": {"ukSuspicious": 7, "internationalSuspicious": 3, "invalid": 2},
    }
    controller = _controller(backend, dataclasses.replace(config, load_statistics=True))
    await controller.open()
    await controller.wait_idle()

    stats = controller.state.statistics
    assert stats is not None
    assert stats.total_pending == 12
    assert stats.total_reviewed == 36
    assert stats.by_validation_status.uk_suspicious == 7

    backend.routes["/plate-review/stats/summary"] = ReviewTransportError("stats down")
    await controller.apply(ReviewAction.APPROVE)
    await controller.wait_idle()

    assert len(backend.calls_to("/plate-review/stats/summary")) == 2
    assert controller.state.statistics == stats
    await controller.close()


@pytest.mark.asyncio
async def test_unresolved_plate_has_no_audit_requests(backend: FakeReviewBackend, config: ReviewConfig) -> None:
    backend.routes[QUEUE] = page([plate_record("A", "UNKNOWN")])
    controller = _controller(backend, config)
    await controller.open()

    assert backend.calls_to("/api/audit/search") == []
    assert controller.state.audit == ()
    assert not controller.state.is_loading(RequestCategory.AUDIT)
    await controller.close()


@pytest.mark.asyncio
async def test_audit_failure_is_shown_for_current_item(backend: FakeReviewBackend, config: ReviewConfig) -> None:
    backend.routes[QUEUE] = page([plate_record("A")])
    backend.routes["/api/audit/search"] = ReviewTransportError("audit service unavailable")
    controller = _controller(backend, config)
    await controller.open()

    assert controller.state.audit_item_id == "A"
    assert controller.state.audit_error is not None
    assert controller.state.snapshot.ids == ("A",)
    await controller.close()


@pytest.mark.asyncio
async def test_on_change_errors_do_not_break_controller(backend: FakeReviewBackend, config: ReviewConfig) -> None:
    seen: list[object] = []

    def on_change(state: object) -> None:
        seen.append(state)
        raise RuntimeError("render failed")

    backend.routes[QUEUE] = page([plate_record("A"), plate_record("B")])
    controller = _controller(backend, config, on_change=on_change)
    await controller.open()
    await controller.advance()

    assert seen
    assert controller.state.current_id == "B"
    await controller.close()


@pytest.mark.asyncio
async def test_injected_theme_and_panels(backend: FakeReviewBackend, config: ReviewConfig) -> None:
    controller = _controller(backend, config, theme="dark")

    assert controller.state.theme == "dark"
    assert controller.state.details_visible
    assert not controller.toggle_details()
    assert controller.toggle_help()


@pytest.mark.asyncio
async def test_context_manager_closes(backend: FakeReviewBackend, config: ReviewConfig) -> None:
    backend.routes[QUEUE] = page([plate_record("A")])

    async with _controller(backend, config) as controller:
        assert controller.state.current_id == "A"
    assert controller.closed


@pytest.mark.asyncio
async def test_cancelled_refresh_clears_loading(backend: FakeReviewBackend, config: ReviewConfig) -> None:
    backend.routes[QUEUE] = page([plate_record("A")])
    controller = _controller(backend, config)
    await controller.open()

    backend.gate(QUEUE)
    refresh = asyncio.create_task(controller.refresh())
    await _until(lambda: len(backend.calls_to(QUEUE)) == 2)
    assert controller.state.is_loading(RequestCategory.QUEUE)

    refresh.cancel()
    with pytest.raises(asyncio.CancelledError):
        await refresh

    assert not controller.state.is_loading(RequestCategory.QUEUE)
    assert not controller.epochs[RequestCategory.QUEUE].in_flight
    assert controller.state.snapshot.ids == ("A",)
    await controller.close()


@pytest.mark.asyncio
async def test_failed_page_change_keeps_current_page(backend: FakeReviewBackend, config: ReviewConfig) -> None:
    ids = ["A", "B", "C", "D", "E"]

    def respond(params: dict[str, Any]) -> dict[str, Any]:
        offset, limit = params["offset"], params["limit"]
        return {"items": [plate_record(i) for i in ids[offset : offset + limit]], "total": len(ids)}

    backend.routes[QUEUE] = respond
    controller = _controller(backend, dataclasses.replace(config, page_size=2))
    await controller.open()

    backend.routes[QUEUE] = ReviewTransportError("boom")
    assert not await controller.goto_page(1)

    state = controller.state
    assert state.page == 0
    assert state.snapshot.ids == ("A", "B")
    assert state.queue_error is not None and "boom" in state.queue_error

    backend.routes[QUEUE] = respond
    assert await controller.next_page()
    assert controller.state.page == 1
    assert controller.state.snapshot.ids == ("C", "D")
    await controller.close()


@pytest.mark.asyncio
async def test_audit_follows_cursor_through_rapid_moves(backend: FakeReviewBackend, config: ReviewConfig) -> None:
    search = "/api/audit/search"

    def audit_for(params: dict[str, Any]) -> dict[str, Any]:
        vrm = params["vrm"]
        return {"auditLogs": [{"id": f"log-{vrm}", "timestamp": "2026-03-02T10:00:00Z", "vrm": vrm}]}

    backend.routes[QUEUE] = page([plate_record("A", "AAA111"), plate_record("B", "BBB222")])
    backend.routes[search] = audit_for
    controller = _controller(backend, config)
    await controller.open()
    assert [entry.vrm for entry in controller.state.audit] == ["AAA111"]

    release = backend.gate(search)
    forward = asyncio.create_task(controller.advance())
    await _until(lambda: len(backend.calls_to(search)) == 2)
    back = asyncio.create_task(controller.retreat())
    await _until(lambda: len(backend.calls_to(search)) == 3)
    again = asyncio.create_task(controller.advance())
    await _until(lambda: len(backend.calls_to(search)) == 4)
    release.set()
    await asyncio.gather(forward, back, again)

    state = controller.state
    assert state.current_id == "B"
    assert state.audit_item_id == "B"
    assert [entry.vrm for entry in state.audit] == ["BBB222"]
    assert controller.epochs[RequestCategory.AUDIT].aborted == 2
    assert backend.cancelled == [search, search]
    assert not state.is_loading(RequestCategory.AUDIT)
    await controller.close()
