"""Decision dispatch: IDLE -> SUBMITTING -> IDLE per target id."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence

from reviewdesk._transport import Transport
from reviewdesk.exceptions import AlreadySubmitting, CorrectionMissing, DecisionError, UnsupportedAction
from reviewdesk.models.actions import BULK_ACTIONS, DecisionPayload, DecisionResult, DispatchOutcome, DispatchState, ReviewAction
from reviewdesk.state.epochs import InFlightTracker
from reviewdesk.surfaces import ReviewSurface

_logger = logging.getLogger(__name__)

StateListener = Callable[[tuple[str, ...], DispatchState], None]


class DecisionDispatcher:
    """Submit operator decisions for one surface.

    At most one decision may be SUBMITTING for a given id.  A second
    action touching an id that is still in flight is dropped client-side
    with :class:`AlreadySubmitting`.  Server and network failures come
    back as a FAILED :class:`DecisionResult`; nothing is raised except
    cancellation of the caller itself.
    """

    def __init__(
        self,
        surface: ReviewSurface,
        transport: Transport,
        tracker: InFlightTracker,
        *,
        operator_id: str,
        on_state: StateListener | None = None,
    ) -> None:
        self._surface = surface
        self._transport = transport
        self._tracker = tracker
        self._operator_id = operator_id
        self._on_state = on_state
        self._submitting: set[str] = set()

    @property
    def submitting(self) -> frozenset[str]:
        return frozenset(self._submitting)

    def state_of(self, item_id: str) -> DispatchState:
        return DispatchState.SUBMITTING if item_id in self._submitting else DispatchState.IDLE

    def _validate(self, action: ReviewAction, ids: tuple[str, ...], payload: DecisionPayload, bulk: bool) -> None:
        if action not in self._surface.supported_actions:
            raise UnsupportedAction(f"{action} is not available on the {self._surface.kind} queue")
        if bulk and (not self._surface.supports_bulk or action not in BULK_ACTIONS):
            raise UnsupportedAction(f"{action} cannot be applied to a selection on the {self._surface.kind} queue")
        if action is ReviewAction.CORRECT and not payload.corrected_vrm:
            raise CorrectionMissing("Enter the corrected registration before submitting")
        busy = self._submitting.intersection(ids)
        if busy:
            raise AlreadySubmitting(f"Already submitting {', '.join(sorted(busy))}")

    def _notify(self, ids: tuple[str, ...], state: DispatchState) -> None:
        if self._on_state is not None:
            self._on_state(ids, state)

    async def dispatch(
        self,
        action: ReviewAction,
        ids: Sequence[str],
        payload: DecisionPayload | None = None,
        *,
        bulk: bool = False,
    ) -> DecisionResult:
        """Submit *action* for *ids* and report the outcome.

        Parameters
        ----------
        action : ReviewAction
            Operator action.  ``SKIP`` never reaches the network.
        ids : sequence of str
            Target ids; exactly one unless *bulk*.
        payload : DecisionPayload or None
            Notes, corrected VRM or discard reason.
        bulk : bool
            Send one batch request for all *ids*.  The batch is atomic:
            it either succeeds or fails as a whole.
        """
        targets = tuple(dict.fromkeys(ids))
        payload = payload or DecisionPayload()

        if action is ReviewAction.SKIP:
            return DecisionResult(action, targets, DispatchOutcome.SKIPPED)
        if not targets:
            return DecisionResult(action, targets, DispatchOutcome.IGNORED)

        try:
            self._validate(action, targets, payload, bulk)
        except AlreadySubmitting as exc:
            _logger.debug("Ignoring %s: %s", action, exc)
            return DecisionResult(action, targets, DispatchOutcome.IGNORED, exc)
        except DecisionError as exc:
            return DecisionResult(action, targets, DispatchOutcome.FAILED, exc)

        self._submitting.update(targets)
        self._notify(targets, DispatchState.SUBMITTING)
        try:
            if bulk:
                await self._tracker.run(
                    lambda: self._surface.submit_bulk(
                        self._transport, action, targets, payload, operator_id=self._operator_id
                    )
                )
            else:
                await self._tracker.run(
                    lambda: self._surface.submit(
                        self._transport, action, targets[0], payload, operator_id=self._operator_id
                    )
                )
        except DecisionError as exc:
            _logger.warning("%s of %d item(s) failed: %s", action, len(targets), exc)
            return DecisionResult(action, targets, DispatchOutcome.FAILED, exc)
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            _logger.debug("%s of %d item(s) aborted by teardown", action, len(targets))
            return DecisionResult(action, targets, DispatchOutcome.CANCELLED)
        finally:
            self._submitting.difference_update(targets)
            self._notify(targets, DispatchState.IDLE)

        _logger.info("%s applied to %d item(s)", action, len(targets))
        return DecisionResult(action, targets, DispatchOutcome.SUCCESS)
