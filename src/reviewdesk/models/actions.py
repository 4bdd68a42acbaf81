"""Operator actions and decision outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator

from reviewdesk.exceptions import DecisionError


class ReviewAction(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"
    CORRECT = "correct"
    DISCARD = "discard"
    SKIP = "skip"


#: Actions that may target a selection instead of a single item.
BULK_ACTIONS: frozenset[ReviewAction] = frozenset({ReviewAction.APPROVE, ReviewAction.DISCARD})


class DispatchState(StrEnum):
    IDLE = "idle"
    SUBMITTING = "submitting"


class DispatchOutcome(StrEnum):
    SUCCESS = "success"
    """Server accepted; the target items left the queue."""
    SKIPPED = "skipped"
    """Local skip; no network call."""
    FAILED = "failed"
    """Validation, server or network failure; the queue is unchanged."""
    IGNORED = "ignored"
    """Duplicate action on a target that is still submitting, or nothing to act on."""
    CANCELLED = "cancelled"
    """The submission was aborted by teardown."""


class DecisionPayload(BaseModel):
    """Optional data attached to a decision."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    notes: str | None = None
    corrected_vrm: str | None = None
    reason: str | None = None

    @field_validator("notes", "corrected_vrm", "reason")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value

    @field_validator("corrected_vrm")
    @classmethod
    def _normalize_vrm(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return "".join(value.split()).upper()


@dataclass(frozen=True, slots=True)
class DecisionResult:
    """What happened to one dispatched action."""

    action: ReviewAction
    ids: tuple[str, ...]
    outcome: DispatchOutcome
    error: DecisionError | None = None

    @property
    def ok(self) -> bool:
        return self.outcome in (DispatchOutcome.SUCCESS, DispatchOutcome.SKIPPED)

    @property
    def message(self) -> str | None:
        return str(self.error) if self.error is not None else None
