"""Review statistics and correction suggestion models."""

from __future__ import annotations

from pydantic import Field

from reviewdesk.models._base import ReviewBaseModel


class ValidationBreakdown(ReviewBaseModel):
    uk_suspicious: int = 0
    international_suspicious: int = 0
    invalid: int = 0


class ReviewStatistics(ReviewBaseModel):
    """Counts per review status for the current site scope.

    Mapped from ``/plate-review/stats/summary``.
    """

    total_pending: int = 0
    total_approved: int = 0
    total_corrected: int = 0
    total_discarded: int = 0
    total: int = 0
    by_validation_status: ValidationBreakdown = Field(default_factory=ValidationBreakdown)

    @property
    def total_reviewed(self) -> int:
        return self.total_approved + self.total_corrected + self.total_discarded


class CorrectionSuggestion(ReviewBaseModel):
    """A candidate correction for an ambiguous plate read."""

    original_vrm: str = ""
    suggested_vrm: str
    reason: str = ""
    confidence: float | None = None
