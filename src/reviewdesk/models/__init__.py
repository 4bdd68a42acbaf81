"""Data models for operator API payloads."""

from reviewdesk.models._base import ApiTimestamp, ReviewBaseModel, ReviewEnum, parse_api_timestamp
from reviewdesk.models.actions import (
    BULK_ACTIONS,
    DecisionPayload,
    DecisionResult,
    DispatchOutcome,
    DispatchState,
    ReviewAction,
)
from reviewdesk.models.audit import AuditLogEntry, AuditSource
from reviewdesk.models.filter import DecisionStatus, QueueFilter, ReviewStatus, ValidationStatus
from reviewdesk.models.items import (
    AuditKey,
    EnforcementDecision,
    ImageRef,
    PlateReview,
    QueueItem,
    QueueItemKind,
    QueuePage,
    ReviewItem,
)
from reviewdesk.models.stats import CorrectionSuggestion, ReviewStatistics, ValidationBreakdown

__all__ = [
    "BULK_ACTIONS",
    "ApiTimestamp",
    "AuditKey",
    "AuditLogEntry",
    "AuditSource",
    "CorrectionSuggestion",
    "DecisionPayload",
    "DecisionResult",
    "DecisionStatus",
    "DispatchOutcome",
    "DispatchState",
    "EnforcementDecision",
    "ImageRef",
    "PlateReview",
    "QueueFilter",
    "QueueItem",
    "QueueItemKind",
    "QueuePage",
    "ReviewAction",
    "ReviewBaseModel",
    "ReviewEnum",
    "ReviewItem",
    "ReviewStatistics",
    "ReviewStatus",
    "ValidationBreakdown",
    "ValidationStatus",
    "parse_api_timestamp",
]
