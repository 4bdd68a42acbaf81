"""reviewdesk - Async controller for operator review queues."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("reviewdesk")
except PackageNotFoundError:
    __version__ = "0+local"
from reviewdesk.config import ReviewConfig
from reviewdesk.controller import ReviewQueueController
from reviewdesk.exceptions import (
    AlreadySubmitting,
    CorrectionMissing,
    DecisionError,
    DecisionRejected,
    FetchFailed,
    RequestSuperseded,
    ReviewApiError,
    ReviewConfigError,
    ReviewDeskError,
    ReviewTransportError,
    UnsupportedAction,
)
from reviewdesk.keyboard import FocusTarget, KeyAction, KeyboardDispatcher, KeyboardScopeStack, KeyEvent
from reviewdesk.models import (
    AuditKey,
    AuditLogEntry,
    AuditSource,
    CorrectionSuggestion,
    DecisionPayload,
    DecisionResult,
    DispatchOutcome,
    EnforcementDecision,
    PlateReview,
    QueueFilter,
    ReviewAction,
    ReviewStatistics,
    ReviewStatus,
    ValidationStatus,
)
from reviewdesk.state.review_state import ReviewState
from reviewdesk.state.selection import SelectionSet
from reviewdesk.state.snapshot import QueueSnapshot
from reviewdesk.surfaces import EnforcementSurface, PlateReviewSurface, ReviewSurface

__all__ = [
    "__version__",
    "AlreadySubmitting",
    "AuditKey",
    "AuditLogEntry",
    "AuditSource",
    "CorrectionMissing",
    "CorrectionSuggestion",
    "DecisionError",
    "DecisionPayload",
    "DecisionRejected",
    "DecisionResult",
    "DispatchOutcome",
    "EnforcementDecision",
    "EnforcementSurface",
    "FetchFailed",
    "FocusTarget",
    "KeyAction",
    "KeyEvent",
    "KeyboardDispatcher",
    "KeyboardScopeStack",
    "PlateReview",
    "PlateReviewSurface",
    "QueueFilter",
    "QueueSnapshot",
    "RequestSuperseded",
    "ReviewAction",
    "ReviewApiError",
    "ReviewConfig",
    "ReviewConfigError",
    "ReviewDeskError",
    "ReviewQueueController",
    "ReviewState",
    "ReviewStatistics",
    "ReviewStatus",
    "ReviewSurface",
    "ReviewTransportError",
    "SelectionSet",
    "UnsupportedAction",
    "ValidationStatus",
]
