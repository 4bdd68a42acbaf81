"""Custom exception hierarchy for reviewdesk."""

from __future__ import annotations


class ReviewDeskError(Exception):
    """Base exception for all reviewdesk errors."""


class ReviewConfigError(ReviewDeskError):
    """Invalid or missing configuration (including an invalid filter)."""


class ReviewTransportError(ReviewDeskError):
    """HTTP-level failure (network, timeout, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class ReviewApiError(ReviewTransportError):
    """The API answered with a non-2xx status.

    ``message`` is the human-readable text from the response body, kept
    verbatim so it can be shown to the operator.
    """


class FetchFailed(ReviewDeskError):
    """A queue, audit or statistics fetch failed.

    Recoverable: the previous state is retained and the fetch can be retried.
    """

    def __init__(self, message: str, *, category: str = "") -> None:
        self.category = category
        super().__init__(message)


class DecisionError(ReviewDeskError):
    """Base for failures of a single or bulk decision."""


class DecisionRejected(DecisionError):
    """The server declined an action; the item stays in the queue."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class CorrectionMissing(DecisionError):
    """A correction was requested without a corrected value.

    Raised client-side; no network call is made.
    """


class AlreadySubmitting(DecisionError):
    """An action for the same target is still in flight.

    Guards against double submission from a fast double key-press.
    """


class UnsupportedAction(DecisionError):
    """The review surface has no endpoint for the requested action."""


class RequestSuperseded(ReviewDeskError):
    """A newer request of the same category was issued.

    Internal: the controller drops the response silently.
    """
