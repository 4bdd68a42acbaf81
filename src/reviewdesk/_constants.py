"""Internal constants shared across the library."""

from datetime import timedelta

BASE_URL = "http://localhost:3000"
USER_AGENT = "reviewdesk/1"

#: Default page size of every queue endpoint.
DEFAULT_PAGE_SIZE = 50

#: Default number of vehicle-scoped audit entries requested per reconstruction.
DEFAULT_AUDIT_LIMIT = 100

#: Margin added on each side of an entry/exit window for vehicle audit search.
AUDIT_WINDOW_MARGIN = timedelta(hours=1)

#: Plate reads the ANPR pipeline could not resolve.  Nothing can be
#: correlated on them, so audit reconstruction short-circuits.
UNKNOWN_VRM = "UNKNOWN"

#: Default discard reason when the operator leaves no note.
DEFAULT_DISCARD_REASON = "Discarded by operator"

# ------------------------------------------------------------------
# Endpoint paths
# ------------------------------------------------------------------

ENFORCEMENT_QUEUE = "/enforcement/queue"
ENFORCEMENT_REVIEW = "/enforcement/review/{id}"

PLATE_QUEUE = "/plate-review/queue"
PLATE_APPROVE = "/plate-review/{id}/approve"
PLATE_CORRECT = "/plate-review/{id}/correct"
PLATE_DISCARD = "/plate-review/{id}/discard"
PLATE_BULK_APPROVE = "/plate-review/bulk-approve"
PLATE_BULK_DISCARD = "/plate-review/bulk-discard"
PLATE_STATS = "/plate-review/stats/summary"
PLATE_SUGGESTIONS = "/plate-review/{id}/suggestions"

AUDIT_SEARCH = "/api/audit/search"
AUDIT_SESSION = "/api/audit/session/{id}"
AUDIT_DECISION = "/api/audit/decision/{id}"


def normalize_vrm(vrm: str | None) -> str:
    """Uppercase a VRM and strip all whitespace (``"ab12 cde"`` → ``"AB12CDE"``)."""
    if not vrm:
        return ""
    return "".join(vrm.split()).upper()


def is_correlatable_vrm(vrm: str | None) -> bool:
    """Whether *vrm* identifies a vehicle well enough to search audit history."""
    normalized = normalize_vrm(vrm)
    return bool(normalized) and normalized != UNKNOWN_VRM
