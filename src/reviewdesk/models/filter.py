"""Queue filter model and the status vocabularies it filters on."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from reviewdesk.exceptions import ReviewConfigError
from reviewdesk.models._base import ReviewEnum


class ReviewStatus(ReviewEnum):
    """Lifecycle of a plate review."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    CORRECTED = "CORRECTED"
    DISCARDED = "DISCARDED"
    UNKNOWN = "UNKNOWN"


class ValidationStatus(ReviewEnum):
    """Plate validation verdict from the rule engine."""

    UK_VALID = "UK_VALID"
    INTERNATIONAL_VALID = "INTERNATIONAL_VALID"
    UK_SUSPICIOUS = "UK_SUSPICIOUS"
    INTERNATIONAL_SUSPICIOUS = "INTERNATIONAL_SUSPICIOUS"
    INVALID = "INVALID"
    UNKNOWN = "UNKNOWN"


class DecisionStatus(ReviewEnum):
    """Lifecycle of an enforcement decision."""

    NEW = "NEW"
    CANDIDATE = "CANDIDATE"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"
    EXPORTED = "EXPORTED"
    UNKNOWN = "UNKNOWN"


class QueueFilter(BaseModel):
    """The predicate a queue is scoped to.

    Immutable: every change produces a new filter (see :meth:`replace`)
    and a new filter always triggers a re-fetch.  An empty ``site_ids``
    means all sites.  ``status`` is the surface's own status vocabulary
    (:class:`ReviewStatus` for plates, :class:`DecisionStatus` for
    enforcement) and is passed through upper-cased.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    site_ids: frozenset[str] = frozenset()
    date_from: date | None = None
    date_to: date | None = None
    status: str | None = None
    validation: ValidationStatus | None = None

    @field_validator("site_ids", mode="before")
    @classmethod
    def _normalize_sites(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, (list, tuple, set, frozenset)):
            return frozenset(str(v).strip() for v in value if str(v).strip())
        return value

    @field_validator("status")
    @classmethod
    def _normalize_status(cls, value: str | None) -> str | None:
        if value is None:
            return None
        status = value.strip().upper()
        if not status or status == "ALL":
            return None
        return status

    @field_validator("validation")
    @classmethod
    def _reject_unknown_validation(cls, value: ValidationStatus | None) -> ValidationStatus | None:
        if value is ValidationStatus.UNKNOWN:
            raise ValueError("unknown validation status")
        return value

    @model_validator(mode="after")
    def _check_date_range(self) -> QueueFilter:
        if self.date_from is not None and self.date_to is not None and self.date_from > self.date_to:
            raise ValueError(f"date_from {self.date_from} is after date_to {self.date_to}")
        return self

    def replace(self, **changes: Any) -> QueueFilter:
        """Return a new, re-validated filter with *changes* applied.

        Raises :class:`ReviewConfigError` when the result is invalid.
        """
        data = self.model_dump()
        data.update(changes)
        try:
            return QueueFilter.model_validate(data)
        except ValidationError as exc:
            raise ReviewConfigError(f"Invalid queue filter: {exc}") from exc

    def with_site_toggled(self, site_id: str) -> QueueFilter:
        """Add *site_id* to the site set, or remove it if already present."""
        sites = set(self.site_ids)
        if site_id in sites:
            sites.remove(site_id)
        else:
            sites.add(site_id)
        return self.replace(site_ids=frozenset(sites))

    def cleared(self) -> QueueFilter:
        """All sites, no dates, no validation filter; the status is kept."""
        return QueueFilter(status=self.status)
