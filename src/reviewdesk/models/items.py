"""Queue item models.

A queue item is opaque to the controller apart from its ``id`` and the
correlation keys it exposes for audit reconstruction.  The two review
surfaces carry different payloads, modelled as a tagged union on
``kind``.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal, Protocol, runtime_checkable

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from reviewdesk.models._base import ApiTimestamp, ReviewBaseModel
from reviewdesk.models.filter import ReviewStatus, ValidationStatus


class QueueItemKind(StrEnum):
    DECISION = "decision"
    PLATE = "plate"


class AuditKey(BaseModel):
    """Identifiers an item offers for audit correlation.

    Any subset may be present; the reconstructor only queries the
    sources whose identifiers are available.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    site_id: str = ""
    vrm: str | None = None
    entry_time: datetime | None = None
    exit_time: datetime | None = None
    session_id: str | None = None
    decision_id: str | None = None


@runtime_checkable
class ReviewItem(Protocol):
    """Capability interface the controller needs from a queue item."""

    @property
    def id(self) -> str: ...

    def correlation_keys(self) -> AuditKey: ...


class ImageRef(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str
    type: str = ""


def _metadata_str(metadata: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = metadata.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


class _ItemBase(ReviewBaseModel):
    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _id_non_empty(cls, value: Any) -> str:
        item_id = str(value).strip()
        if not item_id:
            raise ValueError("id must be non-empty")
        return item_id


class EnforcementDecision(_ItemBase):
    """An enforcement candidate awaiting operator review.

    Mapped from the ``/enforcement/queue`` response.
    """

    kind: Literal["decision"] = "decision"
    vrm: str = ""
    """Vehicle registration mark as read by ANPR."""
    site_id: str = ""
    reason: str = ""
    """Rule that flagged the session (e.g. ``OVERSTAY``)."""
    confidence_score: float | None = None
    """Model confidence in ``[0, 1]``."""
    timestamp: ApiTimestamp = Field(default=None, validation_alias=AliasChoices("timestamp", "createdAt"))
    session_id: str | None = None
    entry_time: ApiTimestamp = None
    exit_time: ApiTimestamp = None
    status: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def images(self) -> list[ImageRef]:
        raw_images = self.metadata.get("images")
        if not isinstance(raw_images, list):
            return []
        return [ImageRef.model_validate(img) for img in raw_images if isinstance(img, dict) and img.get("url")]

    def correlation_keys(self) -> AuditKey:
        return AuditKey(
            vrm=self.vrm or None,
            site_id=self.site_id,
            entry_time=self.entry_time or self.timestamp,
            exit_time=self.exit_time,
            session_id=self.session_id or _metadata_str(self.metadata, "sessionId"),
            decision_id=self.id,
        )


class PlateReview(_ItemBase):
    """An ambiguous plate read awaiting operator review.

    Mapped from the ``/plate-review/queue`` response.
    """

    kind: Literal["plate"] = "plate"
    movement_id: str | None = None
    original_vrm: str = ""
    normalized_vrm: str = ""
    site_id: str = ""
    timestamp: ApiTimestamp = None
    confidence: float | None = None
    suspicion_reasons: list[str] = Field(default_factory=list)
    validation_status: ValidationStatus = ValidationStatus.UNKNOWN
    review_status: ReviewStatus = ReviewStatus.PENDING
    corrected_vrm: str | None = None
    reviewed_by: str | None = None
    reviewed_at: ApiTimestamp = None
    review_notes: str | None = None
    images: list[ImageRef] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def vrm(self) -> str:
        return self.normalized_vrm or self.original_vrm

    def correlation_keys(self) -> AuditKey:
        return AuditKey(
            vrm=self.vrm or None,
            site_id=self.site_id,
            entry_time=self.timestamp,
            session_id=_metadata_str(self.metadata, "sessionId"),
            decision_id=_metadata_str(self.metadata, "decisionId"),
        )


QueueItem = Annotated[EnforcementDecision | PlateReview, Field(discriminator="kind")]


class QueuePage(BaseModel):
    """One page of a queue listing."""

    model_config = ConfigDict(frozen=True)

    items: tuple[Any, ...] = ()
    total: int = 0
    limit: int = 0
    offset: int = 0
