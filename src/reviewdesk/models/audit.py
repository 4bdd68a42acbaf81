"""Audit log entry model."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any

from pydantic import AliasChoices, BeforeValidator, Field, field_validator

from reviewdesk.models._base import ReviewBaseModel, parse_api_timestamp


class AuditSource(StrEnum):
    """Independent log streams an audit timeline is merged from."""

    VEHICLE = "vehicle"
    SESSION = "session"
    DECISION = "decision"


class AuditLogEntry(ReviewBaseModel):
    """A single audit record.

    ``action`` is the backend's standardized action code
    (``MOVEMENT_INGESTED``, ``DECISION_CREATED``, ``ENFORCEMENT_REVIEWED``
    and so on).  ``source_stream`` is stamped by the reconstructor and
    records which stream delivered the entry.
    """

    id: str
    timestamp: Annotated[datetime, BeforeValidator(parse_api_timestamp)]
    action: str = "UNKNOWN"
    actor: str = Field(default="SYSTEM", validation_alias=AliasChoices("actor", "performedBy", "performed_by"))
    source_stream: AuditSource
    entity_type: str | None = None
    entity_id: str | None = None
    site_id: str | None = None
    vrm: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, value: Any) -> str:
        entry_id = str(value).strip()
        if not entry_id:
            raise ValueError("id must be non-empty")
        return entry_id

    @classmethod
    def from_api(cls, payload: dict[str, Any], source: AuditSource) -> AuditLogEntry:
        """Validate *payload* and stamp it with the stream it came from."""
        data = dict(payload)
        data["sourceStream"] = source
        data["raw"] = dict(payload)
        return cls.model_validate(data)
