"""Base model and enum for operator API payloads.

Every response model inherits from :class:`ReviewBaseModel` which
provides:

* ``alias_generator=to_camel`` so camelCase API keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that drops ``None`` values and
  blank strings so the field default is used.
* A ``raw`` dict that captures the original payload.

Status enums inherit from :class:`ReviewEnum` which adds an ``UNKNOWN``
member and a ``_missing_`` hook that returns it for any value the
backend sends without a mapped member.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_api_timestamp(value: Any) -> datetime | None:
    """Convert an API timestamp to a timezone-aware UTC datetime.

    Accepts ISO-8601 strings (``Z`` suffix included), epoch seconds or
    epoch milliseconds.  Naive values are assumed to be UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        ts = float(value)
        if ts >= _MS_THRESHOLD:
            ts /= 1000.0
        parsed = datetime.fromtimestamp(ts, tz=UTC)
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip())
    else:
        raise ValueError(f"unsupported timestamp value: {value!r}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed


ApiTimestamp = Annotated[datetime | None, BeforeValidator(parse_api_timestamp)]
"""Annotated type that coerces ISO strings and epoch numbers to UTC datetimes."""


class ReviewEnum(StrEnum):
    """Base for API status enums.

    Every subclass **must** define ``UNKNOWN = "UNKNOWN"``.
    """

    @classmethod
    def _missing_(cls, value: object) -> ReviewEnum:
        if isinstance(value, str):
            upper = value.strip().upper()
            for member in cls:
                if member.value == upper:
                    return member
        unknown: ReviewEnum = cls["UNKNOWN"]
        return unknown


class ReviewBaseModel(BaseModel):
    """Base for operator API response models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict, repr=False)
    """Original API response dict."""

    @model_validator(mode="before")
    @classmethod
    def _clean_api_values(cls, values: Any) -> Any:
        """Drop empty values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            cleaned[key] = value
        # Keep an explicit raw= from keyword construction.
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned
