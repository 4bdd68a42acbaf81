"""Helpers for safe debug logging.

The console handles personal data (vehicle registration marks, free-text
operator notes) and bearer tokens.  This module redacts those fields
before they are emitted in DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "authorization",
        "cookie",
        "token",
        "apitoken",
        "password",
        # Free text typed by operators
        "notes",
        "reason",
    }
)

_VRM_KEYS: frozenset[str] = frozenset(
    {
        "vrm",
        "originalvrm",
        "normalizedvrm",
        "correctedvrm",
        "suggestedvrm",
    }
)


def mask_vrm(vrm: str | None) -> str:
    """Mask all but the last two characters of a VRM (``"AB12CDE"`` → ``"*****DE"``)."""
    if not vrm:
        return ""
    if len(vrm) <= 2:
        return "*" * len(vrm)
    return "*" * (len(vrm) - 2) + vrm[-2:]


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs."""
    if _depth > 20:
        return "<max-depth>"

    if value is None:
        return None

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            lowered = key.lower()
            if lowered in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>"
            elif lowered in _VRM_KEYS and isinstance(v, str):
                redacted[key] = mask_vrm(v)
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    return repr(value)
