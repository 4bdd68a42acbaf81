"""Controller configuration for reviewdesk."""

from __future__ import annotations

import dataclasses
import os
from datetime import UTC, date, datetime, timedelta
from typing import Any

from reviewdesk._constants import (
    AUDIT_WINDOW_MARGIN,
    BASE_URL,
    DEFAULT_AUDIT_LIMIT,
    DEFAULT_PAGE_SIZE,
)
from reviewdesk.exceptions import ReviewConfigError
from reviewdesk.models.filter import QueueFilter


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class ReviewConfig:
    """Controller configuration.

    Parameters
    ----------
    base_url : str
        API base URL of the operator backend.
    operator_id : str
        Identifier sent as ``operatorId`` / ``userId`` with every decision.
    page_size : int
        Queue page size (``limit``).  The backend default is 50.
    audit_vehicle_limit : int
        ``limit`` for the vehicle-scoped audit search.
    audit_window_margin : timedelta
        Margin added before entry and after exit when searching vehicle
        audit history.  Defaults to one hour on each side.
    request_timeout : float
        Total timeout in seconds for a single HTTP request.
    load_statistics : bool
        Fetch review statistics alongside the queue (surfaces without a
        statistics endpoint ignore this).
    api_token : str or None
        Bearer token sent as ``Authorization`` when set.
    default_lookback_days : int
        Size of the date window of the mount-time filter.
    """

    base_url: str = BASE_URL
    operator_id: str = "operator"
    page_size: int = DEFAULT_PAGE_SIZE
    audit_vehicle_limit: int = DEFAULT_AUDIT_LIMIT
    audit_window_margin: timedelta = AUDIT_WINDOW_MARGIN
    request_timeout: float = 30.0
    load_statistics: bool = True
    api_token: str | None = None
    default_lookback_days: int = 7

    def __post_init__(self) -> None:
        if self.page_size <= 0:
            raise ReviewConfigError(f"page_size must be positive, got {self.page_size}")
        if self.audit_vehicle_limit <= 0:
            raise ReviewConfigError(f"audit_vehicle_limit must be positive, got {self.audit_vehicle_limit}")
        if self.audit_window_margin < timedelta(0):
            raise ReviewConfigError("audit_window_margin must not be negative")
        if not self.operator_id.strip():
            raise ReviewConfigError("operator_id must be non-empty")

    def default_filter(self, *, today: date | None = None, status: str | None = None) -> QueueFilter:
        """Build the filter a queue surface mounts with.

        All sites, the last ``default_lookback_days`` days up to *today*.
        """
        if today is None:
            today = datetime.now(UTC).date()
        return QueueFilter(
            date_from=today - timedelta(days=self.default_lookback_days),
            date_to=today,
            status=status,
        )

    @classmethod
    def from_env(cls, **overrides: Any) -> ReviewConfig:
        """Create configuration from environment variables.

        Reads optional ``REVIEWDESK_*`` variables.  Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        ReviewConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "REVIEWDESK_BASE_URL": "base_url",
            "REVIEWDESK_OPERATOR_ID": "operator_id",
            "REVIEWDESK_API_TOKEN": "api_token",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        try:
            page_size_env = env.get("REVIEWDESK_PAGE_SIZE")
            if page_size_env is not None and "page_size" not in overrides:
                config_kwargs["page_size"] = int(page_size_env)

            limit_env = env.get("REVIEWDESK_AUDIT_LIMIT")
            if limit_env is not None and "audit_vehicle_limit" not in overrides:
                config_kwargs["audit_vehicle_limit"] = int(limit_env)

            margin_env = env.get("REVIEWDESK_AUDIT_MARGIN_SECONDS")
            if margin_env is not None and "audit_window_margin" not in overrides:
                config_kwargs["audit_window_margin"] = timedelta(seconds=float(margin_env))

            timeout_env = env.get("REVIEWDESK_REQUEST_TIMEOUT")
            if timeout_env is not None and "request_timeout" not in overrides:
                config_kwargs["request_timeout"] = float(timeout_env)

            lookback_env = env.get("REVIEWDESK_LOOKBACK_DAYS")
            if lookback_env is not None and "default_lookback_days" not in overrides:
                config_kwargs["default_lookback_days"] = int(lookback_env)
        except ValueError as exc:
            raise ReviewConfigError(f"Invalid numeric REVIEWDESK_* setting: {exc}") from exc

        if "load_statistics" not in overrides:
            config_kwargs["load_statistics"] = _env_bool(env.get("REVIEWDESK_LOAD_STATISTICS"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
