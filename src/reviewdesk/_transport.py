"""HTTP transport for the operator API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from reviewdesk._constants import USER_AGENT
from reviewdesk._redact import redact_for_log
from reviewdesk.config import ReviewConfig
from reviewdesk.exceptions import ReviewApiError, ReviewTransportError

_logger = logging.getLogger(__name__)

QueryParams = Mapping[str, str | int]


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    Cancelling the awaiting task must abort the underlying request.
    """

    async def get_json(self, endpoint: str, params: QueryParams | None = None) -> Any:
        ...

    async def post_json(self, endpoint: str, body: Mapping[str, Any]) -> Any:
        ...


def _error_message(text: str, status: int) -> str:
    """Extract the human-readable message from an error body.

    The backend answers errors as ``{"statusCode": 400, "message": ...}``
    where ``message`` is a string or a list of validation messages.
    """
    try:
        body = json.loads(text)
    except json.JSONDecodeError:
        body = None
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, list):
            parts = [str(m) for m in message if m]
            if parts:
                return "; ".join(parts)
        elif isinstance(message, str) and message.strip():
            return message
        error = body.get("error")
        if isinstance(error, str) and error.strip():
            return error
    snippet = text.strip()[:200]
    return snippet or f"HTTP {status}"


class HttpTransport:
    """JSON-over-HTTP transport backed by an :class:`aiohttp.ClientSession`."""

    def __init__(self, config: ReviewConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if self._config.api_token:
            headers["authorization"] = f"Bearer {self._config.api_token}"
        return headers

    async def get_json(self, endpoint: str, params: QueryParams | None = None) -> Any:
        return await self._request("GET", endpoint, params=params)

    async def post_json(self, endpoint: str, body: Mapping[str, Any]) -> Any:
        return await self._request("POST", endpoint, body=body)

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: QueryParams | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> Any:
        url = f"{self._config.base_url.rstrip('/')}{endpoint}"
        query = {k: str(v) for k, v in params.items()} if params else None

        _logger.debug("%s %s params=%s body=%s", method, url, query, redact_for_log(body))

        try:
            async with self._http.request(
                method,
                url,
                params=query,
                json=dict(body) if body is not None else None,
                headers=self._headers(),
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                if resp.status >= 400:
                    raise ReviewApiError(
                        _error_message(text, resp.status),
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except ReviewTransportError:
            raise
        except TimeoutError as exc:
            raise ReviewTransportError(
                f"Request to {endpoint} timed out after {self._config.request_timeout}s",
                endpoint=endpoint,
            ) from exc
        except aiohttp.ClientError as exc:
            raise ReviewTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        if not text.strip():
            return None

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise ReviewTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                status_code=resp.status,
                endpoint=endpoint,
            ) from exc
