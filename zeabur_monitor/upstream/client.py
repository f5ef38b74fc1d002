"""httpx-based GraphQL transport for the Zeabur API.

``execute`` returns the parsed JSON body or raises one of the
``Upstream*`` errors. It never looks at the ``data`` / ``errors`` envelope,
that is left to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from zeabur_monitor.errors import MonitorError

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://api.zeabur.com/graphql"
DEFAULT_TIMEOUT = 10.0


class UpstreamError(MonitorError):
    """Base class for failures talking to the Zeabur API."""


class UpstreamTimeout(UpstreamError):
    """Raised when a request exceeds the timeout."""


class UpstreamTransport(UpstreamError):
    """Raised on connection-level failures."""


class UpstreamMalformedResponse(UpstreamError):
    """Raised when the response body is not JSON."""


class UpstreamRejected(UpstreamError):
    """A mutation or query came back without the expected result."""

    status_code = 400


class UpstreamClient:
    """Async GraphQL client shared by every request handler."""

    def __init__(
        self,
        url: str = DEFAULT_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def timeout(self) -> float:
        return self._timeout

    async def execute(
        self,
        token: str,
        query: str,
        variables: dict[str, Any] | None = None,
        operation_name: str | None = None,
    ) -> Any:
        """POST one GraphQL operation and return the decoded body."""
        payload: dict[str, Any] = {"query": query}
        if operation_name:
            payload["operationName"] = operation_name
        if variables is not None:
            payload["variables"] = variables

        # httpx times each phase separately; wait_for bounds the whole exchange
        try:
            resp = await asyncio.wait_for(
                self._client.post(
                    self._url,
                    json=payload,
                    headers={"Authorization": f"Bearer {token}"},
                ),
                self._timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            logger.warning("Zeabur request timed out after %gs", self._timeout)
            raise UpstreamTimeout("Request timeout") from exc
        except httpx.TransportError as exc:
            logger.warning("Zeabur request failed: %s", exc)
            raise UpstreamTransport(f"Connection error: {exc}") from exc

        try:
            return resp.json()
        except ValueError as exc:
            logger.warning(
                "Zeabur returned non-JSON body (HTTP %d): %s",
                resp.status_code,
                resp.text[:200],
            )
            raise UpstreamMalformedResponse("Invalid JSON response") from exc

    async def close(self) -> None:
        await self._client.aclose()
