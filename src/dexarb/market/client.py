"""
Async JSON-over-HTTP client shared by the price sources.

Optimized for repeated polling with:
- Connection pooling and keep-alive
- Fast JSON parsing with orjson
- Transport and payload failures mapped to SourceUnavailable
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import aiohttp
import orjson

from dexarb.config.constants import (
    DEFAULT_FETCH_TIMEOUT,
    HTTP_CONNECTION_LIMIT,
    HTTP_KEEPALIVE_TIMEOUT,
    HTTP_USER_AGENT,
)
from dexarb.core.errors import SourceUnavailable


class HttpJsonClient:
    """
    Async JSON client for one venue.

    Features:
    - Single session with connection pooling
    - Keep-alive for reduced latency
    - orjson for fast JSON parsing and serialization
    - Optional shared session supplied by the caller
    """

    def __init__(
        self,
        venue: str,
        timeout_s: float = DEFAULT_FETCH_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            venue: Venue name used in error reports.
            timeout_s: Total request timeout.
            session: Shared session; the client will not close it.
        """
        self._venue = venue
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=HTTP_CONNECTION_LIMIT,
                keepalive_timeout=HTTP_KEEPALIVE_TIMEOUT,
                enable_cleanup_closed=True,
            )

            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={
                    "Accept": "application/json",
                    "User-Agent": HTTP_USER_AGENT,
                },
                json_serialize=lambda x: orjson.dumps(x).decode(),
            )
            self._owns_session = True

        return self._session

    async def close(self) -> None:
        """Close the client session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    @asynccontextmanager
    async def _request_context(self) -> AsyncIterator[aiohttp.ClientSession]:
        """Context manager mapping network errors to SourceUnavailable."""
        session = await self._get_session()
        try:
            yield session
        except aiohttp.ClientError as e:
            raise SourceUnavailable(self._venue, f"network error: {e}") from e
        except TimeoutError as e:
            raise SourceUnavailable(self._venue, "request timed out") from e

    async def _request(
        self,
        method: str,
        url: str,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make a request and return the parsed JSON body.

        Args:
            method: HTTP method (GET or POST).
            url: Absolute endpoint URL.
            payload: JSON body for POST.

        Raises:
            SourceUnavailable: On network error, non-2xx status, or bad JSON.
        """
        async with self._request_context() as session:
            if method == "GET":
                async with session.get(url, timeout=self._timeout) as response:
                    return await self._handle_response(response)
            elif method == "POST":
                async with session.post(url, json=payload, timeout=self._timeout) as response:
                    return await self._handle_response(response)
            else:
                raise SourceUnavailable(self._venue, f"unsupported method: {method}")

    async def _handle_response(self, response: aiohttp.ClientResponse) -> Any:
        """Parse and validate response."""
        body = await response.read()

        if response.status >= 300:
            snippet = body[:200].decode(errors="replace")
            raise SourceUnavailable(
                self._venue,
                f"HTTP {response.status}: {snippet}",
                status=response.status,
            )

        try:
            return orjson.loads(body)
        except orjson.JSONDecodeError as e:
            raise SourceUnavailable(self._venue, f"invalid JSON response: {e}") from e

    async def __aenter__(self) -> "HttpJsonClient":
        """Async context manager entry."""
        await self._get_session()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()
