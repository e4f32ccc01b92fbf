# SPDX-License-Identifier: MIT
"""HTTP client for the remote Bitable open API."""

import asyncio
from typing import Any

import aiohttp

from .constants import DEFAULT_BASE_URL, DEFAULT_REQUEST_TIMEOUT
from .exceptions import RemoteError
from .logging_config import get_detail_logger


detail_logger = get_detail_logger()


class RemoteClient:
    """Thin aiohttp wrapper returning decoded JSON envelopes.

    Every request is bounded by a total timeout. Transport failures, timeouts
    and undecodable bodies raise RemoteError; interpreting the envelope's
    `code` is left to the caller.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """Initialize remote client.

        Args:
            base_url: Open API base URL
            timeout: Total timeout in seconds for a single request
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json; charset=utf-8"}
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "RemoteClient":
        """Async context manager entry."""
        self._get_session()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: Exception | None, exc_tb: object
    ) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self.session

    async def request_json(
        self,
        method: str,
        path: str,
        token: str | None = None,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make a request and return the decoded JSON envelope.

        Args:
            method: HTTP method
            path: API path below the base URL
            token: Optional bearer token
            params: Optional query parameters
            json_body: Optional JSON body

        Returns:
            Decoded JSON object

        Raises:
            RemoteError: On transport failure, timeout, HTTP error without an
                envelope, or an undecodable body
        """
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {token}"} if token else None
        session = self._get_session()

        detail_logger.debug(f"{method} {url} params={params}")

        try:
            async with session.request(
                method, url, headers=headers, params=params, json=json_body
            ) as response:
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    body = await response.text()
                    raise RemoteError(
                        f"HTTP {response.status} with invalid JSON body: {body[:500]}"
                    ) from e

                if not isinstance(data, dict) or "code" not in data:
                    if response.status >= 400:
                        raise RemoteError(f"HTTP {response.status} from {path}")
                    raise RemoteError(f"Unexpected response shape from {path}")

                detail_logger.debug(
                    f"{method} {path} -> HTTP {response.status}, code={data.get('code')}"
                )
                return data

        except asyncio.TimeoutError as e:
            raise RemoteError(
                f"Request to {path} timed out after {self.timeout:.0f}s"
            ) from e
        except aiohttp.ClientError as e:
            raise RemoteError(f"Request to {path} failed: {e}") from e
