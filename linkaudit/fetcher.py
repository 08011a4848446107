"""HTTP transport used by the link checker.

The checker only depends on the :class:`Fetcher` protocol; the default
implementation wraps a single ``httpx.AsyncClient`` for the whole session::

    async with HttpxFetcher(timeout=10.0) as fetcher:
        response = await fetcher.fetch("https://example.com", FetchMethod.EXISTENCE_PROBE)
        print(response.status_code)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

import httpx

DEFAULT_TIMEOUT = 15.0
DEFAULT_USER_AGENT = "linkaudit/0.1"


class FetchMethod(str, Enum):
    """Request flavours the checker issues."""

    EXISTENCE_PROBE = "HEAD"
    FULL = "GET"


@dataclass(slots=True)
class FetchResponse:
    """Status code and, for full fetches, the decoded body."""

    status_code: int
    body: Optional[str] = None


class FetchError(Exception):
    """Raised when a URL cannot be fetched (DNS, TLS, timeout, refused...)."""

    def __init__(self, message: str, url: str = ""):
        self.url = url
        super().__init__(message)


class Fetcher(Protocol):
    async def fetch(
        self, url: str, method: FetchMethod, *, read_body: bool = True
    ) -> FetchResponse:
        ...


def _build_client(timeout: float, user_agent: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        headers={"User-Agent": user_agent, "Accept": "*/*"},
        timeout=timeout,
        follow_redirects=True,
    )


class HttpxFetcher:
    """Fetcher backed by httpx; every transport problem becomes FetchError."""

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "HttpxFetcher":
        if self._client is None:
            self._client = _build_client(self.timeout, self.user_agent)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        await self.aclose()
        return False

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(
        self, url: str, method: FetchMethod, *, read_body: bool = True
    ) -> FetchResponse:
        """Issue one request.

        With ``read_body=False`` a full fetch is streamed and closed once the
        status line arrives, so large responses are never downloaded.
        """
        if self._client is None:
            self._client = _build_client(self.timeout, self.user_agent)
            self._owns_client = True

        try:
            if method is FetchMethod.FULL and not read_body:
                return await self._status_only(url)
            response = await self._client.request(method.value, url)
        except httpx.TimeoutException as exc:
            raise FetchError(f"Request timed out: {exc}", url=url) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Request failed: {exc}", url=url) from exc
        except httpx.InvalidURL as exc:
            raise FetchError(f"Invalid URL: {exc}", url=url) from exc

        if method is FetchMethod.EXISTENCE_PROBE:
            return FetchResponse(status_code=response.status_code)
        return FetchResponse(status_code=response.status_code, body=response.text)

    async def _status_only(self, url: str) -> FetchResponse:
        async with self._client.stream(FetchMethod.FULL.value, url) as response:
            return FetchResponse(status_code=response.status_code)
