"""HTTP transports.

A transport turns a :class:`SignedRequest` into the raw response body. On any
non-2xx outcome it raises :class:`TransportError` carrying the status line,
the response (``None`` when the exchange never produced one) and the
request. ``delay`` completes after the given number of seconds and is used
for retry backoff and status polling.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Protocol

import httpx

from .request import SignedRequest

USER_AGENT = "ddbclient-py"


class TransportError(Exception):
    def __init__(self, status: str, response: httpx.Response | None, request: SignedRequest) -> None:
        super().__init__(status)
        self.status = status
        self.response = response
        self.request = request


class Transport(Protocol):
    async def send(self, request: SignedRequest) -> str: ...

    async def delay(self, seconds: float) -> None: ...

    async def aclose(self) -> None: ...


def _status_line(response: httpx.Response) -> str:
    return f"{response.status_code} {response.reason_phrase}".strip()


def _check(response: httpx.Response, request: SignedRequest) -> str:
    if response.is_success:
        return response.text
    raise TransportError(_status_line(response), response, request)


class HttpxTransport:
    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 90.0,
        max_connections: int = 100,
        **client_kwargs: Any,
    ) -> None:
        if client is None:
            limits = httpx.Limits(max_connections=max_connections, max_keepalive_connections=20)
            client = httpx.AsyncClient(
                timeout=timeout,
                limits=limits,
                headers={"User-Agent": USER_AGENT},
                **client_kwargs,
            )
        self._client = client

    async def send(self, request: SignedRequest) -> str:
        try:
            response = await self._client.request(
                request.method,
                request.url,
                headers=dict(request.headers),
                content=request.body.encode("utf-8"),
            )
        except httpx.HTTPError as err:
            raise TransportError(f"599 {type(err).__name__}: {err}", None, request) from err
        return _check(response, request)

    async def delay(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()


class BlockingHttpxTransport:
    """Synchronous ``httpx.Client`` transport.

    Every request and every backoff sleep blocks the running event loop, so
    concurrent operations sharing the loop make no progress while one waits.
    Useful for scripts that only ever run one operation at a time.
    """

    def __init__(
        self,
        *,
        client: httpx.Client | None = None,
        timeout: float = 90.0,
        **client_kwargs: Any,
    ) -> None:
        self._client = client or httpx.Client(
            timeout=timeout, headers={"User-Agent": USER_AGENT}, **client_kwargs
        )

    async def send(self, request: SignedRequest) -> str:
        try:
            response = self._client.request(
                request.method,
                request.url,
                headers=dict(request.headers),
                content=request.body.encode("utf-8"),
            )
        except httpx.HTTPError as err:
            raise TransportError(f"599 {type(err).__name__}: {err}", None, request) from err
        return _check(response, request)

    async def delay(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

    def close(self) -> None:
        self._client.close()

    async def aclose(self) -> None:
        self.close()
