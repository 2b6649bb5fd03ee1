"""
Single-request helper shared by the token cache and the gateways.

Instead of raising on HTTP errors, ``send`` classifies the outcome of one request:

- ``Found``: a 2xx response
- ``NotFound``: the platform answered 404
- ``OtherFailure``: any other status, or a transport error (no status code)

Callers branch on the result type; ``asyncio.CancelledError`` is never intercepted,
so cancelling a request aborts the in-flight call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Found:
    response: httpx.Response

    def json(self) -> Any:
        return self.response.json()


@dataclass(frozen=True)
class NotFound:
    detail: str


@dataclass(frozen=True)
class OtherFailure:
    status_code: Optional[int]
    detail: str


RemoteResult = Union[Found, NotFound, OtherFailure]


def _without_query(url: str) -> str:
    # signed upload URLs carry credentials in their query string
    return url.split("?", 1)[0]


def bearer(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}


async def send(client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> RemoteResult:
    """
    Perform one request and classify the outcome.

    Args:
        client: Shared async client (base URL and timeout already configured)
        method: HTTP method
        url: Absolute URL or path relative to the client's base URL
        **kwargs: Passed through to ``httpx.AsyncClient.request``

    Returns:
        Found, NotFound or OtherFailure; never raises for HTTP or transport errors
    """
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.RequestError as exc:
        logger.error(f"{method} {_without_query(url)} failed before a response was received: {exc!r}")
        return OtherFailure(status_code=None, detail=str(exc) or type(exc).__name__)

    if response.is_success:
        return Found(response)

    detail = response.text or response.reason_phrase
    if response.status_code == 404:
        return NotFound(detail)

    logger.warning(f"{method} {_without_query(url)} returned {response.status_code}: {detail}")
    return OtherFailure(status_code=response.status_code, detail=detail)
