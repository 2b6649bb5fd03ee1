"""
Two-legged credential cache for Autodesk Platform Services.

The backend holds two independent credentials:

- public: read-only access to viewables, safe to hand to the browser viewer
- internal: read/write access to buckets and objects, never leaves the process

Each credential is issued lazily (first use or expiry) through the client-credentials
grant and cached until it expires. Refresh is single-flight per scope: concurrent
requests observing a missing or expired credential wait on the same lock, and only
the first one talks to the identity endpoint.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import httpx

from .errors import AuthFailure
from .models import TokenScope
from .remote import Found, NotFound, send

logger = logging.getLogger(__name__)

TOKEN_PATH = "/authentication/v2/token"

SCOPES: Dict[TokenScope, Tuple[str, ...]] = {
    TokenScope.PUBLIC: ("viewables:read",),
    TokenScope.INTERNAL: ("bucket:create", "bucket:read", "data:read", "data:write", "data:create"),
}


@dataclass(frozen=True)
class Credential:
    access_token: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


class TokenCache:
    """
    Per-scope credential cache with lazy, single-flight refresh.

    Attributes:
        client_id: Platform application client id
        clock: Returns the current time in epoch seconds (injectable for tests)
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        client_id: str,
        client_secret: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._http = http
        self.client_id = client_id
        self._client_secret = client_secret
        self.clock = clock
        self._slots: Dict[TokenScope, Optional[Credential]] = {scope: None for scope in SCOPES}
        self._locks: Dict[TokenScope, asyncio.Lock] = {scope: asyncio.Lock() for scope in SCOPES}

    async def get_credential(self, scope: TokenScope) -> Credential:
        """
        Return a usable credential for the scope, issuing a new one if needed.

        Raises:
            AuthFailure: If the identity endpoint rejects the request or is unreachable
        """
        cached = self._slots[scope]
        if cached is not None and cached.is_valid(self.clock()):
            return cached

        async with self._locks[scope]:
            # Another request may have refreshed the slot while we waited
            cached = self._slots[scope]
            if cached is not None and cached.is_valid(self.clock()):
                return cached

            credential = await self._issue(scope)
            self._slots[scope] = credential
            return credential

    async def _issue(self, scope: TokenScope) -> Credential:
        result = await send(
            self._http,
            "POST",
            TOKEN_PATH,
            auth=(self.client_id, self._client_secret),
            data={"grant_type": "client_credentials", "scope": " ".join(SCOPES[scope])},
            headers={"Accept": "application/json"},
        )
        if isinstance(result, NotFound):
            raise AuthFailure(f"Token endpoint not found: {result.detail}", status_code=404)
        if not isinstance(result, Found):
            raise AuthFailure(f"Could not obtain {scope.value} token: {result.detail}", status_code=result.status_code)

        try:
            body = result.json()
            access_token = str(body["access_token"])
            expires_in = float(body["expires_in"])
        except (ValueError, KeyError, TypeError) as exc:
            raise AuthFailure(f"Malformed token response: {exc}") from exc

        logger.info(f"Issued {scope.value} token valid for {int(expires_in)}s")
        return Credential(access_token=access_token, expires_at=self.clock() + expires_in)
