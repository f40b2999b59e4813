"""HTTP adapter resolving bearer access tokens through the identity provider."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Protocol
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen
from uuid import UUID

from csrf_guard.application.ports.identity_provider_port import (
    AuthenticatedPrincipal,
    IdentityProviderError,
    IdentityProviderPort,
)

logger = logging.getLogger(__name__)

_USER_PATH = "/auth/v1/user"
_REJECTED_STATUS_CODES = frozenset({400, 401, 403, 404})


@dataclass(frozen=True)
class IdentityHttpResponse:
    """Normalized HTTP response data returned by transport implementations."""

    status_code: int
    body_bytes: bytes


class IdentityHttpTransportPort(Protocol):
    """Transport protocol used by the identity provider adapter."""

    async def request(
        self,
        *,
        method: str,
        url: str,
        headers: dict[str, str],
        timeout_seconds: float,
    ) -> IdentityHttpResponse:
        """Execute one HTTP request and return normalized response data."""


class UrllibIdentityHttpTransport:
    """urllib-based async transport implementation for identity lookups."""

    async def request(
        self,
        *,
        method: str,
        url: str,
        headers: dict[str, str],
        timeout_seconds: float,
    ) -> IdentityHttpResponse:
        """Execute HTTP request in a worker thread and normalize HTTP errors."""

        return await asyncio.to_thread(
            self._request_sync,
            method=method,
            url=url,
            headers=headers,
            timeout_seconds=timeout_seconds,
        )

    def _request_sync(
        self,
        *,
        method: str,
        url: str,
        headers: dict[str, str],
        timeout_seconds: float,
    ) -> IdentityHttpResponse:
        request = Request(url=url, headers=headers, method=method)
        try:
            with urlopen(request, timeout=timeout_seconds) as response:
                return IdentityHttpResponse(
                    status_code=int(response.getcode()),
                    body_bytes=response.read(),
                )
        except HTTPError as error:
            return IdentityHttpResponse(status_code=int(error.code), body_bytes=error.read())
        except (URLError, TimeoutError) as error:
            raise IdentityProviderError(f"transport connection failure: {error}") from error


class HttpIdentityProvider(IdentityProviderPort):
    """Resolve access tokens with a GoTrue-compatible `GET /auth/v1/user` endpoint."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str | None = None,
        transport: IdentityHttpTransportPort | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._transport = transport or UrllibIdentityHttpTransport()
        self._timeout_seconds = timeout_seconds

    async def get_user(self, *, access_token: str) -> AuthenticatedPrincipal | None:
        """Return principal for accepted tokens, None for rejected ones."""

        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }
        if self._api_key is not None:
            headers["apikey"] = self._api_key

        response = await self._transport.request(
            method="GET",
            url=f"{self._base_url}{_USER_PATH}",
            headers=headers,
            timeout_seconds=self._timeout_seconds,
        )
        if response.status_code in _REJECTED_STATUS_CODES:
            logger.info("identity_token_rejected status=%s", response.status_code)
            return None
        if response.status_code != 200:
            raise IdentityProviderError(
                f"identity provider returned unexpected status {response.status_code}"
            )

        return _parse_principal(response.body_bytes)


def _parse_principal(body_bytes: bytes) -> AuthenticatedPrincipal | None:
    try:
        payload = json.loads(body_bytes.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise IdentityProviderError("identity provider returned invalid JSON") from error

    if not isinstance(payload, dict):
        raise IdentityProviderError("identity provider returned non-object payload")

    raw_user_id = payload.get("id")
    if not isinstance(raw_user_id, str):
        return None
    try:
        user_id = UUID(raw_user_id)
    except ValueError:
        return None

    email = payload.get("email")
    return AuthenticatedPrincipal(
        user_id=user_id,
        email=email if isinstance(email, str) else None,
    )
