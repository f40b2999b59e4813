from __future__ import annotations

import json
from dataclasses import dataclass
from uuid import uuid4

import pytest

from csrf_guard.application.ports.identity_provider_port import IdentityProviderError
from csrf_guard.infrastructure.http.identity_client import (
    HttpIdentityProvider,
    IdentityHttpResponse,
)


@dataclass
class _QueuedTransport:
    responses: list[IdentityHttpResponse]
    error: Exception | None = None

    def __post_init__(self) -> None:
        self.calls: list[dict[str, object]] = []

    async def request(
        self,
        *,
        method: str,
        url: str,
        headers: dict[str, str],
        timeout_seconds: float,
    ) -> IdentityHttpResponse:
        self.calls.append(
            {
                "method": method,
                "url": url,
                "headers": headers,
                "timeout_seconds": timeout_seconds,
            }
        )
        if self.error is not None:
            raise self.error
        return self.responses.pop(0)


def _client(
    transport: _QueuedTransport,
    *,
    api_key: str | None = "anon-key",
) -> HttpIdentityProvider:
    return HttpIdentityProvider(
        base_url="https://identity.example.org/",
        api_key=api_key,
        transport=transport,
        timeout_seconds=3.0,
    )


@pytest.mark.asyncio
async def test_get_user_sends_bearer_and_api_key_and_parses_principal() -> None:
    user_id = uuid4()
    transport = _QueuedTransport(
        responses=[
            IdentityHttpResponse(
                status_code=200,
                body_bytes=json.dumps({"id": str(user_id), "email": "u1@example.org"}).encode(),
            )
        ]
    )

    principal = await _client(transport).get_user(access_token="access-token")

    assert principal is not None
    assert principal.user_id == user_id
    assert principal.email == "u1@example.org"
    assert transport.calls == [
        {
            "method": "GET",
            "url": "https://identity.example.org/auth/v1/user",
            "headers": {
                "Authorization": "Bearer access-token",
                "Accept": "application/json",
                "apikey": "anon-key",
            },
            "timeout_seconds": 3.0,
        }
    ]


@pytest.mark.asyncio
async def test_get_user_omits_api_key_header_when_not_configured() -> None:
    transport = _QueuedTransport(
        responses=[
            IdentityHttpResponse(
                status_code=200,
                body_bytes=json.dumps({"id": str(uuid4())}).encode(),
            )
        ]
    )

    principal = await _client(transport, api_key=None).get_user(access_token="t")

    assert principal is not None
    assert principal.email is None
    headers = transport.calls[0]["headers"]
    assert isinstance(headers, dict)
    assert "apikey" not in headers


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [401, 403])
async def test_get_user_returns_none_for_rejected_tokens(status_code: int) -> None:
    transport = _QueuedTransport(
        responses=[IdentityHttpResponse(status_code=status_code, body_bytes=b'{"msg":"bad jwt"}')]
    )

    assert await _client(transport).get_user(access_token="expired") is None


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"{}", b'{"id": 42}', b'{"id": "not-a-uuid"}'])
async def test_get_user_returns_none_without_usable_user_id(body: bytes) -> None:
    transport = _QueuedTransport(responses=[IdentityHttpResponse(status_code=200, body_bytes=body)])

    assert await _client(transport).get_user(access_token="t") is None


@pytest.mark.asyncio
async def test_get_user_raises_on_server_error() -> None:
    transport = _QueuedTransport(
        responses=[IdentityHttpResponse(status_code=502, body_bytes=b"bad gateway")]
    )

    with pytest.raises(IdentityProviderError, match="unexpected status 502"):
        await _client(transport).get_user(access_token="t")


@pytest.mark.asyncio
async def test_get_user_raises_on_invalid_json() -> None:
    transport = _QueuedTransport(
        responses=[IdentityHttpResponse(status_code=200, body_bytes=b"<html>")]
    )

    with pytest.raises(IdentityProviderError, match="invalid JSON"):
        await _client(transport).get_user(access_token="t")


@pytest.mark.asyncio
async def test_transport_errors_propagate() -> None:
    transport = _QueuedTransport(
        responses=[],
        error=IdentityProviderError("transport connection failure: refused"),
    )

    with pytest.raises(IdentityProviderError, match="transport connection failure"):
        await _client(transport).get_user(access_token="t")
