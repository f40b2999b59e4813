from __future__ import annotations

from dataclasses import dataclass, field
from uuid import uuid4

import pytest

from csrf_guard.application.ports.identity_provider_port import AuthenticatedPrincipal
from csrf_guard.infrastructure.http.auth_guard import (
    CsrfAuthGuard,
    InvalidAuthTokenError,
    MissingAuthTokenError,
    extract_bearer_token,
)


@dataclass
class FakeIdentityProvider:
    principals_by_token: dict[str, AuthenticatedPrincipal]
    calls: list[str] = field(default_factory=list)

    async def get_user(self, *, access_token: str) -> AuthenticatedPrincipal | None:
        self.calls.append(access_token)
        return self.principals_by_token.get(access_token)


def test_extract_bearer_token_returns_token_value() -> None:
    assert extract_bearer_token("Bearer access-token") == "access-token"
    assert extract_bearer_token("bearer access-token") == "access-token"


@pytest.mark.parametrize("header", [None, "", "   "])
def test_extract_bearer_token_rejects_missing_value(header: str | None) -> None:
    with pytest.raises(MissingAuthTokenError, match="missing bearer token"):
        extract_bearer_token(header)


@pytest.mark.parametrize("header", ["Basic token", "Bearer", "Bearer   ", "Bearer a b"])
def test_extract_bearer_token_rejects_malformed_header(header: str) -> None:
    with pytest.raises(InvalidAuthTokenError, match="invalid bearer token header"):
        extract_bearer_token(header)


@pytest.mark.asyncio
async def test_guard_resolves_known_principal() -> None:
    principal = AuthenticatedPrincipal(user_id=uuid4(), email="writer@example.org")
    provider = FakeIdentityProvider(principals_by_token={"good-token": principal})
    guard = CsrfAuthGuard(identity_provider=provider)

    resolved = await guard.require_user(authorization_header="Bearer good-token")

    assert resolved == principal
    assert provider.calls == ["good-token"]


@pytest.mark.asyncio
async def test_guard_rejects_unknown_token() -> None:
    guard = CsrfAuthGuard(identity_provider=FakeIdentityProvider(principals_by_token={}))

    with pytest.raises(InvalidAuthTokenError, match="invalid or expired access token"):
        await guard.require_user(authorization_header="Bearer unknown-token")


@pytest.mark.asyncio
async def test_guard_does_not_call_provider_without_header() -> None:
    provider = FakeIdentityProvider(principals_by_token={})
    guard = CsrfAuthGuard(identity_provider=provider)

    with pytest.raises(MissingAuthTokenError):
        await guard.require_user(authorization_header=None)

    assert provider.calls == []
