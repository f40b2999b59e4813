from __future__ import annotations

import re
from collections.abc import Iterator

import pytest

from csrf_guard.domain.csrf.token_codec import (
    MIN_HEADER_TOKEN_LENGTH,
    SALT_LENGTH,
    CsrfTokenCodec,
    generate_secret,
)


def _sequence(*values: str) -> Iterator[str]:
    yield from values


def test_generate_secret_is_64_lowercase_hex_chars_and_unique() -> None:
    first = generate_secret()
    second = generate_secret()

    assert re.fullmatch(r"[0-9a-f]{64}", first)
    assert first != second


def test_derive_pair_embeds_cookie_token_as_header_prefix() -> None:
    values = _sequence("a" * 64, "b" * 64)
    codec = CsrfTokenCodec(secret_factory=lambda: next(values))

    pair = codec.derive_pair()

    assert pair.cookie_token == "a" * 64
    assert pair.header_token == "a" * 64 + "." + "b" * SALT_LENGTH
    assert pair.header_token.split(".")[0] == pair.cookie_token


def test_derive_pair_uses_fresh_secrets_each_call() -> None:
    codec = CsrfTokenCodec()

    first = codec.derive_pair()
    second = codec.derive_pair()

    assert first.cookie_token != second.cookie_token
    assert first.header_token != second.header_token


def test_hash_secret_is_deterministic_sha256_and_never_echoes_secret() -> None:
    codec = CsrfTokenCodec()
    secret = generate_secret()

    digest = codec.hash_secret(secret)

    assert digest == codec.hash_secret(secret)
    assert re.fullmatch(r"[0-9a-f]{64}", digest)
    assert digest != secret
    assert codec.hash_secret("abc") == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )


def test_matches_cookie_accepts_generated_pair() -> None:
    codec = CsrfTokenCodec()
    pair = codec.derive_pair()

    assert codec.matches_cookie(header_token=pair.header_token, cookie_token=pair.cookie_token)


def test_matches_cookie_rejects_other_cookie() -> None:
    codec = CsrfTokenCodec()
    pair = codec.derive_pair()

    assert not codec.matches_cookie(
        header_token=pair.header_token,
        cookie_token=generate_secret(),
    )


@pytest.mark.parametrize(
    "header_token",
    [
        "a" * 64,
        "a" * 63 + ".",
        "a" * 10 + "." + "b" * 10,
    ],
)
def test_matches_cookie_rejects_malformed_header_tokens(header_token: str) -> None:
    codec = CsrfTokenCodec()

    assert not codec.matches_cookie(header_token=header_token, cookie_token=header_token[:64])


def test_min_header_token_length_covers_secret_and_separator() -> None:
    assert MIN_HEADER_TOKEN_LENGTH == 65
