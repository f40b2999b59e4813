"""Helpers reading CSRF tokens and client metadata from incoming requests."""

from __future__ import annotations

import json
from dataclasses import dataclass

from fastapi import Request
from starlette.datastructures import UploadFile

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


@dataclass(frozen=True)
class CsrfHttpOptions:
    """Cookie and request field names plus cookie attributes for CSRF tokens."""

    cookie_name: str = "csrf_token"
    header_name: str = "x-csrf-token"
    body_field: str = "csrf_token"
    cookie_path: str = "/"
    cookie_domain: str | None = None
    cookie_secure: bool = False
    cookie_max_age_seconds: int = 86_400


def extract_cookie_token(request: Request, *, options: CsrfHttpOptions) -> str | None:
    """Return the CSRF cookie value, or None when absent or blank."""

    value = request.cookies.get(options.cookie_name)
    if value is None or not value.strip():
        return None
    return value.strip()


async def extract_header_token(request: Request, *, options: CsrfHttpOptions) -> str | None:
    """Return the header token from its dedicated header, falling back to the body."""

    header_value = request.headers.get(options.header_name)
    if header_value is not None and header_value.strip():
        return header_value.strip()

    body_value = await _read_body_field(request, field=options.body_field)
    if body_value is None or not body_value.strip():
        return None
    return body_value.strip()


def resolve_client_ip(request: Request) -> str | None:
    """Return the originating client IP using proxy headers when present."""

    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client is not None:
        return request.client.host
    return None


async def _read_body_field(request: Request, *, field: str) -> str | None:
    """Read one string field from a JSON or form body; unparseable bodies yield None."""

    content_type = request.headers.get("content-type", "").lower()
    if "application/json" in content_type:
        try:
            payload = json.loads(await request.body())
        except (UnicodeDecodeError, json.JSONDecodeError):
            return None
        if not isinstance(payload, dict):
            return None
        value = payload.get(field)
        return value if isinstance(value, str) else None

    if "multipart/form-data" in content_type or (
        "application/x-www-form-urlencoded" in content_type
    ):
        try:
            form = await request.form()
        except Exception:  # noqa: BLE001
            return None
        form_value = form.get(field)
        if form_value is None or isinstance(form_value, UploadFile):
            return None
        return form_value

    return None
