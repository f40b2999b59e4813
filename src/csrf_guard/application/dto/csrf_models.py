"""Pydantic models for CSRF issuance and validation HTTP contracts."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CsrfTokenIssueResponse(BaseModel):
    """HTTP response model for CSRF token issuance."""

    model_config = ConfigDict(populate_by_name=True)

    header_token: str = Field(alias="headerToken")
    expires_at: datetime = Field(alias="expiresAt")


class CsrfValidationResponse(BaseModel):
    """HTTP response model for CSRF validation results."""

    valid: bool
    error: str | None = None
