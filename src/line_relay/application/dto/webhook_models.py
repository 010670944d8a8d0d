"""Pydantic models for LINE webhook callback payloads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LenientModel(BaseModel):
    """Base model tolerating platform fields this relay does not read."""

    model_config = ConfigDict(extra="ignore")


class LineWebhookPayload(LenientModel):
    """Webhook batch envelope; events stay raw until normalized by the parser."""

    destination: str | None = None
    events: list[dict[str, Any]] = Field(default_factory=list)


class LineWebhookResponse(LenientModel):
    """HTTP response model for the webhook callback endpoint."""

    ok: bool
    handled: int = 0
    pending: int = 0
