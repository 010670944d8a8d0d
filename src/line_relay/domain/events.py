"""Closed variants for inbound webhook events, their sources and message contents."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class EventKind(StrEnum):
    """Webhook event kinds handled by the relay."""

    MESSAGE = "message"
    OTHER = "other"


class SourceKind(StrEnum):
    """Chat scope an event originates from."""

    USER = "user"
    GROUP = "group"
    OTHER = "other"


class ContentKind(StrEnum):
    """Message content variants."""

    TEXT = "text"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class EventSource:
    """Originating chat scope with the identities it carries."""

    kind: SourceKind
    raw_type: str
    user_id: str | None = None
    group_id: str | None = None


@dataclass(frozen=True)
class MessageContent:
    """Message payload; only text content carries text."""

    kind: ContentKind
    raw_type: str
    text: str = ""
    quote_token: str | None = None


@dataclass(frozen=True)
class WebhookEvent:
    """One normalized inbound notification."""

    kind: EventKind
    raw_type: str
    source: EventSource
    reply_token: str | None = None
    message: MessageContent | None = None
    webhook_event_id: str | None = None
