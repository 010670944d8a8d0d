"""Parsing helpers normalizing raw LINE webhook events into closed variants."""

from __future__ import annotations

from typing import Any

from line_relay.domain.events import (
    ContentKind,
    EventKind,
    EventSource,
    MessageContent,
    SourceKind,
    WebhookEvent,
)

_UNKNOWN_TYPE = "unknown"


def parse_webhook_event(event: dict[str, Any]) -> WebhookEvent:
    """Parse one raw event; anything unrecognized becomes an OTHER variant."""

    raw_type = _string_or_none(event.get("type")) or _UNKNOWN_TYPE
    source = _parse_source(event.get("source"))
    reply_token = _string_or_none(event.get("replyToken"))
    webhook_event_id = _string_or_none(event.get("webhookEventId"))

    if raw_type != EventKind.MESSAGE.value:
        return WebhookEvent(
            kind=EventKind.OTHER,
            raw_type=raw_type,
            source=source,
            reply_token=reply_token,
            webhook_event_id=webhook_event_id,
        )

    return WebhookEvent(
        kind=EventKind.MESSAGE,
        raw_type=raw_type,
        source=source,
        reply_token=reply_token,
        message=_parse_message(event.get("message")),
        webhook_event_id=webhook_event_id,
    )


def parse_webhook_events(events: list[dict[str, Any]]) -> list[WebhookEvent]:
    """Parse a batch of raw events preserving arrival order."""

    return [parse_webhook_event(event) for event in events]


def _parse_source(source: object) -> EventSource:
    if not isinstance(source, dict):
        return EventSource(kind=SourceKind.OTHER, raw_type=_UNKNOWN_TYPE)

    raw_type = _string_or_none(source.get("type")) or _UNKNOWN_TYPE
    user_id = _string_or_none(source.get("userId"))
    if raw_type == SourceKind.USER.value and user_id:
        return EventSource(kind=SourceKind.USER, raw_type=raw_type, user_id=user_id)

    group_id = _string_or_none(source.get("groupId"))
    if raw_type == SourceKind.GROUP.value and group_id and user_id:
        return EventSource(
            kind=SourceKind.GROUP,
            raw_type=raw_type,
            user_id=user_id,
            group_id=group_id,
        )

    return EventSource(
        kind=SourceKind.OTHER,
        raw_type=raw_type,
        user_id=user_id,
        group_id=group_id,
    )


def _parse_message(message: object) -> MessageContent:
    if not isinstance(message, dict):
        return MessageContent(kind=ContentKind.UNSUPPORTED, raw_type=_UNKNOWN_TYPE)

    raw_type = _string_or_none(message.get("type")) or _UNKNOWN_TYPE
    text = message.get("text")
    if raw_type != ContentKind.TEXT.value or not isinstance(text, str):
        return MessageContent(kind=ContentKind.UNSUPPORTED, raw_type=raw_type)

    return MessageContent(
        kind=ContentKind.TEXT,
        raw_type=raw_type,
        text=text,
        quote_token=_string_or_none(message.get("quoteToken")),
    )


def _string_or_none(value: object) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None
