"""Per-event handling: filtering, instruction commands, generation and reply."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum

from line_relay.application.ports.reply_gateway_port import ReplyGatewayPort
from line_relay.application.services.instruction_service import InstructionService
from line_relay.domain.deadline import RequestDeadline
from line_relay.domain.events import ContentKind, EventKind, SourceKind, WebhookEvent
from line_relay.domain.instruction_command_parser import (
    InstructionCommand,
    InstructionCommandKind,
    parse_instruction_command,
)
from line_relay.domain.scope import InstructionScope
from line_relay.infrastructure.line.message_templates import (
    DEFAULT_INSTRUCTION_UPDATED,
    GENERATION_FAILED,
    GENERATION_TIMEOUT,
    INSTRUCTION_FETCH_FAILED,
    INSTRUCTION_UPDATE_FAILED,
    INSTRUCTION_UPDATED,
    build_get_instruction_reply,
)
from line_relay.infrastructure.llm.llm_client import CompletionClientPort

logger = logging.getLogger(__name__)

GROUP_COMMAND_MARKER = "/"
DEFAULT_GENERATION_MARGIN_SECONDS = 1.0


class EventDispatchOutcome(StrEnum):
    """Terminal state of one handled webhook event."""

    DROPPED = "dropped"
    INSTRUCTION_SET = "instruction_set"
    INSTRUCTION_READ = "instruction_read"
    STORE_FAILED = "store_failed"
    GENERATED = "generated"
    GENERATED_EMPTY = "generated_empty"
    GENERATION_FAILED = "generation_failed"
    GENERATION_TIMEOUT = "generation_timeout"


@dataclass(frozen=True)
class EventDispatchResult:
    """Outcome model for one event, with a machine-readable drop reason."""

    outcome: EventDispatchOutcome
    reason: str | None = None


@dataclass(frozen=True)
class TextMessageContext:
    """Text message addressed to the relay, with marker already stripped."""

    scope: InstructionScope
    text: str
    reply_token: str
    quote_token: str | None


class EventDispatchService:
    """Route one webhook event to instruction commands or content generation."""

    def __init__(
        self,
        *,
        instruction_service: InstructionService,
        completion_client: CompletionClientPort,
        reply_gateway: ReplyGatewayPort,
        generation_margin_seconds: float = DEFAULT_GENERATION_MARGIN_SECONDS,
        command_marker: str = GROUP_COMMAND_MARKER,
    ) -> None:
        self._instruction_service = instruction_service
        self._completion_client = completion_client
        self._reply_gateway = reply_gateway
        self._generation_margin_seconds = generation_margin_seconds
        self._command_marker = command_marker
        self._detached_generations: set[asyncio.Task[str]] = set()

    async def handle(self, event: WebhookEvent, deadline: RequestDeadline) -> EventDispatchResult:
        """Handle one event; failures become replies or log entries, never exceptions."""

        context = self._to_text_message_context(event)
        if isinstance(context, EventDispatchResult):
            return context

        command = parse_instruction_command(text=context.text, in_group=context.scope.is_group)
        if command is not None:
            return await self._apply_command(context, command)
        return await self._generate_content(context, deadline)

    def _to_text_message_context(
        self,
        event: WebhookEvent,
    ) -> TextMessageContext | EventDispatchResult:
        if event.kind is not EventKind.MESSAGE or event.message is None:
            return _dropped("unsupported_event", event, event_type=event.raw_type)

        if event.message.kind is not ContentKind.TEXT:
            return _dropped(
                "unsupported_message",
                event,
                message_type=event.message.raw_type,
            )

        if event.reply_token is None:
            return _dropped("missing_reply_token", event, event_type=event.raw_type)

        source = event.source
        text = event.message.text
        if source.kind is SourceKind.USER and source.user_id is not None:
            logger.info(
                "relay_user_text_received event_id=%s user_id=%s",
                event.webhook_event_id,
                source.user_id,
            )
            scope = InstructionScope.for_user(source.user_id)
        elif (
            source.kind is SourceKind.GROUP
            and source.group_id is not None
            and source.user_id is not None
        ):
            if not text.startswith(self._command_marker):
                return EventDispatchResult(
                    outcome=EventDispatchOutcome.DROPPED,
                    reason="group_text_without_marker",
                )
            logger.info(
                "relay_group_text_received event_id=%s group_id=%s user_id=%s",
                event.webhook_event_id,
                source.group_id,
                source.user_id,
            )
            scope = InstructionScope.for_group_user(source.group_id, source.user_id)
            text = text[len(self._command_marker) :]
        else:
            return _dropped("unsupported_source", event, source_type=source.raw_type)

        return TextMessageContext(
            scope=scope,
            text=text,
            reply_token=event.reply_token,
            quote_token=event.message.quote_token,
        )

    async def _apply_command(
        self,
        context: TextMessageContext,
        command: InstructionCommand,
    ) -> EventDispatchResult:
        scope = context.scope
        if command.kind is InstructionCommandKind.GET:
            try:
                instruction = await self._instruction_service.get_instruction(scope)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "relay_instruction_read_failed group_id=%s user_id=%s",
                    scope.group_id,
                    scope.user_id,
                )
                await self._reply(context, INSTRUCTION_FETCH_FAILED)
                return EventDispatchResult(outcome=EventDispatchOutcome.STORE_FAILED)
            await self._reply(context, build_get_instruction_reply(instruction=instruction))
            return EventDispatchResult(outcome=EventDispatchOutcome.INSTRUCTION_READ)

        if command.kind is InstructionCommandKind.SET_GROUP_DEFAULT:
            target_scope = scope.group_default()
            confirmation = DEFAULT_INSTRUCTION_UPDATED
        else:
            target_scope = scope
            confirmation = INSTRUCTION_UPDATED

        try:
            await self._instruction_service.set_instruction(target_scope, command.argument)
        except Exception:  # noqa: BLE001
            logger.exception(
                "relay_instruction_write_failed group_id=%s user_id=%s",
                target_scope.group_id,
                target_scope.user_id,
            )
            await self._reply(context, INSTRUCTION_UPDATE_FAILED)
            return EventDispatchResult(outcome=EventDispatchOutcome.STORE_FAILED)

        logger.info(
            "relay_instruction_updated command=%s group_id=%s user_id=%s",
            command.kind.value,
            target_scope.group_id,
            target_scope.user_id,
        )
        await self._reply(context, confirmation)
        return EventDispatchResult(outcome=EventDispatchOutcome.INSTRUCTION_SET)

    async def _generate_content(
        self,
        context: TextMessageContext,
        deadline: RequestDeadline,
    ) -> EventDispatchResult:
        try:
            instruction = await self._instruction_service.resolve_effective_instruction(
                context.scope
            )
        except Exception:  # noqa: BLE001
            logger.exception(
                "relay_instruction_read_failed group_id=%s user_id=%s",
                context.scope.group_id,
                context.scope.user_id,
            )
            await self._reply(context, INSTRUCTION_FETCH_FAILED)
            return EventDispatchResult(outcome=EventDispatchOutcome.STORE_FAILED)

        generation = asyncio.create_task(
            self._completion_client.generate(instruction=instruction, question=context.text)
        )
        timeout_seconds = deadline.remaining(margin_seconds=self._generation_margin_seconds)
        done, _ = await asyncio.wait({generation}, timeout=timeout_seconds)

        if generation not in done:
            # The provider call keeps running; whatever it returns is discarded.
            self._detach(generation)
            logger.warning(
                "relay_generation_timeout group_id=%s user_id=%s timeout_seconds=%.3f",
                context.scope.group_id,
                context.scope.user_id,
                timeout_seconds,
            )
            await self._reply(context, GENERATION_TIMEOUT)
            return EventDispatchResult(outcome=EventDispatchOutcome.GENERATION_TIMEOUT)

        error = generation.exception()
        if error is not None:
            logger.error(
                "relay_generation_failed group_id=%s user_id=%s",
                context.scope.group_id,
                context.scope.user_id,
                exc_info=error,
            )
            await self._reply(context, GENERATION_FAILED)
            return EventDispatchResult(outcome=EventDispatchOutcome.GENERATION_FAILED)

        text = generation.result()
        logger.info(
            "relay_generation_done group_id=%s user_id=%s chars=%s",
            context.scope.group_id,
            context.scope.user_id,
            len(text),
        )
        if not text:
            return EventDispatchResult(outcome=EventDispatchOutcome.GENERATED_EMPTY)

        await self._reply(context, text)
        return EventDispatchResult(outcome=EventDispatchOutcome.GENERATED)

    async def _reply(self, context: TextMessageContext, text: str) -> None:
        try:
            await self._reply_gateway.reply_text(
                reply_token=context.reply_token,
                text=text,
                quote_token=context.quote_token,
            )
        except Exception:  # noqa: BLE001
            logger.exception(
                "relay_reply_failed group_id=%s user_id=%s",
                context.scope.group_id,
                context.scope.user_id,
            )

    def _detach(self, generation: asyncio.Task[str]) -> None:
        self._detached_generations.add(generation)
        generation.add_done_callback(self._on_detached_generation_done)

    def _on_detached_generation_done(self, generation: asyncio.Task[str]) -> None:
        self._detached_generations.discard(generation)
        if generation.cancelled():
            return
        error = generation.exception()
        if error is not None:
            logger.warning("relay_late_generation_failed error=%s", error)
            return
        logger.info("relay_late_generation_discarded chars=%s", len(generation.result()))


def _dropped(reason: str, event: WebhookEvent, **details: str) -> EventDispatchResult:
    logger.info(
        "relay_event_dropped reason=%s event_id=%s %s",
        reason,
        event.webhook_event_id,
        " ".join(f"{key}={value}" for key, value in details.items()),
    )
    return EventDispatchResult(outcome=EventDispatchOutcome.DROPPED, reason=reason)
