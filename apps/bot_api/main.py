"""bot-api entrypoint and LINE webhook route wiring."""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from pydantic import ValidationError

from line_relay.application.dto.webhook_models import LineWebhookPayload, LineWebhookResponse
from line_relay.application.services.event_dispatch_service import EventDispatchService
from line_relay.application.services.instruction_service import InstructionService
from line_relay.application.services.webhook_relay_service import WebhookRelayService
from line_relay.config.settings import Settings, load_settings
from line_relay.domain.deadline import RequestDeadline
from line_relay.infrastructure.db.instruction_setting_repository import (
    SqlAlchemyInstructionSettingRepository,
)
from line_relay.infrastructure.db.session import create_session_factory
from line_relay.infrastructure.line.event_parser import parse_webhook_events
from line_relay.infrastructure.line.http_client import LineMessagingHttpClient
from line_relay.infrastructure.line.signature import verify_line_signature
from line_relay.infrastructure.llm.gemini_client import GeminiCompletionClient, PrimingTurn
from line_relay.infrastructure.logging import configure_logging

BOT_API_HOST = "0.0.0.0"
BOT_API_PORT = 5000
logger = logging.getLogger(__name__)


def build_relay_service(settings: Settings) -> WebhookRelayService:
    """Build relay service with SQLAlchemy, Gemini and LINE-backed dependencies."""

    session_factory = create_session_factory(settings.database_url)
    completion_client = GeminiCompletionClient(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        priming_turns=[PrimingTurn(role=turn.role, text=turn.text) for turn in settings.prompts],
        timeout_seconds=settings.gemini_timeout_seconds,
    )
    reply_gateway = LineMessagingHttpClient(
        channel_access_token=settings.line_channel_token,
        base_url=str(settings.line_api_base_url),
        timeout_seconds=settings.line_http_timeout_seconds,
    )
    logger.info("bot_api_relay_configured gemini_model=%s", completion_client.model_name)
    dispatch_service = EventDispatchService(
        instruction_service=InstructionService(
            instruction_settings=SqlAlchemyInstructionSettingRepository(session_factory),
        ),
        completion_client=completion_client,
        reply_gateway=reply_gateway,
        generation_margin_seconds=settings.relay_generation_margin_seconds,
    )
    return WebhookRelayService(
        dispatch_service=dispatch_service,
        dispatch_margin_seconds=settings.relay_dispatch_margin_seconds,
    )


def create_app(
    *,
    channel_secret: str | None = None,
    relay_service: WebhookRelayService | None = None,
    request_timeout_seconds: float | None = None,
) -> FastAPI:
    """Create FastAPI app receiving LINE webhook callbacks."""

    if channel_secret is None or relay_service is None or request_timeout_seconds is None:
        settings = load_settings()
        configure_logging(level=settings.log_level)
        if channel_secret is None:
            channel_secret = settings.line_channel_secret
        if relay_service is None:
            relay_service = build_relay_service(settings)
        if request_timeout_seconds is None:
            request_timeout_seconds = settings.relay_request_timeout_seconds

    assert channel_secret is not None
    assert relay_service is not None
    assert request_timeout_seconds is not None
    webhook_secret = channel_secret
    relay = relay_service
    timeout_seconds = request_timeout_seconds

    app = FastAPI()

    async def line_webhook_callback(request: Request) -> LineWebhookResponse:
        deadline = RequestDeadline.after(timeout_seconds)
        raw_body = await request.body()
        signature = request.headers.get("x-line-signature")

        if not verify_line_signature(
            secret=webhook_secret,
            body=raw_body,
            provided_signature=signature,
        ):
            logger.warning("webhook_line_invalid_signature")
            raise HTTPException(status_code=401, detail="invalid signature")

        try:
            payload = LineWebhookPayload.model_validate_json(raw_body)
        except ValidationError as error:
            logger.warning("webhook_line_parse_failed errors=%s", error.error_count())
            raise HTTPException(status_code=500, detail="cannot parse request") from error

        events = parse_webhook_events(payload.events)
        logger.info(
            "webhook_line_received destination=%s events=%s",
            payload.destination,
            len(events),
        )
        result = await relay.relay(events, deadline)
        if deadline.expired():
            logger.warning(
                "webhook_line_deadline_exceeded handled=%s pending=%s",
                result.handled,
                result.pending,
            )
        return LineWebhookResponse(ok=True, handled=result.handled, pending=result.pending)

    for path in ("/callback", "/"):
        app.add_api_route(
            path,
            line_webhook_callback,
            methods=["POST"],
            response_model=LineWebhookResponse,
        )

    return app


def run_asgi_server(*, host: str = BOT_API_HOST, port: int = BOT_API_PORT) -> None:
    """Run bot-api as a long-lived ASGI process using application factory mode."""

    uvicorn.run(
        "apps.bot_api.main:create_app",
        host=host,
        port=port,
        factory=True,
    )


def main() -> None:
    """Run bot-api runtime process."""

    run_asgi_server()


if __name__ == "__main__":
    main()
