from __future__ import annotations

import json

from fastapi.testclient import TestClient

from apps.bot_api.main import create_app
from line_relay.application.services.event_dispatch_service import EventDispatchService
from line_relay.application.services.instruction_service import InstructionService
from line_relay.application.services.webhook_relay_service import WebhookRelayService
from line_relay.infrastructure.line.message_templates import INSTRUCTION_UPDATED
from line_relay.infrastructure.line.signature import compute_line_signature

SECRET = "channel-secret"


class InMemoryInstructionSettingRepository:
    def __init__(self) -> None:
        self.user_rows: dict[str, str] = {}
        self.group_rows: dict[tuple[str, str], str] = {}
        self.calls: list[tuple[str, ...]] = []

    async def get_user_instruction(self, *, user_id: str) -> str:
        self.calls.append(("get_user", user_id))
        return self.user_rows.get(user_id, "")

    async def upsert_user_instruction(self, *, user_id: str, instruction: str) -> None:
        self.calls.append(("set_user", user_id, instruction))
        self.user_rows[user_id] = instruction

    async def get_group_user_instruction(self, *, group_id: str, user_id: str) -> str:
        self.calls.append(("get_group", group_id, user_id))
        return self.group_rows.get((group_id, user_id), "")

    async def upsert_group_user_instruction(
        self,
        *,
        group_id: str,
        user_id: str,
        instruction: str,
    ) -> None:
        self.calls.append(("set_group", group_id, user_id, instruction))
        self.group_rows[(group_id, user_id)] = instruction


class EchoCompletionClient:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    async def generate(self, *, instruction: str, question: str) -> str:
        self.calls.append((instruction, question))
        return f"echo: {question}"


class RecordingReplyGateway:
    def __init__(self) -> None:
        self.replies: list[tuple[str, str, str | None]] = []

    async def reply_text(
        self,
        *,
        reply_token: str,
        text: str,
        quote_token: str | None = None,
    ) -> None:
        self.replies.append((reply_token, text, quote_token))


class _Harness:
    def __init__(self) -> None:
        self.repo = InMemoryInstructionSettingRepository()
        self.completion = EchoCompletionClient()
        self.gateway = RecordingReplyGateway()
        relay = WebhookRelayService(
            dispatch_service=EventDispatchService(
                instruction_service=InstructionService(instruction_settings=self.repo),
                completion_client=self.completion,
                reply_gateway=self.gateway,
            ),
        )
        self.client = TestClient(
            create_app(
                channel_secret=SECRET,
                relay_service=relay,
                request_timeout_seconds=60.0,
            )
        )


def _text_event(
    text: str,
    *,
    reply_token: str,
    user_id: str = "U1",
    group_id: str | None = None,
) -> dict[str, object]:
    source: dict[str, object] = {"type": "user", "userId": user_id}
    if group_id is not None:
        source = {"type": "group", "groupId": group_id, "userId": user_id}
    return {
        "type": "message",
        "mode": "active",
        "timestamp": 1462629479859,
        "webhookEventId": f"evt-{reply_token}",
        "deliveryContext": {"isRedelivery": False},
        "replyToken": reply_token,
        "source": source,
        "message": {"id": "1", "type": "text", "quoteToken": f"q-{reply_token}", "text": text},
    }


def _post_signed(
    client: TestClient,
    events: list[dict[str, object]],
    *,
    path: str = "/callback",
    signature: str | None = None,
    raw_body: bytes | None = None,
):
    body = raw_body
    if body is None:
        body = json.dumps({"destination": "Ubot", "events": events}).encode("utf-8")
    headers = {"content-type": "application/json"}
    signed = signature if signature is not None else compute_line_signature(
        secret=SECRET,
        body=body,
    )
    if signed:
        headers["x-line-signature"] = signed
    return client.post(path, content=body, headers=headers)


def test_invalid_signature_is_rejected_without_processing_events() -> None:
    harness = _Harness()

    response = _post_signed(
        harness.client,
        [_text_event("Hello", reply_token="r1")],
        signature="bad-signature",
    )

    assert response.status_code == 401
    assert harness.repo.calls == []
    assert harness.completion.calls == []
    assert harness.gateway.replies == []


def test_missing_signature_is_rejected() -> None:
    harness = _Harness()

    response = _post_signed(harness.client, [_text_event("Hello", reply_token="r1")], signature="")

    assert response.status_code == 401
    assert harness.completion.calls == []


def test_signed_but_malformed_body_returns_generic_failure() -> None:
    harness = _Harness()

    response = _post_signed(harness.client, [], raw_body=b"{not json")

    assert response.status_code == 500
    assert harness.repo.calls == []


def test_user_hello_is_generated_and_replied() -> None:
    harness = _Harness()

    response = _post_signed(harness.client, [_text_event("Hello", reply_token="r1")])

    assert response.status_code == 200
    assert response.json() == {"ok": True, "handled": 1, "pending": 0}
    assert harness.completion.calls == [("", "Hello")]
    assert harness.gateway.replies == [("r1", "echo: Hello", "q-r1")]


def test_group_set_instruction_is_stored_and_confirmed() -> None:
    harness = _Harness()

    response = _post_signed(
        harness.client,
        [_text_event("/set instruction be terse", reply_token="r1", group_id="C1")],
    )

    assert response.status_code == 200
    assert harness.repo.group_rows == {("C1", "U1"): "be terse"}
    assert harness.gateway.replies == [("r1", INSTRUCTION_UPDATED, "q-r1")]
    assert harness.completion.calls == []


def test_group_text_without_marker_gets_no_reply() -> None:
    harness = _Harness()

    response = _post_signed(
        harness.client,
        [_text_event("just chatting", reply_token="r1", group_id="C1")],
    )

    assert response.status_code == 200
    assert harness.repo.calls == []
    assert harness.completion.calls == []
    assert harness.gateway.replies == []


def test_mixed_batch_handles_each_event_independently_on_root_path() -> None:
    harness = _Harness()
    follow_event = {
        "type": "follow",
        "replyToken": "r-follow",
        "source": {"type": "user", "userId": "U9"},
    }

    response = _post_signed(
        harness.client,
        [
            _text_event("Hello", reply_token="r1"),
            follow_event,
            _text_event("/get instruction", reply_token="r2", group_id="C1", user_id="U2"),
        ],
        path="/",
    )

    assert response.status_code == 200
    assert response.json()["handled"] == 3
    assert sorted(harness.gateway.replies) == [
        ("r1", "echo: Hello", "q-r1"),
        ("r2", "No instruction has been set", "q-r2"),
    ]


def test_empty_event_batch_is_acknowledged() -> None:
    harness = _Harness()

    response = _post_signed(harness.client, [])

    assert response.status_code == 200
    assert response.json() == {"ok": True, "handled": 0, "pending": 0}


def test_non_ascii_signature_header_is_rejected_as_unauthorized() -> None:
    harness = _Harness()
    body = json.dumps({"destination": "Ubot", "events": []}).encode("utf-8")

    response = harness.client.post(
        "/callback",
        content=body,
        headers={
            "content-type": "application/json",
            "x-line-signature": "café".encode("latin-1"),
        },
    )

    assert response.status_code == 401
    assert harness.repo.calls == []
