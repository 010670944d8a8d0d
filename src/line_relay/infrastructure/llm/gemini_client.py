"""Gemini `generateContent` adapter implementing the completion client port."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from google import genai
from google.genai import types

from line_relay.infrastructure.llm.llm_client import CompletionProviderError

DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"
_UNBLOCKED_HARM_CATEGORIES = (
    types.HarmCategory.HARM_CATEGORY_HARASSMENT,
    types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
)


@dataclass(frozen=True)
class PrimingTurn:
    """One fixed conversation turn sent ahead of every question."""

    role: str
    text: str


class GeminiCompletionClient:
    """Gemini chat adapter: priming history, system instruction, then the question."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str = DEFAULT_GEMINI_MODEL,
        priming_turns: Sequence[PrimingTurn] = (),
        timeout_seconds: float = 60.0,
        client: Any | None = None,
    ) -> None:
        api_key_value = api_key.strip()
        model_value = model.strip() or DEFAULT_GEMINI_MODEL
        if not api_key_value and client is None:
            raise ValueError("api_key must be a non-empty string")

        self._model = model_value
        self._priming_turns = tuple(priming_turns)
        self._client = client or genai.Client(
            api_key=api_key_value,
            http_options=types.HttpOptions(timeout=int(timeout_seconds * 1000)),
        )

    @property
    def model_name(self) -> str:
        """Return configured Gemini model name for this client instance."""

        return self._model

    async def generate(self, *, instruction: str, question: str) -> str:
        """Return cleaned answer text, or a block notice when the prompt was blocked."""

        contents = [
            types.Content(role=turn.role, parts=[types.Part(text=turn.text)])
            for turn in self._priming_turns
        ]
        contents.append(types.Content(role="user", parts=[types.Part(text=question)]))
        config = types.GenerateContentConfig(
            system_instruction=instruction or None,
            safety_settings=[
                types.SafetySetting(
                    category=category,
                    threshold=types.HarmBlockThreshold.BLOCK_NONE,
                )
                for category in _UNBLOCKED_HARM_CATEGORIES
            ],
        )
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=contents,
                config=config,
            )
        except Exception as error:  # noqa: BLE001
            raise CompletionProviderError("generate_content request failed") from error

        text = _extract_candidate_text(response).replace("**", " ").strip()
        if not text:
            return _describe_block_reason(response)
        return text


def _extract_candidate_text(response: Any) -> str:
    text_parts: list[str] = []
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        if content is None:
            continue
        for part in getattr(content, "parts", None) or []:
            part_text = getattr(part, "text", None)
            if isinstance(part_text, str):
                text_parts.append(part_text)
    return "".join(text_parts)


def _describe_block_reason(response: Any) -> str:
    feedback = getattr(response, "prompt_feedback", None)
    reason = getattr(feedback, "block_reason", None)
    if reason is None:
        return ""
    label = str(getattr(reason, "value", reason)).lower()
    if label in {"blocked_reason_unspecified", "block_reason_unspecified"}:
        label = "unspecified"
    return f"Blocked with reason {label.replace('_', ' ')}."
