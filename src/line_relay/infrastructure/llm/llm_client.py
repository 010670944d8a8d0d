"""Completion provider protocol and normalized provider error."""

from __future__ import annotations

from typing import Protocol


class CompletionProviderError(RuntimeError):
    """Raised for normalized completion provider failures."""


class CompletionClientPort(Protocol):
    """Protocol for instruction-guided text generation."""

    async def generate(self, *, instruction: str, question: str) -> str:
        """Return generated text for the supplied instruction and question."""
