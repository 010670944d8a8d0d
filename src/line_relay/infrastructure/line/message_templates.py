"""Fixed reply texts sent back through the LINE reply API."""

from __future__ import annotations

INSTRUCTION_UPDATED = "instruction updated"
DEFAULT_INSTRUCTION_UPDATED = "default instruction updated"
INSTRUCTION_NOT_SET = "No instruction has been set"
INSTRUCTION_UPDATE_FAILED = "Something went wrong when updating your instruction"
INSTRUCTION_FETCH_FAILED = "Something went wrong when fetching your instruction"
GENERATION_FAILED = "Something went wrong when generating response"
GENERATION_TIMEOUT = "Timeout when generating response"


def build_get_instruction_reply(*, instruction: str) -> str:
    """Return stored instruction text, or a notice when nothing is stored."""

    return instruction if instruction.strip() else INSTRUCTION_NOT_SET
