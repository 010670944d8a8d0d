"""Port for reading and writing stored instruction settings."""

from __future__ import annotations

from typing import Protocol


class InstructionSettingRepositoryPort(Protocol):
    """Instruction setting persistence contract.

    Reads return an empty string for scopes that were never written.
    Writes are last-write-wins point upserts.
    """

    async def get_user_instruction(self, *, user_id: str) -> str:
        """Return stored instruction for a user-scoped chat."""

    async def upsert_user_instruction(self, *, user_id: str, instruction: str) -> None:
        """Create or replace the instruction for a user-scoped chat."""

    async def get_group_user_instruction(self, *, group_id: str, user_id: str) -> str:
        """Return stored instruction for a (group, user) pair."""

    async def upsert_group_user_instruction(
        self,
        *,
        group_id: str,
        user_id: str,
        instruction: str,
    ) -> None:
        """Create or replace the instruction for a (group, user) pair."""
