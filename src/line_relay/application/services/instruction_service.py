"""Service resolving stored instructions for user and group scopes."""

from __future__ import annotations

from line_relay.application.ports.instruction_setting_repository_port import (
    InstructionSettingRepositoryPort,
)
from line_relay.domain.scope import InstructionScope


class InstructionService:
    """Read and write instructions keyed by user or (group, user) scope."""

    def __init__(self, *, instruction_settings: InstructionSettingRepositoryPort) -> None:
        self._instruction_settings = instruction_settings

    async def get_instruction(self, scope: InstructionScope) -> str:
        """Return the instruction stored for exactly this scope."""

        if scope.group_id is None:
            return await self._instruction_settings.get_user_instruction(user_id=scope.user_id)
        return await self._instruction_settings.get_group_user_instruction(
            group_id=scope.group_id,
            user_id=scope.user_id,
        )

    async def set_instruction(self, scope: InstructionScope, instruction: str) -> None:
        """Store the instruction for exactly this scope."""

        if scope.group_id is None:
            await self._instruction_settings.upsert_user_instruction(
                user_id=scope.user_id,
                instruction=instruction,
            )
            return
        await self._instruction_settings.upsert_group_user_instruction(
            group_id=scope.group_id,
            user_id=scope.user_id,
            instruction=instruction,
        )

    async def resolve_effective_instruction(self, scope: InstructionScope) -> str:
        """Return the instruction used for generation.

        Group members without a personal instruction get the group default.
        """

        instruction = await self.get_instruction(scope)
        if instruction or not scope.is_group:
            return instruction
        return await self.get_instruction(scope.group_default())
