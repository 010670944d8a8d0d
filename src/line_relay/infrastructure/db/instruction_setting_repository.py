"""SQLAlchemy adapter for per-user and per-group instruction settings."""

from __future__ import annotations

import logging
from typing import Any, cast

import sqlalchemy as sa
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from line_relay.application.ports.instruction_setting_repository_port import (
    InstructionSettingRepositoryPort,
)
from line_relay.infrastructure.db.metadata import group_user_settings, user_settings

logger = logging.getLogger(__name__)


class SqlAlchemyInstructionSettingRepository(InstructionSettingRepositoryPort):
    """Instruction setting repository backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_user_instruction(self, *, user_id: str) -> str:
        """Return stored user instruction, or an empty string when never set."""

        statement = sa.select(user_settings.c.system_instruction).where(
            user_settings.c.user_id == user_id
        )
        async with self._session_factory() as session:
            result = await session.execute(statement)
        return cast(str | None, result.scalar_one_or_none()) or ""

    async def upsert_user_instruction(self, *, user_id: str, instruction: str) -> None:
        """Replace user instruction, inserting the row on first write."""

        await self._upsert(
            update_statement=(
                sa.update(user_settings)
                .where(user_settings.c.user_id == user_id)
                .values(
                    system_instruction=instruction,
                    updated_at=sa.func.current_timestamp(),
                )
            ),
            insert_statement=sa.insert(user_settings).values(
                user_id=user_id,
                system_instruction=instruction,
            ),
        )
        logger.info("instruction_setting_upserted scope=user user_id=%s", user_id)

    async def get_group_user_instruction(self, *, group_id: str, user_id: str) -> str:
        """Return stored (group, user) instruction, or an empty string when never set."""

        statement = sa.select(group_user_settings.c.system_instruction).where(
            group_user_settings.c.group_id == group_id,
            group_user_settings.c.user_id == user_id,
        )
        async with self._session_factory() as session:
            result = await session.execute(statement)
        return cast(str | None, result.scalar_one_or_none()) or ""

    async def upsert_group_user_instruction(
        self,
        *,
        group_id: str,
        user_id: str,
        instruction: str,
    ) -> None:
        """Replace (group, user) instruction, inserting the row on first write."""

        await self._upsert(
            update_statement=(
                sa.update(group_user_settings)
                .where(
                    group_user_settings.c.group_id == group_id,
                    group_user_settings.c.user_id == user_id,
                )
                .values(
                    system_instruction=instruction,
                    updated_at=sa.func.current_timestamp(),
                )
            ),
            insert_statement=sa.insert(group_user_settings).values(
                group_id=group_id,
                user_id=user_id,
                system_instruction=instruction,
            ),
        )
        logger.info(
            "instruction_setting_upserted scope=group group_id=%s user_id=%s",
            group_id,
            user_id,
        )

    async def _upsert(self, *, update_statement: Any, insert_statement: Any) -> None:
        async with self._session_factory() as session:
            result = cast(CursorResult[Any], await session.execute(update_statement))
            if int(result.rowcount or 0) > 0:
                await session.commit()
                return
            try:
                await session.execute(insert_statement)
                await session.commit()
                return
            except IntegrityError:
                # Concurrent first write inserted the row; last write still wins.
                await session.rollback()

            await session.execute(update_statement)
            await session.commit()
