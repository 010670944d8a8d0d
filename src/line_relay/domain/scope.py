"""Scope keys under which instructions are stored."""

from __future__ import annotations

from dataclasses import dataclass

GROUP_DEFAULT_USER_ID = "default"


@dataclass(frozen=True)
class InstructionScope:
    """A user id alone, or a (group id, user id) pair.

    Inside a group the reserved user id ``default`` addresses the group's
    default instruction.
    """

    user_id: str
    group_id: str | None = None

    @classmethod
    def for_user(cls, user_id: str) -> InstructionScope:
        return cls(user_id=user_id)

    @classmethod
    def for_group_user(cls, group_id: str, user_id: str) -> InstructionScope:
        return cls(user_id=user_id, group_id=group_id)

    @classmethod
    def for_group_default(cls, group_id: str) -> InstructionScope:
        return cls(user_id=GROUP_DEFAULT_USER_ID, group_id=group_id)

    @property
    def is_group(self) -> bool:
        return self.group_id is not None

    def group_default(self) -> InstructionScope:
        """Return the default-sentinel scope of this scope's group."""

        if self.group_id is None:
            raise ValueError("user scope has no group default")
        return InstructionScope.for_group_default(self.group_id)
