"""Ordered rule table for the set/get instruction command grammar."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from functools import lru_cache


class InstructionCommandKind(StrEnum):
    """Recognized instruction management commands."""

    SET_GROUP_DEFAULT = "set_group_default"
    SET = "set"
    GET = "get"


@dataclass(frozen=True)
class InstructionCommandRule:
    """One grammar row: leading tokens mapped to a command kind."""

    tokens: tuple[str, ...]
    kind: InstructionCommandKind
    group_only: bool = False

    def match(self, text: str) -> str | None:
        """Return the text after the leading tokens, or None when they do not match."""

        matched = _rule_pattern(self.tokens).match(text)
        if matched is None:
            return None
        return matched.group("rest") or ""


@dataclass(frozen=True)
class InstructionCommand:
    """Parsed command with its argument text."""

    kind: InstructionCommandKind
    argument: str


# Most specific rows first; the first matching row wins.
INSTRUCTION_COMMAND_RULES: tuple[InstructionCommandRule, ...] = (
    InstructionCommandRule(
        tokens=("set", "default", "instruction"),
        kind=InstructionCommandKind.SET_GROUP_DEFAULT,
        group_only=True,
    ),
    InstructionCommandRule(tokens=("set", "instruction"), kind=InstructionCommandKind.SET),
    InstructionCommandRule(tokens=("get", "instruction"), kind=InstructionCommandKind.GET),
)


@lru_cache(maxsize=None)
def _rule_pattern(tokens: tuple[str, ...]) -> re.Pattern[str]:
    leading = r"\s+".join(re.escape(token) for token in tokens)
    return re.compile(rf"^\s*{leading}(?:\s+(?P<rest>.*))?$", re.DOTALL)


def parse_instruction_command(
    *,
    text: str,
    in_group: bool,
    rules: tuple[InstructionCommandRule, ...] = INSTRUCTION_COMMAND_RULES,
) -> InstructionCommand | None:
    """Return the first command whose rule matches, or None for plain questions."""

    for rule in rules:
        if rule.group_only and not in_group:
            continue
        argument = rule.match(text)
        if argument is not None:
            return InstructionCommand(kind=rule.kind, argument=argument)
    return None
