from __future__ import annotations

from line_relay.domain.instruction_command_parser import (
    INSTRUCTION_COMMAND_RULES,
    InstructionCommandKind,
    parse_instruction_command,
)


def test_set_instruction_captures_rest_of_text() -> None:
    command = parse_instruction_command(text="set instruction be terse", in_group=False)

    assert command is not None
    assert command.kind is InstructionCommandKind.SET
    assert command.argument == "be terse"


def test_set_instruction_preserves_internal_whitespace_and_newlines() -> None:
    command = parse_instruction_command(
        text="set  instruction  answer in French.\nKeep it short.",
        in_group=False,
    )

    assert command is not None
    assert command.argument == "answer in French.\nKeep it short."


def test_set_default_instruction_matches_before_set_instruction_in_group() -> None:
    command = parse_instruction_command(
        text="set default instruction reply like a pirate",
        in_group=True,
    )

    assert command is not None
    assert command.kind is InstructionCommandKind.SET_GROUP_DEFAULT
    assert command.argument == "reply like a pirate"


def test_set_default_instruction_is_plain_question_in_user_scope() -> None:
    command = parse_instruction_command(
        text="set default instruction reply like a pirate",
        in_group=False,
    )

    assert command is None


def test_get_instruction_matches_with_and_without_trailing_words() -> None:
    bare = parse_instruction_command(text="get instruction", in_group=True)
    trailing = parse_instruction_command(text="get instruction please", in_group=False)

    assert bare is not None and bare.kind is InstructionCommandKind.GET
    assert bare.argument == ""
    assert trailing is not None and trailing.kind is InstructionCommandKind.GET


def test_token_prefix_must_end_on_word_boundary() -> None:
    assert parse_instruction_command(text="set instructions now", in_group=False) is None
    assert parse_instruction_command(text="settings instruction", in_group=False) is None


def test_other_text_falls_through_to_generation() -> None:
    assert parse_instruction_command(text="Hello", in_group=False) is None
    assert parse_instruction_command(text="get weather", in_group=True) is None
    assert parse_instruction_command(text="Set instruction x", in_group=False) is None


def test_rule_table_lists_most_specific_rule_first() -> None:
    token_counts = [len(rule.tokens) for rule in INSTRUCTION_COMMAND_RULES]

    assert INSTRUCTION_COMMAND_RULES[0].kind is InstructionCommandKind.SET_GROUP_DEFAULT
    assert INSTRUCTION_COMMAND_RULES[0].group_only is True
    assert token_counts[0] == max(token_counts)


def test_set_instruction_without_text_yields_empty_argument() -> None:
    command = parse_instruction_command(text="set instruction", in_group=False)

    assert command is not None
    assert command.kind is InstructionCommandKind.SET
    assert command.argument == ""


def test_command_kind_renders_as_plain_value() -> None:
    assert str(InstructionCommandKind.SET_GROUP_DEFAULT) == "set_group_default"
    assert f"{InstructionCommandKind.GET}" == "get"
