"""
Tests for the line-oriented command grammar.
"""

import pytest

from diplomacy_engine.core.orders import Hold, Move, OrderParseError
from diplomacy_engine.io.order_parser import CommandParser


def test_order_command():
    command = CommandParser.parse_line("--order FRANCE PAR_L M BUR_L")
    assert command.kind == "order"
    assert command.player == "FRANCE"
    assert command.order == Move("FRANCE", "PAR_L", "BUR_L")


def test_hold_with_code_first():
    command = CommandParser.parse_line("--order FRANCE H PAR_L")
    assert command.order == Hold("FRANCE", "PAR_L")


def test_draw_vote():
    assert CommandParser.parse_line("--draw FRANCE 1").vote is True
    assert CommandParser.parse_line("--draw FRANCE 0").vote is False


def test_short_draw_uses_session_player():
    command = CommandParser.parse_line("--draw 1", player="FRANCE")
    assert (command.kind, command.player, command.vote) == ("draw", "FRANCE", True)
    assert CommandParser.parse_line("--draw GERMANY 0", player="FRANCE").player == "GERMANY"
    with pytest.raises(OrderParseError):
        CommandParser.parse_line("--draw 1")


def test_press_and_show_press():
    command = CommandParser.parse_line("--press FRANCE ENGLAND Shall we talk?")
    assert (command.kind, command.player, command.recipient, command.message) == (
        "press", "FRANCE", "ENGLAND", "Shall we talk?"
    )
    command = CommandParser.parse_line("--press public")
    assert (command.kind, command.player) == ("show_press", "public")


def test_query_and_file_commands():
    assert CommandParser.parse_line("--advance").kind == "advance"
    assert CommandParser.parse_line("--ready GERMANY").player == "GERMANY"
    assert CommandParser.parse_line("--withdraw GERMANY").kind == "withdraw"
    command = CommandParser.parse_line("--orders-file orders/phase1.yaml")
    assert (command.kind, command.path) == ("orders_file", "orders/phase1.yaml")


def test_blank_lines_and_comments_skipped():
    commands = CommandParser.parse_lines(["", "# comment", "--phase", "   "])
    assert [c.kind for c in commands] == ["phase"]


@pytest.mark.parametrize("line", [
    "order FRANCE PAR_L H",
    "--order FRANCE",
    "--draw FRANCE yes",
    "--ready",
    "--withdraw",
    "--press FRANCE ENGLAND",
    "--advance now",
    "--teleport FRANCE",
    "--order FRANCE PAR_L X BUR_L",
])
def test_malformed_commands(line):
    with pytest.raises(OrderParseError):
        CommandParser.parse_line(line)
