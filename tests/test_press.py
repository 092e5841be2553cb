"""
Tests for the press system.
"""

from diplomacy_engine.gamemaster.press_system import PUBLIC, PressSystem

PLAYERS = ["ENGLAND", "FRANCE", "GERMANY"]


def make_press():
    return PressSystem(lambda: PLAYERS)


def test_private_message_visible_to_recipient_only():
    press = make_press()
    press.send_message("ENGLAND", "FRANCE", "Shall we talk?", "Phase 1 move")
    assert press.format_messages("FRANCE") == ["ENGLAND: Shall we talk?"]
    assert press.format_messages("GERMANY") == []
    assert press.format_messages(PUBLIC) == []


def test_public_message_visible_to_all():
    press = make_press()
    press.send_message("GERMANY", PUBLIC, "Peace in our time", "Phase 1 move")
    for viewer in PLAYERS + [PUBLIC]:
        assert press.format_messages(viewer) == ["GERMANY/public: Peace in our time"]


def test_invalid_messages_refused():
    press = make_press()
    assert press.send_message("ITALY", "FRANCE", "hi", "Phase 1 move") is None
    assert press.send_message("FRANCE", "ITALY", "hi", "Phase 1 move") is None
    assert press.send_message("FRANCE", "FRANCE", "hi", "Phase 1 move") is None
    assert press.messages == []


def test_clear():
    press = make_press()
    press.send_message("ENGLAND", PUBLIC, "hello", "Phase 1 move")
    press.clear()
    assert press.messages_for("FRANCE") == []
