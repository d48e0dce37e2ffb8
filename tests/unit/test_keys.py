"""Unit tests for raw input decoding."""

from claudeplex.keys import Key, MouseEvent, parse_input, parse_mouse


def test_printable_and_control_keys():
    events = parse_input("jk\r\x7f\t")

    assert events == [Key("char", "j"), Key("char", "k"), Key("enter"), Key("backspace"), Key("tab")]


def test_ctrl_letters():
    names = [e.name for e in parse_input("\x03\x04\x07\x11\x14")]

    assert names == ["ctrl-c", "ctrl-d", "ctrl-g", "ctrl-q", "ctrl-t"]


def test_escape_sequences():
    events = parse_input("\x1b[A\x1bOB\x1b[5~\x1b[Z\x1b")

    assert [e.name for e in events] == ["up", "down", "pageup", "shift-tab", "escape"]


def test_alt_char():
    assert parse_input("\x1bx") == [Key("alt", "x")]


def test_sgr_mouse_reports():
    events = parse_input("\x1b[<0;12;3M\x1b[<0;12;3m\x1b[<65;1;1Mq")

    assert events[0] == MouseEvent(0, 12, 3, True)
    assert events[0].is_click
    assert not events[1].is_click
    assert events[2].is_wheel_down
    assert events[3] == Key("char", "q")


def test_parse_mouse_rejects_keys():
    assert parse_mouse("\x1b[A") is None
    assert parse_mouse("\x1b[<64;5;6M").is_wheel_up


def test_matches_names_and_chars():
    assert Key("char", "j").matches("down", "j")
    assert Key("down").matches("down", "j")
    assert not Key("char", "x").matches("down", "j")
