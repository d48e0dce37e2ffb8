"""Unit tests for the keystroke relay and render framing."""

from unittest.mock import Mock

from claudeplex.relay import (
    RelayDecoder,
    RelayMessage,
    RelayNamespace,
    RenderFrameReader,
    decode_relay,
    encode_relay,
    encode_render,
    send_relay,
)


class _Clock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_encode_relay_omits_empty_data():
    assert encode_relay(RelayNamespace.TERM, "new") == "TERM:new"
    assert encode_relay(RelayNamespace.TERM, "switch", 2) == "TERM:switch:2"
    assert encode_relay(RelayNamespace.DIFF, "viewfile", "src/a:b.py") == "DIFF:viewfile:src/a:b.py"


def test_decode_relay_keeps_colons_in_data():
    message = decode_relay("DIFF:viewfile:src/a:b.py")

    assert message == RelayMessage(RelayNamespace.DIFF, "viewfile", "src/a:b.py")


def test_decode_relay_rejects_unknown_namespace_and_shapes():
    assert decode_relay("RENDER:{}") is None
    assert decode_relay("hello") is None
    assert decode_relay("TERM:") is None
    assert decode_relay("term:new") is None


def test_int_data():
    assert RelayMessage(RelayNamespace.TERM, "switch", "3").int_data() == 3
    assert RelayMessage(RelayNamespace.TERM, "switch", "x").int_data() is None


def test_send_relay_uses_three_injections():
    tmux = Mock()
    tmux.send_key.return_value = True
    tmux.send_keys.return_value = True

    assert send_relay(tmux, "%0", RelayNamespace.TERM, "delete", 1) is True

    tmux.send_key.assert_called_once_with("%0", "C-u")
    tmux.send_keys.assert_called_once_with("%0", "TERM:delete:1", enter=True)


def test_send_relay_drops_when_controller_is_gone():
    tmux = Mock()
    tmux.send_key.return_value = False

    assert send_relay(tmux, "%0", RelayNamespace.TERM, "new") is False
    tmux.send_keys.assert_not_called()


def test_decoder_separates_messages_from_keys():
    decoder = RelayDecoder()

    events = decoder.feed("j\x15TERM:switch:2\rk")

    assert events == ["j", RelayMessage(RelayNamespace.TERM, "switch", "2"), "k"]


def test_decoder_handles_split_reads():
    decoder = RelayDecoder()

    assert decoder.feed("\x15DIFF:vie") == []
    assert decoder.active
    assert decoder.feed("wfile:README.md\r") == [RelayMessage(RelayNamespace.DIFF, "viewfile", "README.md")]
    assert not decoder.active


def test_decoder_discards_garbage_line():
    decoder = RelayDecoder()

    assert decoder.feed("\x15not a message\r") == []
    assert decoder.feed("q") == ["q"]


def test_escape_cancels_command_mode():
    decoder = RelayDecoder()

    events = decoder.feed("\x15TER\x1b")

    assert events == ["\x1b"]
    assert not decoder.active


def test_idle_command_mode_expires():
    clock = _Clock()
    decoder = RelayDecoder(idle_timeout=1.0, clock=clock)
    decoder.feed("\x15TERM:ne")

    clock.now += 5
    events = decoder.feed("j")

    assert events == ["j"]


def test_overflow_abandons_command_mode():
    decoder = RelayDecoder()

    events = decoder.feed("\x15" + "A" * 5000 + "\r" + "x")

    assert len(events) == 1
    assert not isinstance(events[0], RelayMessage)
    assert events[0].endswith("\rx")
    assert not decoder.active


def test_render_reader_frames_across_reads():
    reader = RenderFrameReader()
    line = encode_render({"activeIndex": 1, "terminals": []})

    frames, leftover = reader.feed("j" + line[:10])
    assert frames == [] and leftover == "j"

    frames, leftover = reader.feed(line[10:] + "\rk")
    assert frames == [{"activeIndex": 1, "terminals": []}]
    assert leftover == "k"


def test_render_reader_drops_malformed_json():
    reader = RenderFrameReader()

    frames, leftover = reader.feed("RENDER:{nope\r")

    assert frames == []
    assert leftover == ""
