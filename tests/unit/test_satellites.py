"""Unit tests for the satellite pane programs."""

import signal
from contextlib import nullcontext
from unittest.mock import Mock, patch

from claudeplex.constants import INPUT_WAKEUP_INTERVAL
from claudeplex.gitops.diff import DiffFileSummary
from claudeplex.models import DiffViewMode
from claudeplex.relay import encode_render
from claudeplex.satellites import diff_list, file_diff_content, file_diff_header, terminal_bar
from claudeplex.satellites.base import parse_state_arg
from claudeplex.satellites.diff_list import DiffList
from claudeplex.satellites.file_diff_content import FileDiffContent
from claudeplex.satellites.file_diff_header import FileDiffHeader
from claudeplex.satellites.terminal_bar import TerminalBar

BAR_STATE = {
    "terminals": [{"id": "t1", "title": "Terminal 1"}, {"id": "t2", "title": "Terminal 2"}],
    "activeIndex": 0,
}


def _tmux() -> Mock:
    tmux = Mock()
    tmux.send_key.return_value = True
    tmux.send_keys.return_value = True
    return tmux


def _relayed(tmux: Mock) -> list[str]:
    return [c.args[1] for c in tmux.send_keys.call_args_list]


def test_parse_state_arg_tolerates_garbage():
    assert parse_state_arg(None) == {}
    assert parse_state_arg("{bad") == {}
    assert parse_state_arg("[1]") == {}
    assert parse_state_arg('{"activeIndex": 2}') == {"activeIndex": 2}


def test_terminal_bar_keys_relay_actions():
    tmux = _tmux()
    bar = TerminalBar("%0", "session-1", BAR_STATE, tmux)

    bar.feed("2")
    bar.feed("n")
    bar.feed("d")
    bar.feed("\r")
    bar.feed("\x1b")

    assert _relayed(tmux) == ["TERM:switch:1", "TERM:new", "TERM:delete:0", "TERM:focus", "TERM:escape"]
    tmux.send_key.assert_called_with("%0", "C-u")


def test_terminal_bar_ignores_switch_to_active_or_missing_tab():
    tmux = _tmux()
    bar = TerminalBar("%0", "session-1", BAR_STATE, tmux)

    bar.feed("1")
    bar.feed("7")

    tmux.send_keys.assert_not_called()


def test_terminal_bar_tab_wraps_around():
    tmux = _tmux()
    bar = TerminalBar("%0", "session-1", {**BAR_STATE, "activeIndex": 1}, tmux)

    bar.feed("\t")

    assert _relayed(tmux) == ["TERM:switch:0"]


def test_terminal_bar_clicks():
    tmux = _tmux()
    bar = TerminalBar("%0", "session-1", BAR_STATE, tmux)
    bar.cols = 80
    bar.render()

    bar.feed("\x1b[<0;17;1M")
    bar.feed("\x1b[<0;3;1M")
    bar.feed("\x1b[<0;31;1M")

    assert _relayed(tmux) == ["TERM:switch:1", "TERM:focus", "TERM:new"]


def test_terminal_bar_applies_render_push():
    tmux = _tmux()
    bar = TerminalBar("%0", "session-1", BAR_STATE, tmux)
    payload = {"terminals": BAR_STATE["terminals"][:1], "activeIndex": 0}

    bar.feed(encode_render(payload) + "\r")

    assert len(bar.terminals) == 1
    tmux.send_keys.assert_not_called()


def test_diff_list_navigation_and_view():
    tmux = _tmux()
    files = [DiffFileSummary("a.py", "M", 1, 0).to_payload(), DiffFileSummary("b.py", "A", 4, 0).to_payload()]
    view = DiffList("%0", "session-1", "/repo", {"files": files}, tmux)

    view.feed("j")
    view.feed("\r")
    view.feed("q")

    assert view.selected == 1
    assert _relayed(tmux) == ["DIFF:viewfile:b.py", "DIFF:close"]


def test_diff_list_click_selects_then_views():
    tmux = _tmux()
    files = [DiffFileSummary("a.py", "M").to_payload(), DiffFileSummary("b.py", "M").to_payload()]
    view = DiffList("%0", "session-1", "/repo", {"files": files}, tmux)
    view.cols, view.rows = 40, 20
    view.render()

    view.feed("\x1b[<0;5;4M")
    assert view.selected == 1
    tmux.send_keys.assert_not_called()

    view.feed("\x1b[<0;5;4M")
    assert _relayed(tmux) == ["DIFF:viewfile:b.py"]


def test_diff_list_polls_worktree_without_startup_state():
    summary = [DiffFileSummary("x.txt", "A", 2, 0)]
    with patch("claudeplex.satellites.diff_list.diff_summary", return_value=summary) as mock_summary:
        view = DiffList("%0", "session-1", "/repo", None, _tmux())
        view.feed(encode_render({"refresh": True}) + "\r")

    assert view.files == summary
    assert mock_summary.call_count == 2
    assert mock_summary.call_args.args == ("/repo",)


def test_file_diff_header_toggles_mode():
    tmux = _tmux()
    header = FileDiffHeader("%0", "src/app.py", 3, 1, DiffViewMode.WHOLE_FILE, tmux)

    header.feed("m")

    assert header.mode is DiffViewMode.DIFFS_ONLY
    assert _relayed(tmux) == ["FILEDIFF:mode:diffs-only"]


def test_file_diff_header_clicks():
    tmux = _tmux()
    header = FileDiffHeader("%0", "src/app.py", 3, 1, DiffViewMode.WHOLE_FILE, tmux)
    header.cols = 80
    header.render()

    header.feed("\x1b[<0;70;1M")
    header.feed("\x1b[<0;2;1M")

    assert _relayed(tmux) == ["FILEDIFF:mode:diffs-only", "FILEDIFF:close"]


def test_file_diff_header_follows_render_push():
    header = FileDiffHeader("%0", "a", tmux=_tmux())

    header.feed(encode_render({"mode": "diffs-only"}) + "\r")

    assert header.mode is DiffViewMode.DIFFS_ONLY


def test_file_diff_content_scrolls_and_closes():
    tmux = _tmux()
    text = "\n".join(f"line {i}" for i in range(100))
    with patch("claudeplex.satellites.file_diff_content.render_file_diff", return_value=text):
        content = FileDiffContent("%0", "/repo", "a.txt", DiffViewMode.DIFFS_ONLY, tmux)
    content.rows = 20

    content.feed("jjj")
    assert content.scroll == 3
    content.feed("G")
    assert content.scroll == 100 - 20 + 1
    content.feed("\x1b[<64;1;1M")
    assert content.scroll == 100 - 20 + 1 - 3
    content.feed("g")
    assert content.scroll == 0

    content.feed("q")
    assert _relayed(tmux) == ["FILEDIFF:close"]
    assert "line 0" in content.render()


def test_entrypoints_require_arguments(capsys):
    assert terminal_bar.main(["%0"]) == 1
    assert diff_list.main(["%0", "s"]) == 1
    assert file_diff_header.main(["%0", "f", "1"]) == 1
    assert file_diff_content.main(["%0", "/repo"]) == 1
    assert "Usage" in capsys.readouterr().err


def test_satellite_loop_wakes_up_to_notice_sigterm():
    bar = TerminalBar("%0", "session-1", BAR_STATE, _tmux())
    timeouts = []

    def fake_read(_fd, timeout):
        timeouts.append(timeout)
        bar._on_signal(signal.SIGTERM, None)
        return ""

    with (
        patch("claudeplex.satellites.base.signal.signal"),
        patch("claudeplex.satellites.base.raw_terminal", return_value=nullcontext(0)),
        patch("claudeplex.satellites.base.read_input", side_effect=fake_read),
        patch("claudeplex.satellites.base.write"),
    ):
        assert bar.run() == 0

    assert bar.poll_interval is None
    assert timeouts == [INPUT_WAKEUP_INTERVAL]
