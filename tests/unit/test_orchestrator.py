"""Unit tests for PaneOrchestrator layout transitions."""

from unittest.mock import Mock

import pytest

from claudeplex.constants import PLACEHOLDER_HINT, RESIZE_HOOK_NAME, RESIZE_LOCK_OPTION
from claudeplex.errors import WorktreeError
from claudeplex.models import DiffViewMode, LayoutMode
from claudeplex.resize_hook import script_path_for
from claudeplex.satellites.manager import SatelliteKind

SIDEBAR = "%0"
PLACEHOLDER = "%1"


def _visible_agents(state, fake_tmux):
    return [s.id for s in state.sessions if s.pane_id in fake_tmux.visible]


def _feature(state):
    return state.get_worktree("wt-feature")


def test_first_session_takes_over_placeholder(orchestrator, state, fake_tmux):
    """The first session reuses the welcome pane instead of splitting a new one."""
    session = orchestrator.create_session(_feature(state), "1: feature")

    assert session is not None
    assert session.pane_id == PLACEHOLDER
    assert state.placeholder_pane_id is None
    assert state.active_session_id == session.id
    assert ("send_key", PLACEHOLDER, "C-c") in fake_tmux.calls
    typed = fake_tmux.typed[PLACEHOLDER][-1]
    assert typed.startswith("cd ") and typed.endswith("&& clear && agent")
    assert not fake_tmux.ops("split_pane")


def test_second_session_parks_the_first(orchestrator, state, fake_tmux):
    first = orchestrator.create_session(_feature(state), "one")
    second = orchestrator.create_session(state.get_worktree("main"), "two")

    assert second.pane_id != first.pane_id
    assert first.pane_id in fake_tmux.background
    assert _visible_agents(state, fake_tmux) == [second.id]
    assert fake_tmux.typed[second.pane_id] == ["agent"]


def test_switch_session_attaches_only_target(orchestrator, state, fake_tmux):
    first = orchestrator.create_session(_feature(state), "one")
    orchestrator.create_session(_feature(state), "two")

    orchestrator.switch_session(first)

    assert state.active_session_id == first.id
    assert _visible_agents(state, fake_tmux) == [first.id]
    assert fake_tmux.calls[-1] == ("select_pane", SIDEBAR)


def test_switch_to_active_session_only_focuses(orchestrator, state, fake_tmux):
    session = orchestrator.create_session(_feature(state), "one")
    fake_tmux.calls.clear()

    orchestrator.switch_session(session)

    assert fake_tmux.calls == [("select_pane", session.pane_id)]


def test_transition_releases_resize_lock(orchestrator, state, fake_tmux):
    orchestrator.create_session(_feature(state), "one")
    orchestrator.create_terminal()

    lock_calls = [c for c in fake_tmux.calls if c[1:2] == (RESIZE_LOCK_OPTION,)]
    assert lock_calls[0][0] == "set_option"
    assert lock_calls[-1] == ("unset_option", RESIZE_LOCK_OPTION)
    assert RESIZE_LOCK_OPTION not in fake_tmux.options


def test_first_terminal_builds_bar_and_hook(orchestrator, state, fake_tmux, satellites):
    session = orchestrator.create_session(_feature(state), "one")

    terminal = orchestrator.create_terminal()

    assert terminal is not None
    splits = fake_tmux.ops("split_pane")
    assert splits[0] == ("split_pane", session.pane_id, True, 30, None, False)
    assert splits[1] == ("split_pane", terminal.pane_id, True, None, 1, True)
    assert session.terminal_bar_pane_id in fake_tmux.visible
    assert fake_tmux.sizes[session.terminal_bar_pane_id]["height"] == 1
    assert (state.session_name, RESIZE_HOOK_NAME) in fake_tmux.hooks
    spawn = satellites.spawn.call_args
    assert spawn.args[:3] == (SatelliteKind.TERMINAL_BAR, session.terminal_bar_pane_id, session.id)
    assert spawn.kwargs["state"]["activeIndex"] == 0
    assert fake_tmux.calls[-1] == ("select_pane", terminal.pane_id)


def test_second_terminal_replaces_visible_body(orchestrator, state, fake_tmux, satellites):
    session = orchestrator.create_session(_feature(state), "one")
    first = orchestrator.create_terminal()

    second = orchestrator.create_terminal()

    assert session.active_terminal_index == 1
    assert first.pane_id in fake_tmux.background
    assert second.pane_id in fake_tmux.visible
    payload = satellites.push.call_args.args[1]
    assert [t["title"] for t in payload["terminals"]] == ["Terminal 1", "Terminal 2"]
    assert payload["activeIndex"] == 1


def test_create_terminal_refused_without_session_or_in_modal(orchestrator, state):
    assert orchestrator.create_terminal() is None

    orchestrator.create_session(_feature(state), "one")
    orchestrator.enter_fullscreen()

    assert orchestrator.create_terminal() is None


def test_switch_terminal_swaps_body(orchestrator, state, fake_tmux):
    session = orchestrator.create_session(_feature(state), "one")
    first = orchestrator.create_terminal()
    second = orchestrator.create_terminal()

    orchestrator.switch_terminal(session, 0)

    assert session.active_terminal_index == 0
    assert first.pane_id in fake_tmux.visible
    assert second.pane_id in fake_tmux.background


def test_switch_terminal_on_parked_session_only_moves_index(orchestrator, state, fake_tmux):
    session = orchestrator.create_session(_feature(state), "one")
    orchestrator.create_terminal()
    orchestrator.create_terminal()
    orchestrator.create_session(_feature(state), "two")
    fake_tmux.calls.clear()

    orchestrator.switch_terminal(session, 0)

    assert session.active_terminal_index == 0
    assert not fake_tmux.ops("join_pane")


def test_delete_last_terminal_removes_hook_before_bar(orchestrator, state, fake_tmux):
    session = orchestrator.create_session(_feature(state), "one")
    terminal = orchestrator.create_terminal()
    bar = session.terminal_bar_pane_id

    orchestrator.delete_terminal(session, 0)

    hook_removed = fake_tmux.calls.index(("remove_hook", state.session_name, RESIZE_HOOK_NAME))
    bar_killed = fake_tmux.calls.index(("kill_pane", bar))
    assert hook_removed < bar_killed
    assert session.terminal_bar_pane_id is None
    assert session.terminals == []
    assert not fake_tmux.exists(terminal.pane_id)
    assert (state.session_name, RESIZE_HOOK_NAME) not in fake_tmux.hooks


def test_delete_active_terminal_joins_replacement(orchestrator, state, fake_tmux):
    session = orchestrator.create_session(_feature(state), "one")
    first = orchestrator.create_terminal()
    orchestrator.create_terminal()

    orchestrator.delete_terminal(session, 1)

    assert session.active_terminal_index == 0
    assert first.pane_id in fake_tmux.visible
    assert ("join_pane", first.pane_id, session.terminal_bar_pane_id, True, None, False) in fake_tmux.calls


def test_delete_inactive_terminal_shifts_index(orchestrator, state, fake_tmux):
    session = orchestrator.create_session(_feature(state), "one")
    orchestrator.create_terminal()
    second = orchestrator.create_terminal()

    orchestrator.delete_terminal(session, 0)

    assert session.active_terminal_index == 0
    assert session.active_terminal is second
    assert second.pane_id in fake_tmux.visible


def test_fullscreen_round_trip_restores_stack(orchestrator, state, fake_tmux):
    session = orchestrator.create_session(_feature(state), "one")
    terminal = orchestrator.create_terminal()

    orchestrator.enter_fullscreen()

    assert state.layout is LayoutMode.FULLSCREEN_MODAL
    assert state.hidden_pane_id == session.pane_id
    assert fake_tmux.visible == [SIDEBAR]

    orchestrator.exit_fullscreen()

    assert state.layout is LayoutMode.NORMAL
    assert state.hidden_pane_id is None
    assert {session.pane_id, session.terminal_bar_pane_id, terminal.pane_id} <= set(fake_tmux.visible)
    assert fake_tmux.sizes[session.terminal_bar_pane_id]["height"] == 1


def test_fullscreen_hides_placeholder(orchestrator, state, fake_tmux):
    orchestrator.enter_fullscreen()

    assert state.hidden_pane_id == PLACEHOLDER
    assert PLACEHOLDER in fake_tmux.background

    orchestrator.exit_fullscreen()

    assert PLACEHOLDER in fake_tmux.visible


def test_session_created_in_fullscreen_is_revealed_on_exit(orchestrator, state, fake_tmux):
    orchestrator.create_session(_feature(state), "one")
    orchestrator.enter_fullscreen()

    second = orchestrator.create_session(_feature(state), "two")

    assert second.pane_id in fake_tmux.background
    assert state.hidden_pane_id == second.pane_id

    orchestrator.exit_fullscreen()

    assert _visible_agents(state, fake_tmux) == [second.id]


def test_switch_in_fullscreen_defers_attach(orchestrator, state, fake_tmux):
    first = orchestrator.create_session(_feature(state), "one")
    orchestrator.create_session(_feature(state), "two")
    orchestrator.enter_fullscreen()
    fake_tmux.calls.clear()

    orchestrator.switch_session(first)

    assert fake_tmux.calls == []
    assert state.hidden_pane_id == first.pane_id

    orchestrator.exit_fullscreen()

    assert _visible_agents(state, fake_tmux) == [first.id]


def test_delete_active_session_activates_next(orchestrator, state, fake_tmux):
    first = orchestrator.create_session(_feature(state), "one")
    second = orchestrator.create_session(_feature(state), "two")

    orchestrator.delete_session(second)

    assert state.active_session_id == first.id
    assert _visible_agents(state, fake_tmux) == [first.id]
    assert not fake_tmux.exists(second.pane_id)


def test_delete_last_session_shows_placeholder(orchestrator, state, fake_tmux):
    session = orchestrator.create_session(_feature(state), "one")
    orchestrator.create_terminal()

    orchestrator.delete_session(session)

    assert state.sessions == []
    assert state.active_session_id is None
    placeholder = state.placeholder_pane_id
    assert placeholder in fake_tmux.visible
    assert PLACEHOLDER_HINT in fake_tmux.typed[placeholder][-1]
    assert fake_tmux.visible == [SIDEBAR, placeholder]


def test_delete_main_worktree_is_refused(orchestrator, state, fake_tmux):
    orchestrator.create_session(state.get_worktree("main"), "one")
    fake_tmux.calls.clear()
    worktrees = Mock()

    with pytest.raises(WorktreeError):
        orchestrator.delete_worktree(state.get_worktree("main"), worktrees)

    assert fake_tmux.calls == []
    worktrees.remove.assert_not_called()
    assert len(state.sessions) == 1


def test_delete_worktree_kills_its_sessions(orchestrator, state, fake_tmux):
    feature = _feature(state)
    keep = orchestrator.create_session(state.get_worktree("main"), "keep")
    orchestrator.create_session(feature, "doomed")
    worktrees = Mock()

    orchestrator.delete_worktree(feature, worktrees)

    worktrees.remove.assert_called_once_with(feature.path, force=True)
    assert [s.id for s in state.sessions] == [keep.id]
    assert state.get_worktree("wt-feature") is None
    assert state.active_session_id == keep.id
    assert _visible_agents(state, fake_tmux) == [keep.id]


def test_failed_worktree_removal_keeps_it_listed(orchestrator, state):
    orchestrator.create_session(_feature(state), "doomed")
    worktrees = Mock()
    worktrees.remove.side_effect = WorktreeError("locked")

    with pytest.raises(WorktreeError, match="locked"):
        orchestrator.delete_worktree(_feature(state), worktrees)

    assert state.get_worktree("wt-feature") is not None
    assert state.sessions == []
    assert state.placeholder_pane_id is not None


def test_toggle_collapsed_pins_sidebar_width(orchestrator, state, fake_tmux):
    orchestrator.toggle_collapsed()

    assert fake_tmux.calls[-1] == ("resize_pane", SIDEBAR, 2, None)

    orchestrator.toggle_collapsed()

    assert fake_tmux.calls[-1] == ("resize_pane", SIDEBAR, 25, None)


def test_diff_pane_toggle(orchestrator, state, fake_tmux, satellites):
    session = orchestrator.create_session(_feature(state), "one")

    orchestrator.toggle_diff_pane()

    assert session.diff_pane_id in fake_tmux.visible
    spawn = satellites.spawn.call_args
    assert spawn.args == (SatelliteKind.DIFF_LIST, session.diff_pane_id, session.id, _feature(state).path)

    pane = session.diff_pane_id
    orchestrator.toggle_diff_pane()

    assert session.diff_pane_id is None
    assert not fake_tmux.exists(pane)


def test_diff_pane_travels_with_session(orchestrator, state, fake_tmux):
    first = orchestrator.create_session(_feature(state), "one")
    orchestrator.toggle_diff_pane()
    second = orchestrator.create_session(_feature(state), "two")

    assert first.diff_pane_id in fake_tmux.background

    orchestrator.switch_session(first)

    assert first.diff_pane_id in fake_tmux.visible
    assert second.pane_id in fake_tmux.background


def test_file_diff_replaces_agent_stack(orchestrator, state, fake_tmux, satellites):
    session = orchestrator.create_session(_feature(state), "one")
    terminal = orchestrator.create_terminal()
    orchestrator.toggle_diff_pane()

    view = orchestrator.open_file_diff("src/app.py", 3, 1)

    assert view is not None and state.file_diff is view
    assert session.pane_id in fake_tmux.background
    assert terminal.pane_id in fake_tmux.background
    assert {view.header_pane_id, view.content_pane_id, session.diff_pane_id} <= set(fake_tmux.visible)
    kinds = [c.args[0] for c in satellites.spawn.call_args_list]
    assert kinds[-2:] == [SatelliteKind.FILE_DIFF_HEADER, SatelliteKind.FILE_DIFF_CONTENT]
    assert satellites.spawn.call_args_list[-2].args[2:] == ("src/app.py", "3", "1", "whole-file")

    orchestrator.close_file_diff()

    assert state.file_diff is None
    assert not fake_tmux.exists(view.header_pane_id)
    assert {session.pane_id, terminal.pane_id, session.diff_pane_id} <= set(fake_tmux.visible)


def test_file_diff_mode_respawns_content(orchestrator, state, satellites):
    orchestrator.create_session(_feature(state), "one")
    view = orchestrator.open_file_diff("a.txt")

    orchestrator.set_file_diff_mode(DiffViewMode.DIFFS_ONLY)

    assert view.mode is DiffViewMode.DIFFS_ONLY
    satellites.push.assert_called_with(view.header_pane_id, {"mode": "diffs-only"})
    last = satellites.spawn.call_args
    assert last.args[0] is SatelliteKind.FILE_DIFF_CONTENT
    assert last.kwargs == {"replace": True}


def test_split_failure_restores_previous_session(orchestrator, state, fake_tmux):
    first = orchestrator.create_session(_feature(state), "one")
    fake_tmux.fail_splits = True

    assert orchestrator.create_session(_feature(state), "two") is None

    assert [s.id for s in state.sessions] == [first.id]
    assert _visible_agents(state, fake_tmux) == [first.id]


def test_shutdown_kills_every_managed_pane(orchestrator, state, fake_tmux):
    first = orchestrator.create_session(_feature(state), "one")
    orchestrator.create_terminal()
    second = orchestrator.create_session(_feature(state), "two")

    orchestrator.shutdown()

    assert state.sessions == []
    assert not fake_tmux.exists(first.pane_id)
    assert not fake_tmux.exists(second.pane_id)
    assert fake_tmux.visible == [SIDEBAR]


def test_diff_toggle_during_file_diff_keeps_agent_visible(orchestrator, state, fake_tmux):
    session = orchestrator.create_session(_feature(state), "one")
    orchestrator.toggle_diff_pane()
    view = orchestrator.open_file_diff("a.py")

    orchestrator.toggle_diff_pane()
    orchestrator.toggle_diff_pane()

    assert session.diff_pane_id in fake_tmux.visible
    assert fake_tmux.ops("split_pane")[-1][1] == view.content_pane_id

    orchestrator.close_file_diff()

    assert session.pane_id in fake_tmux.visible
    assert session.diff_pane_id in fake_tmux.visible


def test_closing_file_diff_with_parked_diff_list_attaches_beside_sidebar(orchestrator, state, fake_tmux):
    session = orchestrator.create_session(_feature(state), "one")
    orchestrator.toggle_diff_pane()
    orchestrator.open_file_diff("a.py")
    fake_tmux.break_pane(session.diff_pane_id)

    orchestrator.close_file_diff()

    assert ("join_pane", session.pane_id, SIDEBAR, False, None, False) in fake_tmux.calls
    assert {session.pane_id, session.diff_pane_id} <= set(fake_tmux.visible)


def test_enter_fullscreen_twice_is_idempotent(orchestrator, state, fake_tmux):
    orchestrator.create_session(_feature(state), "one")
    orchestrator.create_terminal()
    orchestrator.enter_fullscreen()
    before = list(fake_tmux.calls)

    orchestrator.enter_fullscreen()

    assert fake_tmux.calls == before


def test_exit_fullscreen_outside_modal_is_a_no_op(orchestrator, state, fake_tmux):
    orchestrator.create_session(_feature(state), "one")
    before = list(fake_tmux.calls)

    orchestrator.exit_fullscreen()

    assert fake_tmux.calls == before
    assert state.layout is LayoutMode.NORMAL


def test_new_terminal_after_last_deleted_installs_hook_for_new_panes(orchestrator, state, fake_tmux):
    session = orchestrator.create_session(_feature(state), "one")
    orchestrator.create_terminal()
    old_triple = orchestrator.resize.installed
    old_script = script_path_for(old_triple, orchestrator.resize.script_dir)

    orchestrator.delete_terminal(session, 0)
    orchestrator.create_terminal()

    new_triple = orchestrator.resize.installed
    new_script = script_path_for(new_triple, orchestrator.resize.script_dir)
    assert new_triple is not None and new_triple != old_triple
    assert new_triple.bar == session.terminal_bar_pane_id
    assert new_script != old_script
    assert new_script.exists() and not old_script.exists()
    assert str(new_script) in fake_tmux.hooks[(state.session_name, RESIZE_HOOK_NAME)]


def test_delete_worktree_kills_in_hook_safe_order(orchestrator, state, fake_tmux):
    feature = _feature(state)
    keep = orchestrator.create_session(state.get_worktree("main"), "keep")
    doomed = []
    for title in ("d1", "d2"):
        session = orchestrator.create_session(feature, title)
        orchestrator.create_terminal()
        doomed.append((session, session.active_terminal.pane_id, session.terminal_bar_pane_id))
    start = len(fake_tmux.calls)

    orchestrator.delete_worktree(feature, Mock())

    calls = fake_tmux.calls[start:]
    last_agent_kill = 0
    for session, terminal, bar in doomed:
        term_at = calls.index(("kill_pane", terminal))
        bar_at = calls.index(("kill_pane", bar))
        agent_at = calls.index(("kill_pane", session.pane_id))
        assert ("remove_hook", state.session_name, RESIZE_HOOK_NAME) in calls[term_at:bar_at]
        assert term_at < bar_at < agent_at
        last_agent_kill = max(last_agent_kill, agent_at)
    attach_at = calls.index(("join_pane", keep.pane_id, SIDEBAR, False, None, False))
    assert attach_at > last_agent_kill
    assert _visible_agents(state, fake_tmux) == [keep.id]


def test_deleting_active_first_terminal_joins_successor_once(orchestrator, state, fake_tmux):
    session = orchestrator.create_session(_feature(state), "one")
    first = orchestrator.create_terminal()
    second = orchestrator.create_terminal()
    orchestrator.switch_terminal(session, 0)
    start = len(fake_tmux.calls)

    orchestrator.delete_terminal(session, 0)

    joins = [c for c in fake_tmux.calls[start:] if c[0] == "join_pane"]
    assert joins == [("join_pane", second.pane_id, session.terminal_bar_pane_id, True, None, False)]
    assert session.active_terminal is second
    assert not fake_tmux.exists(first.pane_id)
