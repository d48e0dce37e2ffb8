"""Constants used across claudeplex.

Layout geometry that users may tune lives in config; the values here are
protocol and UI details that the controller and its satellites must agree on.
"""

# Layout defaults (overridable through config)
SIDEBAR_WIDTH = 25
SIDEBAR_COLLAPSED_WIDTH = 2
TERMINAL_BAR_HEIGHT = 1
AGENT_PANE_PERCENT = 70
DIFF_PANE_WIDTH = 40
FILE_DIFF_HEADER_HEIGHT = 1
DEFAULT_COLS = 80
DEFAULT_ROWS = 24

# Longest a pane program blocks on stdin before it re-checks its running flag
INPUT_WAKEUP_INTERVAL = 0.5

DEFAULT_AGENT_COMMAND = "claude --dangerously-skip-permissions"

# tmux session naming
SESSION_NAME_PREFIX = "cpp"
SESSION_PROJECT_MAX = 15

# tmux options and hooks shared with the generated resize script
RESIZE_LOCK_OPTION = "@cpp-resizing"
PREV_AGENT_HEIGHT_OPTION = "@cpp-prev-claude"
PREV_BODY_HEIGHT_OPTION = "@cpp-prev-body"
RESIZE_HOOK_NAME = "after-resize-pane"
BORDER_DRAG_KEY = "MouseDragEnd1Border"
RESIZE_SCRIPT_PREFIX = "cpp-resize-hook-"

# Relay protocol
RELAY_CLEAR_KEY = "C-u"
RELAY_CLEAR_CHAR = "\x15"
RELAY_MAX_LINE = 4096
RENDER_PREFIX = "RENDER:"

# Sidebar rows
HEADER_ROW_COUNT = 3
FOOTER_ROW_COUNT = 10
LIST_ITEM_PADDING = 4
WORKTREE_ITEM_PADDING = 6
MODAL_MAX_WIDTH = 60
INPUT_MAX_WIDTH = 50
SESSION_TITLE_MAX = 100

# Terminal bar
MIN_TAB_WIDTH = 8
TAB_PREFIX_WIDTH = 4
MAX_TERMINAL_HOTKEYS = 9

APP_TITLE = "Claude++"
NEW_WORKTREE_BUTTON = "+ New Worktree"
TERMINAL_HINTS = "1-9:switch n:new d:del"
NO_TERMINALS = "No terminals"
NEW_TERMINAL_BUTTON = "[+]"
PLACEHOLDER_HINT = "Press Enter in sidebar to start a session"
