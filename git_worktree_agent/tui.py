"""Interactive TUI for git-worktree-agent using Textual."""

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import DataTable, Footer
from rich.text import Text

from .__version__ import __version__
from .constants import COLUMNS, HELP_TEXT
from .core import WorktreeAgent
from .formatters import format_branch_name, format_status, format_status_symbol
from .models.branch import BranchItem
from .models.events import (
    FetchCompleted,
    FetchFailed,
    HookCompleted,
    NewBranchesFound,
    WorktreeCreated,
    WorktreeCreateFailed,
)
from .ui.screens import (
    ConfirmScreen,
    CreateWorktreeScreen,
    InfoScreen,
    LogScreen,
    SettingsScreen,
)
from .ui.widgets import LogPanel, NonExpandingHeader, StatusBar
from .utils.logging import get_logger

logger = get_logger(__name__)

TICK_INTERVAL = 0.1


class WorktreeAgentApp(App):
    """Dashboard for watching branches and provisioning worktrees."""

    TITLE = "Git Worktree Agent"
    SUB_TITLE = f"v{__version__}"

    CSS = """
    Screen {
        background: $surface;
    }

    DataTable {
        height: 1fr;
    }

    ToastRack {
        offset: 0 -3;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("enter", "create_worktree", "Create"),
        Binding("c", "new_worktree", "New Branch"),
        Binding("d", "delete_worktree", "Delete"),
        Binding("x", "skip_branch", "Skip", show=False),
        Binding("u", "toggle_ignore", "Untrack"),
        Binding("a", "toggle_auto_create", "Auto-create"),
        Binding("r", "fetch", "Fetch"),
        Binding("l", "show_logs", "Logs"),
        Binding("s", "settings", "Settings"),
        Binding("o", "open_worktree", "Open"),
        Binding("question_mark", "help", "Help"),
        Binding("j", "cursor_down", "Down", show=False),
        Binding("k", "cursor_up", "Up", show=False),
    ]

    def __init__(self, agent: WorktreeAgent):
        super().__init__()
        self.agent = agent
        self.items: List[BranchItem] = []
        self.exit_path: Optional[Path] = None
        self._rows: List[Tuple[str, str, bool, int]] = []
        self._log_key: Optional[Tuple] = None

    def compose(self) -> ComposeResult:
        yield NonExpandingHeader(show_clock=True, icon="")
        yield DataTable(id="branch-table", cursor_type="row", zebra_stripes=True)
        yield LogPanel(id="log-panel")
        yield StatusBar(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        for col in COLUMNS:
            table.add_column(col.label, width=col.width or None, key=col.key)

        self._refresh_views()
        self.set_interval(TICK_INTERVAL, self._tick)

    # Driver loop

    def _tick(self) -> None:
        events = self.agent.tick()
        for event in events:
            self._notify_event(event)
        if events:
            self._populate_table()
        self._update_status()
        self._update_log_panel()

    def _notify_event(self, event) -> None:
        if isinstance(event, NewBranchesFound):
            self.notify(f"New branches: {', '.join(event.names)}")
        elif isinstance(event, WorktreeCreated):
            self.notify(f"Worktree created for {event.branch}")
        elif isinstance(event, WorktreeCreateFailed):
            self.notify(f"{event.branch}: {event.message}", severity="error")
        elif isinstance(event, HookCompleted) and event.exit_code != 0:
            self.notify(
                f"Post-create command failed for {event.branch} (exit {event.exit_code})",
                severity="warning",
            )
        elif isinstance(event, FetchFailed):
            logger.debug("Fetch failed, status bar updated")
        elif isinstance(event, FetchCompleted):
            logger.debug("Fetch completed, refreshing table")

    def _refresh_views(self) -> None:
        self._populate_table()
        self._update_status()
        self._update_log_panel()

    def _populate_table(self) -> None:
        """Rebuild the branch table, keeping the cursor on the same branch."""
        table = self.query_one(DataTable)
        selected = self.selected_branch()
        self.items = self.agent.branch_items()

        log_counts: Dict[str, int] = {}
        for log in self.agent.command_logs:
            log_counts[log.branch] = log_counts.get(log.branch, 0) + 1

        rows = [
            (item.name, item.status.value, item.is_default, log_counts.get(item.name, 0))
            for item in self.items
        ]
        if rows == self._rows:
            return
        self._rows = rows

        table.clear()
        for item in self.items:
            logs = log_counts.get(item.name, 0)
            table.add_row(
                format_status_symbol(item.status),
                format_branch_name(item),
                Text(format_status(item.status)),
                Text(str(logs) if logs else "", justify="right"),
                key=item.name,
            )

        if selected is not None:
            for index, item in enumerate(self.items):
                if item.name == selected:
                    table.move_cursor(row=index)
                    break

    def _update_status(self) -> None:
        self.query_one(StatusBar).show(self.agent.status)

    def _update_log_panel(self) -> None:
        branch = self.selected_branch()
        panel = self.query_one(LogPanel)
        if branch is None:
            if self._log_key != ():
                panel.show("Logs", [])
                self._log_key = ()
            return

        logs = self.agent.logs_for(branch)
        # Redraw only when something changed
        key = (branch, len(logs), sum(len(log.output) for log in logs),
               tuple(log.is_running for log in logs))
        if key != self._log_key:
            panel.show(f"Logs: {branch}", logs)
            self._log_key = key

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        self._update_log_panel()

    def selected_item(self) -> Optional[BranchItem]:
        table = self.query_one(DataTable)
        if table.cursor_row is None or not 0 <= table.cursor_row < len(self.items):
            return None
        return self.items[table.cursor_row]

    def selected_branch(self) -> Optional[str]:
        item = self.selected_item()
        return item.name if item else None

    # Actions

    def action_cursor_down(self) -> None:
        self.query_one(DataTable).action_cursor_down()

    def action_cursor_up(self) -> None:
        self.query_one(DataTable).action_cursor_up()

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self.action_create_worktree()

    def action_create_worktree(self) -> None:
        item = self.selected_item()
        if item is None or item.has_worktree or item.is_busy:
            return
        if self.agent.create_worktree(item.name):
            self._refresh_views()

    def action_new_worktree(self) -> None:
        def handle(result: Optional[Tuple[str, str]]) -> None:
            if result is None:
                return
            new_branch, base = result
            if self.agent.create_new_worktree(new_branch, base):
                self.notify(f"Creating {new_branch} from {base}")
            self._refresh_views()

        self.push_screen(CreateWorktreeScreen(self.agent.base_branches()), handle)

    def action_delete_worktree(self) -> None:
        item = self.selected_item()
        if item is None or not item.has_worktree:
            return

        reason = self.agent.can_delete(item.name)
        if reason:
            self.agent.status.last_error = reason
            self._update_status()
            return

        path = self.agent.worktree_path(item.name)

        def handle(confirmed: Optional[bool]) -> None:
            if confirmed and self.agent.delete_worktree(item.name):
                self.notify(f"Deleted worktree for {item.name}")
            self._refresh_views()

        self.push_screen(
            ConfirmScreen(f"Delete the worktree for [bold]{item.name}[/bold]?\n\n{path}"), handle
        )

    def action_skip_branch(self) -> None:
        branch = self.selected_branch()
        if branch and self.agent.skip_branch(branch):
            self.notify(f"Skipped {branch}")
            self._refresh_views()

    def action_toggle_ignore(self) -> None:
        branch = self.selected_branch()
        if branch is None:
            return
        ignored = self.agent.toggle_ignore(branch)
        self.notify(f"{branch} is now {'untracked' if ignored else 'tracked'}")
        self._refresh_views()

    def action_toggle_auto_create(self) -> None:
        enabled = self.agent.toggle_auto_create()
        self.notify(f"Auto-create {'enabled' if enabled else 'disabled'}")
        self._update_status()

    def action_fetch(self) -> None:
        if not self.agent.poll():
            self.notify("Fetch already in progress")
        self._update_status()

    def action_show_logs(self) -> None:
        self.push_screen(LogScreen(list(self.agent.command_logs)))

    def action_settings(self) -> None:
        def handle(values: Optional[Dict]) -> None:
            if values is None:
                return
            self.agent.update_settings(**values)
            self.notify("Settings saved")
            self._refresh_views()

        self.push_screen(SettingsScreen(self.agent.config), handle)

    def action_open_worktree(self) -> None:
        item = self.selected_item()
        if item is None or not item.has_worktree:
            return
        self.exit_path = self.agent.worktree_path(item.name)
        self.exit(self.exit_path)

    def action_help(self) -> None:
        self.push_screen(InfoScreen(HELP_TEXT))
