"""Custom widgets for the git-worktree-agent TUI."""

from typing import Iterable

from textual.app import ComposeResult, RenderResult
from textual.containers import VerticalScroll
from textual.events import Click
from textual.widgets import Header, Static
from textual.widgets._header import HeaderIcon, HeaderTitle, HeaderClockSpace
from rich.text import Text

from git_worktree_agent.__version__ import __version__
from git_worktree_agent.formatters import format_logs, format_status_bar
from git_worktree_agent.models.command import CommandLog
from git_worktree_agent.models.status import AppStatus


class VersionDisplay(HeaderClockSpace):
    """Custom widget to display version in place of clock."""

    DEFAULT_CSS = """
    VersionDisplay {
        width: auto;
        dock: right;
        padding: 0 1;
        background: $foreground 5%;
        color: $text;
        text-align: center;
        text-opacity: 85%;
    }
    """

    def render(self) -> RenderResult:
        return Text(f"v{__version__}")


class NonExpandingHeader(Header):
    """Header widget that doesn't expand/contract on click and shows version instead of clock."""

    def compose(self) -> ComposeResult:
        yield HeaderIcon().data_bind(Header.icon)
        yield HeaderTitle()
        yield VersionDisplay() if self._show_clock else HeaderClockSpace()

    def on_click(self, event: Click) -> None:
        """Override to disable click-to-expand behavior."""
        event.stop()


class StatusBar(Static):
    """Bottom bar with fetch state, counts and the last error."""

    DEFAULT_CSS = """
    StatusBar {
        height: auto;
        background: $panel;
        padding: 0 1;
    }
    """

    def show(self, status: AppStatus) -> None:
        self.update(format_status_bar(status))


class LogPanel(VerticalScroll):
    """Scrollable command output for the selected branch."""

    DEFAULT_CSS = """
    LogPanel {
        height: 12;
        border-top: solid $accent;
        padding: 0 1;
    }
    """

    def compose(self) -> ComposeResult:
        yield Static(id="log-content")

    def show(self, title: str, logs: Iterable[CommandLog]) -> None:
        self.border_title = title
        self.query_one("#log-content", Static).update(format_logs(logs))
        self.scroll_end(animate=False)
