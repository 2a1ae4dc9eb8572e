"""Modal screens for the git-worktree-agent TUI."""

from typing import Dict, List, Optional, Tuple

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, ScrollableContainer, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, OptionList, Static, Switch

from git_worktree_agent.config import Config
from git_worktree_agent.formatters import format_logs
from git_worktree_agent.models.command import CommandLog


def filter_branches(branches: List[str], text: str) -> List[str]:
    """Case-insensitive substring filter used by the base-branch picker."""
    needle = text.strip().lower()
    if not needle:
        return list(branches)
    return [branch for branch in branches if needle in branch.lower()]


class ConfirmScreen(ModalScreen[bool]):
    """Modal confirmation dialog."""

    DEFAULT_CSS = """
    ConfirmScreen {
        align: center middle;
    }

    #confirm-dialog {
        width: 80%;
        height: auto;
        border: thick $background 80%;
        background: $surface;
        padding: 1 2;
    }

    #confirm-message {
        width: 100%;
        height: auto;
        padding: 1 0;
    }

    #button-container {
        width: 100%;
        height: auto;
        align: center middle;
        padding: 1 0;
    }

    Button {
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("y", "answer(True)", "Yes"),
        Binding("n", "answer(False)", "No"),
        Binding("escape", "answer(False)", "Cancel", show=False),
    ]

    def __init__(self, message: str):
        super().__init__()
        self.message = message

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-dialog"):
            yield Static(self.message, id="confirm-message")
            with Container(id="button-container"):
                yield Button("Yes", variant="error", id="yes")
                yield Button("No", variant="primary", id="no")

    def action_answer(self, answer: bool) -> None:
        self.dismiss(answer)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "yes")


class InfoScreen(ModalScreen):
    """Modal info display dialog (help, error details)."""

    DEFAULT_CSS = """
    InfoScreen {
        align: center middle;
    }

    #info-dialog {
        width: 80%;
        height: auto;
        max-height: 90%;
        border: thick $background 80%;
        background: $surface;
        padding: 1 2;
    }

    #info-content {
        width: 100%;
        height: auto;
        padding: 1 0;
    }

    #info-button-container {
        width: 100%;
        height: auto;
        align: center middle;
        padding: 1 0;
    }
    """

    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("question_mark", "close", "Close", show=False),
        Binding("q", "close", "Close", show=False),
    ]

    def __init__(self, info: str):
        super().__init__()
        self.info = info

    def compose(self) -> ComposeResult:
        with Vertical(id="info-dialog"):
            yield Static(self.info, id="info-content")
            with Container(id="info-button-container"):
                yield Button("Close", variant="primary", id="close")

    def action_close(self) -> None:
        self.dismiss()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss()


class LogScreen(ModalScreen):
    """Full-screen view of every command log (fetches, worktrees, hooks)."""

    DEFAULT_CSS = """
    LogScreen {
        align: center middle;
    }

    #log-dialog {
        width: 95%;
        height: 90%;
        border: thick $background 80%;
        background: $surface;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("l", "close", "Close", show=False),
        Binding("q", "close", "Close", show=False),
    ]

    def __init__(self, logs: List[CommandLog]):
        super().__init__()
        self.logs = logs

    def compose(self) -> ComposeResult:
        with ScrollableContainer(id="log-dialog"):
            yield Static(format_logs(self.logs), id="log-screen-content")

    def on_mount(self) -> None:
        self.query_one("#log-dialog").border_title = f"Command logs ({len(self.logs)})"
        self.query_one("#log-dialog", ScrollableContainer).scroll_end(animate=False)

    def action_close(self) -> None:
        self.dismiss()


class CreateWorktreeScreen(ModalScreen[Optional[Tuple[str, str]]]):
    """Two-step wizard: pick a base branch, then name the new branch.

    Dismisses with ``(new_branch, base_branch)`` or None when cancelled.
    """

    DEFAULT_CSS = """
    CreateWorktreeScreen {
        align: center middle;
    }

    #create-dialog {
        width: 70%;
        height: 80%;
        border: thick $background 80%;
        background: $surface;
        padding: 1 2;
    }

    #create-title {
        height: auto;
        padding: 0 0 1 0;
    }

    #base-list {
        height: 1fr;
    }
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, base_branches: List[str]):
        super().__init__()
        self.base_branches = base_branches
        self.base: Optional[str] = None

    def compose(self) -> ComposeResult:
        with Vertical(id="create-dialog"):
            yield Static(id="create-title")
            yield Input(placeholder="Filter branches", id="base-filter")
            yield OptionList(*self.base_branches, id="base-list")
            yield Input(placeholder="New branch name", id="branch-name")

    def on_mount(self) -> None:
        self._show_base_step()

    def _show_base_step(self) -> None:
        self.base = None
        self.query_one("#create-title", Static).update(
            "[bold]New worktree[/bold] (1/2): choose the base branch"
        )
        self.query_one("#branch-name").display = False
        self.query_one("#base-filter").display = True
        self.query_one("#base-list").display = True
        self.query_one("#base-filter", Input).focus()

    def _show_name_step(self, base: str) -> None:
        self.base = base
        self.query_one("#create-title", Static).update(
            f"[bold]New worktree[/bold] (2/2): name the new branch (from [cyan]{base}[/cyan])"
        )
        self.query_one("#base-filter").display = False
        self.query_one("#base-list").display = False
        name_input = self.query_one("#branch-name", Input)
        name_input.display = True
        name_input.focus()

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id != "base-filter":
            return
        options = self.query_one("#base-list", OptionList)
        options.clear_options()
        options.add_options(filter_branches(self.base_branches, event.value))
        options.highlighted = 0 if options.option_count else None

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "base-filter":
            options = self.query_one("#base-list", OptionList)
            if options.highlighted is not None:
                option = options.get_option_at_index(options.highlighted)
                self._show_name_step(str(option.prompt))
        elif event.input.id == "branch-name":
            name = event.value.strip()
            if name and self.base:
                self.dismiss((name, self.base))

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        self._show_name_step(str(event.option.prompt))

    def action_cancel(self) -> None:
        if self.base is not None:
            self._show_base_step()
        else:
            self.dismiss(None)


class SettingsScreen(ModalScreen[Optional[Dict]]):
    """Edit the persisted settings. Dismisses with the new values or None."""

    DEFAULT_CSS = """
    SettingsScreen {
        align: center middle;
    }

    #settings-dialog {
        width: 70%;
        height: auto;
        border: thick $background 80%;
        background: $surface;
        padding: 1 2;
    }

    #settings-dialog Label {
        padding: 1 0 0 0;
    }

    #auto-create-row {
        height: auto;
        padding: 1 0 0 0;
    }

    #settings-buttons {
        width: 100%;
        height: auto;
        align: center middle;
        padding: 1 0;
    }

    Button {
        margin: 0 1;
    }
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, config: Config):
        super().__init__()
        self.config = config

    def compose(self) -> ComposeResult:
        with Vertical(id="settings-dialog"):
            yield Static("[bold]Settings[/bold]")
            yield Label("Post-create command")
            yield Input(self.config.post_create_command or "", placeholder="e.g. npm install",
                        id="post-create-command")
            yield Label("Command working directory (relative to the worktree)")
            yield Input(self.config.command_working_dir or "", placeholder=".",
                        id="command-working-dir")
            yield Label("Poll interval (seconds)")
            yield Input(str(self.config.poll_interval_secs), type="integer",
                        id="poll-interval")
            yield Label("Base branch")
            yield Input(self.config.base_branch or "", placeholder="(auto)", id="base-branch")
            with Horizontal(id="auto-create-row"):
                yield Switch(value=self.config.auto_create_worktrees, id="auto-create")
                yield Label("Create worktrees for new branches automatically")
            with Container(id="settings-buttons"):
                yield Button("Save", variant="primary", id="save")
                yield Button("Cancel", id="cancel")

    def _values(self) -> Optional[Dict]:
        raw_interval = self.query_one("#poll-interval", Input).value.strip()
        try:
            poll_interval = int(raw_interval)
        except ValueError:
            poll_interval = 0
        if poll_interval <= 0:
            self.notify("Poll interval must be a positive number", severity="error")
            return None

        return {
            "post_create_command": self.query_one("#post-create-command", Input).value,
            "command_working_dir": self.query_one("#command-working-dir", Input).value,
            "poll_interval_secs": poll_interval,
            "base_branch": self.query_one("#base-branch", Input).value,
            "auto_create_worktrees": self.query_one("#auto-create", Switch).value,
        }

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "cancel":
            self.dismiss(None)
            return
        values = self._values()
        if values is not None:
            self.dismiss(values)

    def action_cancel(self) -> None:
        self.dismiss(None)
