"""Branch status and status-bar formatting utilities."""

from rich.text import Text

from git_worktree_agent.constants import (
    STATUS_DISPLAY,
    STATUS_SYMBOLS,
    SYMBOL_DEFAULT_BRANCH,
    TUI_COLORS,
)
from git_worktree_agent.formatters.date import format_age
from git_worktree_agent.models.branch import BranchItem, BranchStatus
from git_worktree_agent.models.status import AppStatus


def format_status(status: BranchStatus) -> str:
    """
    Format branch status as display text.

    Args:
        status: Branch status enum value

    Returns:
        Display text for status
    """
    return STATUS_DISPLAY.get(status.value, status.value)


def format_status_symbol(status: BranchStatus) -> Text:
    return Text(STATUS_SYMBOLS.get(status.value, " "), style=TUI_COLORS.get(status.value) or "")


def format_branch_name(item: BranchItem) -> Text:
    """Branch name in its status colour, with a marker for the default branch."""
    text = Text(item.name, style=TUI_COLORS.get(item.status.value) or "")
    if item.is_default:
        text.append(f" {SYMBOL_DEFAULT_BRANCH}", style="yellow")
    return text


def format_status_bar(status: AppStatus) -> Text:
    """
    Build the one-line status bar.

    Example:
        "origin ⟳ fetching | last fetch 12s ago | 14 branches | 3 worktrees | auto-create: on"
    """
    text = Text()
    text.append(status.remote_name, style="bold")

    if status.is_fetching:
        text.append(" ⟳ fetching", style="yellow")

    text.append(f" | last fetch {format_age(status.last_fetch)}")
    text.append(f" | {status.remote_branch_count} branches")
    text.append(f" | {status.worktree_count} worktrees")
    if status.pending_count:
        text.append(f" | {status.pending_count} queued", style="cyan")
    if status.running_hooks:
        text.append(f" | {status.running_hooks} hook running", style="magenta")
    text.append(f" | every {status.poll_interval}s")
    text.append(" | auto-create: ")
    if status.auto_create_enabled:
        text.append("on", style="green")
    else:
        text.append("off", style="bright_black")

    if status.last_error and status.last_error.strip():
        # Only the first line fits in the bar
        first_line = status.last_error.strip().splitlines()[0]
        text.append(f"\n✗ {first_line}", style="bold red")

    return text
