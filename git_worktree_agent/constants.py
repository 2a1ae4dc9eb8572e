"""Shared constants for git-worktree-agent."""

from dataclasses import dataclass
from typing import List


@dataclass
class ColumnDefinition:
    """Definition of a table column."""

    key: str
    label: str
    width: int = 0  # 0 means auto-width


COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("symbol", " ", 2),
    ColumnDefinition("branch", "Branch", 40),
    ColumnDefinition("status", "Status", 14),
    ColumnDefinition("logs", "Logs", 6),
]


# Symbol constants, keyed by BranchStatus.value
STATUS_SYMBOLS = {
    "remote": "○",
    "local": "●",
    "prunable": "◌",
    "queued": "…",
    "creating": "◐",
    "running-hook": "⚙",
    "untracked": "−",
}

SYMBOL_DEFAULT_BRANCH = "★"


# Status display names
STATUS_DISPLAY = {
    "remote": "remote",
    "local": "worktree",
    "prunable": "prunable",
    "queued": "queued",
    "creating": "creating",
    "running-hook": "running hook",
    "untracked": "untracked",
}


# TUI colors (color names for Textual / Rich)
TUI_COLORS = {
    "remote": "white",
    "local": "green",
    "prunable": "yellow",
    "queued": "cyan",
    "creating": "magenta",
    "running-hook": "magenta",
    "untracked": "bright_black",
}


LOG_COLORS = {
    "stdout": None,
    "stderr": "red",
    "success": "green",
    "failure": "red",
    "running": "yellow",
}


HELP_TEXT = """
[bold]Keys[/bold]
  ↑/↓ j/k   Move selection
  Enter     Create worktree for the selected branch
  c         Create a worktree for a new branch
  d         Delete the selected worktree
  x         Skip a queued branch
  u         Toggle ignore (untrack) for the selected branch
  a         Toggle auto-create for new branches
  r         Fetch now
  l         Show all command logs
  s         Settings
  o         Open: quit and print the worktree path
  ?         This help
  q         Quit

[bold]Legend[/bold]
  ○ remote only      ● worktree       ◌ prunable worktree
  … queued           ◐ creating       ⚙ running post-create command
  − untracked        ★ default branch
"""
