"""Worktree data models."""

from dataclasses import dataclass


@dataclass
class WorktreeInfo:
    """Information about a git worktree."""

    path: str
    branch_name: str  # Empty for detached HEAD
    commit_sha: str
    is_main: bool  # Is this the main working tree?
    is_locked: bool = False
    is_prunable: bool = False  # Git reports the directory as gone
    is_orphaned: bool = False  # Directory missing on disk

    def __str__(self) -> str:
        """String representation of worktree."""
        status = "orphaned" if self.is_orphaned or self.is_prunable else "active"
        main_marker = " (main)" if self.is_main else ""
        return f"{self.branch_name or '(detached)'} @ {self.path}{main_marker} [{status}]"
