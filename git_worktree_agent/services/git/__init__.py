"""Git-related services for git-worktree-agent."""

from .repository import Repository
from .worktrees import WorktreeService, parse_worktree_list

__all__ = [
    "Repository",
    "WorktreeService",
    "parse_worktree_list",
]
