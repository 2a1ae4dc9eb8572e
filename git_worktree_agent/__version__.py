"""Version information for git-worktree-agent."""

__version__ = "0.3.0"
