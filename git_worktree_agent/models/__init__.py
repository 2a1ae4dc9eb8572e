"""Data models for git-worktree-agent."""
