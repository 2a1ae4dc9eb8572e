"""Textual widgets and screens for git-worktree-agent."""
