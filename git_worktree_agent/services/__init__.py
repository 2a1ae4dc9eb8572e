"""Services wrapping external processes for git-worktree-agent."""
