"""Custom exceptions for git-worktree-agent"""

from typing import List, Optional


class GitWorktreeAgentError(Exception):
    """Base exception for all git-worktree-agent errors."""
    pass


class GitOperationError(GitWorktreeAgentError):
    """Exception raised for errors in Git operations.

    ``log_lines`` holds whatever git output was captured before the failure,
    so callers can still show it in the command log.
    """

    def __init__(
        self,
        operation: str,
        branch: Optional[str] = None,
        message: Optional[str] = None,
        log_lines: Optional[List[str]] = None,
    ):
        self.operation = operation
        self.branch = branch
        self.message = message
        self.log_lines = list(log_lines or [])

        error_msg = f"Git operation '{operation}' failed"
        if branch:
            error_msg += f" for branch '{branch}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class RepositoryNotFoundError(GitWorktreeAgentError):
    """Exception raised when no git repository encloses the given path."""

    def __init__(self, path: str, detail: Optional[str] = None):
        self.path = path
        error_msg = f"Could not find a git repository in '{path}' or in any of its parents."
        if detail:
            error_msg += f"\n{detail}"
        super().__init__(error_msg)


class RemoteNotFoundError(GitWorktreeAgentError):
    """Exception raised when the configured remote does not exist."""

    def __init__(self, remote: str):
        self.remote = remote
        super().__init__(
            f"Remote '{remote}' not found.\n\n"
            f"Please add the remote first:\n"
            f"git remote add {remote} <url>\n\n"
            f"Or update your configuration to use an existing remote."
        )


class WorktreeExistsError(GitOperationError):
    """Exception raised when the target worktree directory already exists."""

    def __init__(self, path: str, branch: Optional[str] = None):
        self.path = path
        super().__init__(
            "worktree_add",
            branch,
            f"Worktree path already exists: {path}",
            log_lines=[f"ERROR: Worktree path already exists: {path}"],
        )


class ConfigError(GitWorktreeAgentError):
    """Exception raised when the configuration file cannot be read or is invalid."""

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"Invalid configuration in {path}: {message}")
