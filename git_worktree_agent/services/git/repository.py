"""Repository discovery, remote and branch queries."""

import os
from pathlib import Path
from typing import List, Optional, Tuple

import git

from git_worktree_agent.exceptions import (
    GitOperationError,
    RemoteNotFoundError,
    RepositoryNotFoundError,
)
from git_worktree_agent.models.branch import BranchRecord
from git_worktree_agent.utils.logging import get_logger

logger = get_logger(__name__)

COMMON_DEFAULT_BRANCHES = ("main", "master", "develop", "dev")


class Repository:
    """Wrapper around a git repository on disk."""

    def __init__(self, root: str, main_root: Optional[str] = None):
        """Initialize the repository wrapper.

        Args:
            root: Working tree this process was started in
            main_root: Main working tree (owner of the shared git dir); defaults to root
        """
        self.root = Path(root)
        self.main_root = Path(main_root) if main_root else self.root

    @classmethod
    def discover(cls, path: str) -> "Repository":
        """Find the repository enclosing ``path``.

        Raises:
            RepositoryNotFoundError: If ``path`` is not inside a git working tree
        """
        try:
            repo = git.Repo(path, search_parent_directories=True)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise RepositoryNotFoundError(str(path)) from e

        try:
            if repo.bare or not repo.working_tree_dir:
                raise RepositoryNotFoundError(str(path), "Bare repositories are not supported.")

            root = os.path.realpath(repo.working_tree_dir)
            # common_dir is the main .git directory, also for linked worktrees
            main_root = os.path.realpath(os.path.dirname(os.path.realpath(repo.common_dir)))
        finally:
            repo.close()

        logger.debug(f"Discovered git repository at {root} (main worktree: {main_root})")
        return cls(root, main_root)

    def _get_repo(self) -> git.Repo:
        """Get a thread-safe git.Repo instance.

        Creates a new repo instance for each call; the fetch runs on a
        background thread and must not share one with the driver.
        """
        return git.Repo(self.root)

    def _git(self, *args: str) -> Tuple[int, str, str]:
        """Run a git command in the repository root without raising on failure.

        Returns:
            Tuple of (exit_status, stdout, stderr)
        """
        repo = self._get_repo()
        try:
            status, stdout, stderr = repo.git.execute(
                ["git", *args],
                with_extended_output=True,
                with_exceptions=False,
            )
        finally:
            repo.close()
        return status, stdout, stderr

    def remote_exists(self, remote_name: str) -> bool:
        status, _, _ = self._git("remote", "get-url", remote_name)
        return status == 0

    def validate_remote(self, remote_name: str) -> None:
        """Raise RemoteNotFoundError if the remote is not configured."""
        if not self.remote_exists(remote_name):
            raise RemoteNotFoundError(remote_name)

    def get_remotes(self) -> List[str]:
        """Get list of configured remotes."""
        status, stdout, stderr = self._git("remote")
        if status != 0:
            raise GitOperationError("list_remotes", message=stderr.strip())
        return [line.strip() for line in stdout.splitlines() if line.strip()]

    def list_remote_branches(self, remote_name: str) -> List[BranchRecord]:
        """Get all branches of a remote from the local remote-tracking refs.

        Returns an empty list when the remote has no branches.

        Raises:
            GitOperationError: If the refs cannot be queried at all
        """
        status, stdout, stderr = self._git(
            "for-each-ref",
            "--format=%(refname) %(objectname:short)",
            f"refs/remotes/{remote_name}",
        )
        if status != 0:
            raise GitOperationError("list_remote_branches", message=stderr.strip())

        prefix = f"refs/remotes/{remote_name}/"
        branches = []
        for line in stdout.splitlines():
            parts = line.split()
            if len(parts) < 2 or not parts[0].startswith(prefix):
                continue

            name = parts[0][len(prefix):]
            if name == "HEAD":
                continue

            branches.append(
                BranchRecord(
                    name=name,
                    full_ref=f"{remote_name}/{name}",
                    remote=remote_name,
                    commit=parts[1],
                )
            )

        logger.debug(f"Found {len(branches)} remote branches for {remote_name}")
        return branches

    def list_local_branches(self) -> List[BranchRecord]:
        """Get all local branches.

        Raises:
            GitOperationError: If the refs cannot be queried at all
        """
        status, stdout, stderr = self._git(
            "for-each-ref", "--format=%(refname:short) %(objectname:short)", "refs/heads"
        )
        if status != 0:
            raise GitOperationError("list_local_branches", message=stderr.strip())

        branches = []
        for line in stdout.splitlines():
            parts = line.split()
            if len(parts) >= 2:
                branches.append(BranchRecord.local(parts[0], commit=parts[1]))

        logger.debug(f"Found {len(branches)} local branches")
        return branches

    def current_branch(self) -> Optional[str]:
        status, stdout, _ = self._git("branch", "--show-current")
        current = stdout.strip()
        return current if status == 0 and current else None

    def get_default_branch(self, remote_name: str) -> Optional[str]:
        """Get the default branch of a remote (e.g. origin/HEAD -> main)."""
        status, stdout, _ = self._git("symbolic-ref", f"refs/remotes/{remote_name}/HEAD")
        prefix = f"refs/remotes/{remote_name}/"
        if status == 0 and stdout.strip().startswith(prefix):
            return stdout.strip()[len(prefix):]

        # Fallback: common default branch names present on the remote
        status, stdout, _ = self._git("branch", "-r")
        if status == 0:
            remote_refs = {line.strip().lstrip("* ") for line in stdout.splitlines()}
            for default in COMMON_DEFAULT_BRANCHES:
                if f"{remote_name}/{default}" in remote_refs:
                    return default

        return self.current_branch()

    def fetch(self, remote_name: str) -> Tuple[int, str, str]:
        """Fetch and prune a remote.

        A non-zero exit is returned, not raised; only a failure to run git
        at all raises (``git.exc.GitCommandNotFound``).

        Returns:
            Tuple of (exit_status, stdout, stderr)
        """
        logger.debug(f"Running git fetch --prune {remote_name} in {self.root}")
        return self._git("fetch", "--prune", remote_name)
