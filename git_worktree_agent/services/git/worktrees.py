"""Worktree operations service for git-worktree-agent."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import git

from git_worktree_agent.exceptions import GitOperationError, WorktreeExistsError
from git_worktree_agent.models.worktree import WorktreeInfo
from git_worktree_agent.utils.logging import get_logger

logger = get_logger(__name__)


def parse_worktree_list(output: str) -> List[WorktreeInfo]:
    """Parse ``git worktree list --porcelain`` output.

    Format:
        worktree /path/to/worktree
        HEAD commit_sha
        branch refs/heads/branch-name
        (blank line between worktrees)

    The first entry is always the main worktree.
    """
    worktrees: List[WorktreeInfo] = []
    current: Dict[str, Any] = {}

    def flush():
        path = current.get("path")
        if path:
            worktrees.append(
                WorktreeInfo(
                    path=path,
                    branch_name=current.get("branch", ""),
                    commit_sha=current.get("HEAD", ""),
                    is_main=not worktrees,
                    is_locked=current.get("locked", False),
                    is_prunable=current.get("prunable", False),
                    is_orphaned=not os.path.exists(path),
                )
            )
        current.clear()

    for line in output.split("\n"):
        line = line.strip()

        if not line:
            flush()
            continue

        if line.startswith("worktree "):
            flush()
            current["path"] = line.split(" ", 1)[1]
        elif line.startswith("HEAD "):
            current["HEAD"] = line.split(" ", 1)[1]
        elif line.startswith("branch "):
            branch_ref = line.split(" ", 1)[1]
            if branch_ref.startswith("refs/heads/"):
                current["branch"] = branch_ref[len("refs/heads/"):]
            else:
                current["branch"] = branch_ref
        elif line == "detached":
            current["branch"] = ""
        elif line == "locked" or line.startswith("locked "):
            current["locked"] = True
        elif line == "prunable" or line.startswith("prunable "):
            current["prunable"] = True

    # Handle last entry if no trailing blank line
    flush()
    return worktrees


class WorktreeService:
    """Service for creating, listing and removing git worktrees."""

    def __init__(self, repo_path: Union[str, Path]):
        """Initialize the worktree service.

        Args:
            repo_path: Path to the git repository
        """
        self.repo_path = str(repo_path)

    def _get_repo(self):
        """Get a fresh git.Repo instance."""
        return git.Repo(self.repo_path)

    def list(self) -> List[WorktreeInfo]:
        """Get detailed information about all worktrees.

        Raises:
            GitOperationError: If git cannot list worktrees
        """
        repo = self._get_repo()
        try:
            output = repo.git.worktree("list", "--porcelain")
        except git.exc.GitCommandError as e:
            raise GitOperationError("worktree_list", message=_describe(e)) from e
        finally:
            repo.close()

        worktrees = parse_worktree_list(output)
        logger.debug(f"Found {len(worktrees)} worktrees")
        return worktrees

    def worktree_branches(self) -> set[str]:
        """Get set of branch names that are checked out in worktrees."""
        return {wt.branch_name for wt in self.list() if wt.branch_name}

    def has_worktree_for_branch(self, branch: str) -> bool:
        return any(wt.branch_name == branch for wt in self.list())

    def get_worktree(self, branch: str) -> Optional[WorktreeInfo]:
        return next((wt for wt in self.list() if wt.branch_name == branch), None)

    def get_worktree_path(self, branch: str) -> Optional[Path]:
        """Get worktree path for a branch (if one exists)."""
        worktree = self.get_worktree(branch)
        return Path(worktree.path) if worktree else None

    def _run_add(self, args: List[str], log_messages: List[str]) -> Tuple[int, str]:
        """Run ``git worktree add`` capturing all output into the log."""
        log_messages.append("$ git worktree " + " ".join(args))
        repo = self._get_repo()
        try:
            status, stdout, stderr = repo.git.worktree(
                *args, with_extended_output=True, with_exceptions=False
            )
        finally:
            repo.close()

        for line in (stdout + "\n" + stderr).splitlines():
            if line.strip():
                log_messages.append(line)
        return status, stderr

    def create(
        self,
        branch: str,
        target_path: Union[str, Path],
        remote: Optional[str] = None,
        base_ref: Optional[str] = None,
    ) -> List[str]:
        """Create a worktree for a branch.

        With ``base_ref`` a new branch is created from it. Otherwise the branch
        is checked out tracking ``<remote>/<branch>``, or as an existing local
        branch when ``remote`` is empty. If the tracking attempt fails because
        the branch already exists locally, it is retried once without ``-b``.

        Returns:
            Log lines (commands and git output) for the command log

        Raises:
            WorktreeExistsError: If ``target_path`` exists before the attempt
            GitOperationError: If git fails; carries the captured log lines
        """
        path = Path(target_path)
        logger.info(f"Creating worktree for branch '{branch}' at: {path}")
        log_messages = [f"Creating worktree at: {path}"]

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            log_messages.append(f"ERROR: Failed to create parent directory: {path.parent}")
            raise GitOperationError(
                "worktree_add", branch, f"Failed to create parent directory: {e}", log_messages
            ) from e

        if path.exists():
            raise WorktreeExistsError(str(path), branch)

        if base_ref:
            args = ["add", "-b", branch, str(path), base_ref]
        elif remote:
            args = ["add", "--track", "-b", branch, str(path), f"{remote}/{branch}"]
        else:
            args = ["add", str(path), branch]

        status, stderr = self._run_add(args, log_messages)

        if status != 0 and remote and not base_ref and "already exists" in stderr:
            logger.debug("Branch already exists locally, trying without -b flag")
            log_messages.append(
                f"Branch exists locally, retrying: git worktree add {path} {branch}"
            )
            status, stderr = self._run_add(["add", str(path), branch], log_messages)

        if status != 0:
            log_messages.append(f"ERROR: git worktree add failed (exit code: {status})")
            message = f"git worktree add failed (exit {status})"
            if stderr.strip():
                message += f": {stderr.strip()}"
            raise GitOperationError("worktree_add", branch, message, log_messages)

        if not path.exists():
            log_messages.append(f"ERROR: Directory was not created at {path}")
            raise GitOperationError(
                "worktree_add", branch, f"Worktree directory was not created: {path}", log_messages
            )

        log_messages.append(f"✓ Worktree created successfully at: {path}")
        logger.info(f"Successfully created worktree at: {path}")
        return log_messages

    def remove(self, path: Union[str, Path], force: bool = False) -> None:
        """Remove a worktree at the specified path.

        Raises:
            GitOperationError: If git refuses to remove it
        """
        logger.info(f"Removing worktree at: {path}")
        args = ["remove", str(path)]
        if force:
            args.append("--force")

        repo = self._get_repo()
        try:
            repo.git.worktree(*args)
        except git.exc.GitCommandError as e:
            error_msg = _describe(e, "git worktree remove")
            logger.error(f"Failed to remove worktree at {path}: {error_msg}")
            raise GitOperationError("worktree_remove", message=error_msg) from e
        finally:
            repo.close()

        logger.info(f"Removed worktree at {path}")

    def prune(self) -> None:
        """Prune stale worktree metadata. Failures are logged, not raised."""
        repo = self._get_repo()
        try:
            repo.git.worktree("prune")
            logger.debug("Pruned stale worktree metadata")
        except git.exc.GitCommandError as e:
            logger.warning(_describe(e, "git worktree prune"))
        finally:
            repo.close()


def _describe(error: git.exc.GitCommandError, command: str = "git") -> str:
    """Build a readable message from a GitCommandError."""
    stderr = (error.stderr or "").strip()
    status = error.status if error.status is not None else "unknown"
    if stderr:
        return f"{command} failed (exit {status}): {stderr}"
    return f"{command} failed with exit code {status}"
