"""Driver for git-worktree-agent

``WorktreeAgent`` owns the repository, configuration and watcher and is
ticked by the dashboard's interval timer. It never blocks: fetches and
hooks run in the background and report back through the watcher.
"""

import time
from pathlib import Path
from typing import Callable, List, Optional, Set

from git_worktree_agent.config import Config
from git_worktree_agent.core.fetch import FetchFunction
from git_worktree_agent.core.watcher import Watcher
from git_worktree_agent.exceptions import GitOperationError
from git_worktree_agent.models.branch import BranchItem, BranchStatus
from git_worktree_agent.models.command import CommandLog
from git_worktree_agent.models.events import (
    FetchCompleted,
    FetchFailed,
    FetchStarted,
    HookCompleted,
    HookStarted,
    NewBranchesFound,
    WatcherEvent,
    WorktreeCreated,
    WorktreeCreateFailed,
)
from git_worktree_agent.models.status import AppStatus
from git_worktree_agent.models.worktree import WorktreeInfo
from git_worktree_agent.services.executor import CommandExecutor
from git_worktree_agent.services.git import Repository, WorktreeService
from git_worktree_agent.utils.logging import get_logger

logger = get_logger(__name__)


class WorktreeAgent:
    """Single-owner controller behind the dashboard."""

    def __init__(
        self,
        repository: Repository,
        config: Config,
        worktrees: Optional[WorktreeService] = None,
        executor: Optional[CommandExecutor] = None,
        fetch_fn: Optional[FetchFunction] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the agent.

        Args:
            repository: Repository being watched
            config: Configuration, saved to ``repository.main_root`` on change
            worktrees: Worktree provider; defaults to one for ``repository.root``
            executor: Runs post-create commands
            fetch_fn: Remote-fetch primitive; defaults to ``repository.fetch``
            clock: Monotonic time source used for the poll interval
        """
        self.repository = repository
        self.config = config
        self.worktrees = worktrees or WorktreeService(repository.root)
        self.watcher = Watcher(
            repository, self.worktrees, config, executor=executor, fetch_fn=fetch_fn
        )
        self.clock = clock
        self.last_poll: Optional[float] = None
        # Branches created by the new-worktree wizard that have no worktree yet
        self._new_branches: Set[str] = set()
        self.status = AppStatus(
            auto_create_enabled=config.auto_create_worktrees,
            poll_interval=config.poll_interval_secs,
            remote_name=config.remote_name,
            last_fetch=config.last_fetch,
        )

        try:
            self.watcher.init()
        except GitOperationError as e:
            logger.error(f"Failed to load branches: {e}")
            self.status.last_error = str(e)

        self.default_branch = config.base_branch or repository.get_default_branch(
            config.remote_name
        )
        self.update_status()

    @classmethod
    def open(cls, path: str, **kwargs) -> "WorktreeAgent":
        """Discover the repository at ``path``, load its config and validate the remote.

        Raises:
            RepositoryNotFoundError: If ``path`` is not inside a git repository
            ConfigError: If the config file is invalid
            RemoteNotFoundError: If the configured remote does not exist
        """
        repository = Repository.discover(path)
        config = Config.load(repository.main_root)
        repository.validate_remote(config.remote_name)
        return cls(repository, config, **kwargs)

    # Driver loop

    def tick(self) -> List[WatcherEvent]:
        """One driver iteration: apply ready events, then fetch if due."""
        events = self.process_watcher_events()
        if self.poll_due():
            self.poll()
        return events

    def poll_due(self) -> bool:
        if self.last_poll is None:
            return True
        return self.clock() - self.last_poll >= self.config.poll_interval_secs

    def poll(self) -> bool:
        """Start a background fetch now. Returns False if one is already running."""
        if self.watcher.is_fetching():
            return False
        self.last_poll = self.clock()
        logger.debug("Starting background fetch")
        return self.watcher.start_fetch()

    def process_watcher_events(self) -> List[WatcherEvent]:
        """Apply every ready watcher event to the agent state."""
        processed = []
        for event in self.watcher.drain():
            self._handle_event(event)
            processed.append(event)

        if processed:
            self.update_status()
        return processed

    def _handle_event(self, event: WatcherEvent) -> None:
        remote = self.config.remote_name

        if isinstance(event, FetchStarted):
            self.status.is_fetching = True

        elif isinstance(event, FetchCompleted):
            self.status.is_fetching = False
            if self.watcher.on_fetch_complete() is None:
                # The branch scan failed; its FetchFailed event follows
                return
            if event.output:
                self.watcher.add_fetch_log(remote, event.output)
            else:
                self.watcher.add_fetch_success_log(remote)
            self.status.last_fetch = self.config.last_fetch
            self.status.last_error = None
            self._save_config()

        elif isinstance(event, FetchFailed):
            self.watcher.on_fetch_failed()
            self.watcher.add_fetch_log(remote, f"Error: {event.message}", failed=True)
            self.status.is_fetching = False
            self.status.last_error = event.message

        elif isinstance(event, NewBranchesFound):
            logger.info(f"New branches found: {event.names}")

        elif isinstance(event, WorktreeCreated):
            logger.info(f"Worktree created for: {event.branch}")
            self._new_branches.discard(event.branch)

        elif isinstance(event, WorktreeCreateFailed):
            logger.error(f"Worktree creation failed for {event.branch}: {event.message}")
            self.status.last_error = f"{event.branch}: {event.message}"
            if event.branch in self._new_branches:
                self._new_branches.discard(event.branch)
                self.watcher.forget_branch(event.branch)

        elif isinstance(event, HookStarted):
            self.status.running_hooks += 1

        elif isinstance(event, HookCompleted):
            self.status.running_hooks = max(0, self.status.running_hooks - 1)
            if event.exit_code != 0:
                self.status.last_error = (
                    f"Hook failed for {event.branch}: exit code {event.exit_code}"
                )

    def update_status(self) -> None:
        self.status.remote_branch_count = self.watcher.registry.remote_count()
        try:
            self.status.worktree_count = len(self.worktrees.list())
        except GitOperationError as e:
            logger.warning(f"Could not count worktrees: {e}")
        self.status.pending_count = self.watcher.pending_count()
        self.status.auto_create_enabled = self.config.auto_create_worktrees
        self.status.poll_interval = self.config.poll_interval_secs
        self.status.remote_name = self.config.remote_name

    def _save_config(self) -> None:
        try:
            self.config.save(self.repository.main_root)
        except OSError as e:
            logger.error(f"Failed to save config: {e}")

    # Branch list

    def _list_worktrees(self) -> List[WorktreeInfo]:
        try:
            return self.worktrees.list()
        except GitOperationError as e:
            logger.warning(f"Could not list worktrees: {e}")
            return []

    def branch_status(self, name: str, worktree: Optional[WorktreeInfo]) -> BranchStatus:
        if self.watcher.is_current(name):
            if self.watcher.has_running_hook(name):
                return BranchStatus.RUNNING_HOOK
            return BranchStatus.CREATING
        if self.watcher.is_pending(name):
            return BranchStatus.QUEUED
        if self.config.is_ignored(name):
            return BranchStatus.UNTRACKED
        if worktree is not None:
            if worktree.is_prunable:
                return BranchStatus.LOCAL_PRUNABLE
            return BranchStatus.LOCAL_ACTIVE
        return BranchStatus.REMOTE

    def branch_items(self) -> List[BranchItem]:
        """Rows for the branch table: worktree-backed branches first, then by name."""
        worktrees = {wt.branch_name: wt for wt in self._list_worktrees() if wt.branch_name}

        items = [
            BranchItem(
                name=record.name,
                status=self.branch_status(record.name, worktrees.get(record.name)),
                is_default=record.name == self.default_branch,
            )
            for record in self.watcher.known_branches()
        ]
        items.sort(key=lambda item: (not item.has_worktree, item.name))
        return items

    def base_branches(self) -> List[str]:
        """Branch names offered as a base for a new worktree, default first."""
        names = self.watcher.registry.names()
        if self.default_branch in names:
            names.remove(self.default_branch)
            names.insert(0, self.default_branch)
        return names

    def logs_for(self, branch: str) -> List[CommandLog]:
        return self.watcher.logs_for(branch)

    @property
    def command_logs(self) -> List[CommandLog]:
        return self.watcher.command_logs

    # Actions

    def create_worktree(self, branch: str) -> bool:
        """Queue worktree creation for an existing branch.

        Returns:
            False if the branch already has a worktree or is queued or in flight
        """
        if branch in self.watcher.queue:
            return False
        try:
            if self.worktrees.has_worktree_for_branch(branch):
                return False
        except GitOperationError as e:
            self.status.last_error = str(e)
            return False

        queued = self.watcher.queue_branch(branch)
        self.update_status()
        return queued

    def create_new_worktree(self, new_branch: str, base_branch: str) -> bool:
        """Queue a worktree for a new branch created from ``base_branch``."""
        new_branch = new_branch.strip()
        if not new_branch:
            return False
        if new_branch in self.watcher.registry:
            self.status.last_error = f"Branch already exists: {new_branch}"
            return False

        base = self.watcher.get_branch(base_branch)
        base_ref = base.full_ref if base is not None else base_branch

        logger.info(f"Creating new branch '{new_branch}' from '{base_ref}'")
        self.watcher.add_local_branch(new_branch)
        self._new_branches.add(new_branch)
        queued = self.watcher.queue_branch(new_branch, base_ref=base_ref)
        self.update_status()
        return queued

    def skip_branch(self, branch: str) -> bool:
        skipped = self.watcher.skip_branch(branch)
        if skipped:
            if branch in self._new_branches:
                self._new_branches.discard(branch)
                self.watcher.forget_branch(branch)
            self.update_status()
        return skipped

    def can_delete(self, branch: str) -> Optional[str]:
        """Return why the worktree of ``branch`` cannot be deleted, or None."""
        if branch in self.watcher.queue:
            return f"Worktree for {branch} is still being provisioned"
        worktree = next(
            (wt for wt in self._list_worktrees() if wt.branch_name == branch), None
        )
        if worktree is None:
            return f"No worktree for {branch}"
        if worktree.is_main:
            return "Cannot delete the main worktree"
        return None

    def delete_worktree(self, branch: str, force: bool = False) -> bool:
        reason = self.can_delete(branch)
        if reason:
            self.status.last_error = reason
            return False

        path = self.worktrees.get_worktree_path(branch)
        try:
            self.worktrees.remove(path, force=force)
        except GitOperationError as e:
            self.status.last_error = str(e)
            return False

        self.update_status()
        return True

    def toggle_ignore(self, branch: str) -> bool:
        """Flip whether ``branch`` is ignored. Returns the new ignored state."""
        if self.config.is_ignored(branch):
            self.config.unignore_branch(branch)
        else:
            self.config.ignore_branch(branch)
        self._save_config()
        return self.config.is_ignored(branch)

    def toggle_auto_create(self) -> bool:
        self.config.auto_create_worktrees = not self.config.auto_create_worktrees
        self.status.auto_create_enabled = self.config.auto_create_worktrees
        self._save_config()
        return self.config.auto_create_worktrees

    def update_settings(
        self,
        post_create_command: Optional[str] = None,
        command_working_dir: Optional[str] = None,
        poll_interval_secs: Optional[int] = None,
        auto_create_worktrees: Optional[bool] = None,
        base_branch: Optional[str] = None,
    ) -> None:
        """Apply settings from the settings screen and save them.

        ``None`` leaves a value unchanged; an empty string clears an optional one.

        Raises:
            ValueError: If ``poll_interval_secs`` is not positive
        """
        if poll_interval_secs is not None:
            if poll_interval_secs <= 0:
                raise ValueError(f"poll_interval_secs must be positive, got {poll_interval_secs}")
            self.config.poll_interval_secs = poll_interval_secs
        if post_create_command is not None:
            self.config.post_create_command = post_create_command.strip() or None
        if command_working_dir is not None:
            self.config.command_working_dir = command_working_dir.strip() or None
        if auto_create_worktrees is not None:
            self.config.auto_create_worktrees = auto_create_worktrees
        if base_branch is not None:
            self.config.base_branch = base_branch.strip() or None
            self.default_branch = self.config.base_branch or self.repository.get_default_branch(
                self.config.remote_name
            )

        self._save_config()
        self.update_status()

    def worktree_path(self, branch: str) -> Optional[Path]:
        try:
            return self.worktrees.get_worktree_path(branch)
        except GitOperationError as e:
            logger.warning(f"Could not resolve worktree for {branch}: {e}")
            return None
