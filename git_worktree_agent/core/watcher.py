"""Branch watcher: fetch scheduling, provisioning queue and hook sessions.

All state here is owned by the driver thread. Background work (fetches and
hook commands) only talks back through queues, which the driver empties
with ``drain()``.
"""

import queue
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set

import git

from git_worktree_agent.config import Config
from git_worktree_agent.core.fetch import FetchFunction, FetchScheduler
from git_worktree_agent.core.provisioning import ProvisioningQueue
from git_worktree_agent.core.registry import BranchRegistry
from git_worktree_agent.exceptions import GitOperationError
from git_worktree_agent.models.branch import BranchRecord
from git_worktree_agent.models.command import (
    CommandLog,
    Error,
    Exit,
    Stderr,
    Stdout,
)
from git_worktree_agent.models.events import (
    FetchFailed,
    HookCompleted,
    HookOutput,
    HookStarted,
    NewBranchesFound,
    WatcherEvent,
    WorktreeCreated,
    WorktreeCreateFailed,
    WorktreeCreating,
)
from git_worktree_agent.services.executor import CommandExecutor, RunningCommand
from git_worktree_agent.services.git import Repository, WorktreeService
from git_worktree_agent.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class HookSession:
    """A post-create command that is still running for a branch."""

    branch: str
    command: str
    handle: RunningCommand
    log: CommandLog

    @property
    def output(self):
        return self.log.output

    @property
    def running(self) -> bool:
        return self.log.is_running

    @property
    def exit_code(self) -> Optional[int]:
        return self.log.exit_code


class Watcher:
    """Watches a remote for new branches and provisions worktrees for them."""

    def __init__(
        self,
        repository: Repository,
        worktrees: WorktreeService,
        config: Config,
        executor: Optional[CommandExecutor] = None,
        fetch_fn: Optional[FetchFunction] = None,
    ):
        """Initialize the watcher.

        Args:
            repository: Branch source for remote and local branch scans
            worktrees: Worktree provider used to create worktrees
            config: Shared configuration, read on every decision
            executor: Runs post-create commands
            fetch_fn: Remote-fetch primitive; defaults to ``repository.fetch``
        """
        self.repository = repository
        self.worktrees = worktrees
        self.config = config
        self.executor = executor or CommandExecutor()

        self.events: "queue.Queue[WatcherEvent]" = queue.Queue()
        self.registry = BranchRegistry()
        self.fetcher = FetchScheduler(self.events, fetch_fn or repository.fetch)
        self.queue = ProvisioningQueue(self._provision)

        self.hook_sessions: Dict[str, HookSession] = {}
        self.command_logs: List[CommandLog] = []
        self._base_refs: Dict[str, str] = {}

    def init(self) -> None:
        """Load the current remote and local branches without reporting them as new.

        Raises:
            GitOperationError: If the branches cannot be listed
        """
        remote = self.repository.list_remote_branches(self.config.remote_name)
        local = self.repository.list_local_branches()
        self.registry.initialize(remote, local)
        logger.debug(f"Initialized watcher with {len(self.registry)} known branches")

    # Fetching

    def is_fetching(self) -> bool:
        return self.fetcher.in_progress

    def start_fetch(self) -> bool:
        return self.fetcher.start_fetch(self.config.remote_name)

    def on_fetch_complete(self) -> Optional[List[str]]:
        """Acknowledge a completed fetch and reconcile the known branches.

        If the remote branches cannot be listed afterwards, a ``FetchFailed``
        event is put on the channel and the fetch is not recorded.

        Returns:
            Newly discovered, non-ignored remote branches, or None if the
            branch scan failed
        """
        self.fetcher.on_complete()

        try:
            remote = self.repository.list_remote_branches(self.config.remote_name)
        except GitOperationError as e:
            logger.error(f"Failed to get remote branches: {e}")
            self.events.put(FetchFailed(f"Failed to get remote branches: {e}"))
            return None

        self.config.mark_fetched()

        try:
            local = self.repository.list_local_branches()
        except GitOperationError as e:
            logger.warning(f"Failed to get local branches: {e}")
            local = []

        worktree_branches = self._worktree_branches()
        keep = set(self.queue.pending) | worktree_branches
        if self.queue.current:
            keep.add(self.queue.current)

        new_branches = self.registry.reconcile(remote, local, self.config.is_ignored, keep)
        if not new_branches:
            return []

        logger.info(f"New branches found: {new_branches}")
        self.events.put(NewBranchesFound(list(new_branches)))

        if self.config.auto_create_worktrees:
            for branch in new_branches:
                if branch in worktree_branches:
                    continue
                self.queue_branch(branch)

        return new_branches

    def on_fetch_failed(self) -> None:
        self.fetcher.on_failed()

    def _worktree_branches(self) -> Set[str]:
        try:
            return self.worktrees.worktree_branches()
        except GitOperationError as e:
            logger.warning(f"Could not list worktrees: {e}")
            return set()

    # Provisioning

    def queue_branch(self, branch: str, base_ref: Optional[str] = None) -> bool:
        """Queue a branch for worktree creation.

        Args:
            branch: Branch to provision
            base_ref: Create ``branch`` as a new branch from this ref

        Returns:
            False if the branch was already queued or in flight
        """
        if branch in self.queue:
            return False
        if base_ref:
            self._base_refs[branch] = base_ref
        return self.queue.enqueue(branch)

    def skip_branch(self, branch: str) -> bool:
        """Drop a branch that is waiting in the queue. Running work is never touched."""
        self._base_refs.pop(branch, None)
        return self.queue.skip(branch)

    def worktree_path_for(self, branch: str) -> Path:
        return self.config.get_worktree_path(self.repository.main_root, branch).resolve()

    def _provision(self, branch: str) -> bool:
        """Create the worktree for the current branch and start its hook.

        Returns:
            True while a hook is running for the branch
        """
        path = self.worktree_path_for(branch)
        base_ref = self._base_refs.pop(branch, None)
        record = self.registry.get(branch)
        remote = None if record is not None and record.is_local else self.config.remote_name

        self.events.put(WorktreeCreating(branch))

        try:
            log_lines = self.worktrees.create(branch, path, remote=remote, base_ref=base_ref)
        except GitOperationError as e:
            logger.error(f"Failed to create worktree for {branch}: {e}")
            self.add_worktree_log(branch, e.log_lines or [f"ERROR: {e}"], failed=True)
            self.events.put(WorktreeCreateFailed(branch, e.message or str(e)))
            return False
        except (git.exc.GitError, OSError) as e:
            logger.error(f"Failed to run git worktree add for {branch}: {e}")
            self.add_worktree_log(branch, [f"ERROR: {e}"], failed=True)
            self.events.put(WorktreeCreateFailed(branch, str(e)))
            return False

        self.add_worktree_log(branch, log_lines)
        self.events.put(WorktreeCreated(branch, path))

        command = self.config.post_create_command
        if not command:
            return False

        self._start_hook(branch, command, path)
        return True

    def _start_hook(self, branch: str, command: str, worktree_path: Path) -> None:
        working_dir = worktree_path
        if self.config.command_working_dir:
            working_dir = worktree_path / self.config.command_working_dir

        self.events.put(HookStarted(branch))
        log = CommandLog(branch=branch, command=command)
        self.command_logs.append(log)

        logger.info(f"Running post-create command for {branch}: {command}")
        handle = self.executor.run_async(command, working_dir)
        self.hook_sessions[branch] = HookSession(branch, command, handle, log)

    # Hook sessions

    def has_running_hook(self, branch: str) -> bool:
        return branch in self.hook_sessions

    def poll_hooks(self) -> None:
        """Turn output from running hooks into events without blocking."""
        for branch, session in list(self.hook_sessions.items()):
            # Checked before polling: a dead runner has already sent everything
            finished = not session.handle.is_alive()
            exit_code = None

            for message in session.handle.poll():
                session.log.add_output(message)
                if isinstance(message, Stdout):
                    self.events.put(HookOutput(branch, message.line, "stdout"))
                elif isinstance(message, Stderr):
                    self.events.put(HookOutput(branch, message.line, "stderr"))
                elif isinstance(message, Exit):
                    exit_code = message.code
                elif isinstance(message, Error):
                    exit_code = -1

            if exit_code is None and finished:
                logger.error(f"Hook runner for {branch} stopped without an exit code")
                session.log.add_output(Error("Command runner stopped unexpectedly"))
                exit_code = -1

            if exit_code is None:
                continue

            del self.hook_sessions[branch]
            logger.info(f"Post-create command for {branch} exited with {exit_code}")
            self.events.put(HookCompleted(branch, exit_code))
            self.queue.finish(branch)

    def drain(self) -> Iterator[WatcherEvent]:
        """Yield every ready event in arrival order.

        Hooks are polled first. Events put on the channel while the caller is
        still iterating are yielded too.
        """
        self.poll_hooks()
        while True:
            try:
                yield self.events.get_nowait()
            except queue.Empty:
                return

    # Queue state

    def is_pending(self, branch: str) -> bool:
        return self.queue.is_pending(branch)

    def is_current(self, branch: str) -> bool:
        return self.queue.is_current(branch)

    def is_processing(self) -> bool:
        return self.queue.current is not None

    def pending_count(self) -> int:
        return len(self.queue.pending)

    # Branches

    def known_branches(self) -> List[BranchRecord]:
        return self.registry.records()

    def get_branch(self, name: str) -> Optional[BranchRecord]:
        return self.registry.get(name)

    def add_local_branch(self, name: str) -> None:
        self.registry.add_local(name)

    def forget_branch(self, name: str) -> None:
        """Drop a branch record unless it is still queued or in flight."""
        if name not in self.queue:
            self.registry.remove(name)

    # Command logs

    def logs_for(self, branch: str) -> List[CommandLog]:
        return [log for log in self.command_logs if log.branch == branch]

    def add_fetch_log(self, remote_name: str, output: str, failed: bool = False) -> None:
        """Record fetch warnings or an error message as a system log."""
        log = CommandLog.system(f"fetch:{remote_name}", f"git fetch --prune {remote_name}")
        for line in output.splitlines():
            log.add_output(Stderr(line) if failed else Stdout(line))
        log.add_output(Exit(1 if failed else 0))
        self.command_logs.append(log)

    def add_fetch_success_log(self, remote_name: str) -> None:
        self.add_fetch_log(remote_name, "Fetch successful")

    def add_worktree_log(self, branch: str, messages: List[str], failed: bool = False) -> None:
        log = CommandLog(branch=branch, command=f"git worktree add ({branch})")
        for line in messages:
            if line.startswith("ERROR:"):
                log.add_output(Stderr(line))
            else:
                log.add_output(Stdout(line))
        log.add_output(Exit(1 if failed else 0))
        self.command_logs.append(log)
