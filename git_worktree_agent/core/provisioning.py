"""Sequential provisioning queue."""

from collections import deque
from typing import Callable, Deque, List, Optional

from git_worktree_agent.utils.logging import get_logger

logger = get_logger(__name__)


class ProvisioningQueue:
    """FIFO of branches awaiting a worktree, provisioned one at a time.

    ``start`` is called with the branch that just became current. It returns
    True if work for that branch is still in flight (a hook is running), in
    which case the branch stays current until ``finish`` is called. Returning
    False means the branch is done (worktree created without a hook, or the
    creation failed) and the queue moves straight on to the next one.
    """

    def __init__(self, start: Callable[[str], bool]):
        self._start = start
        self._pending: Deque[str] = deque()
        self._current: Optional[str] = None

    @property
    def current(self) -> Optional[str]:
        return self._current

    @property
    def pending(self) -> List[str]:
        return list(self._pending)

    def is_pending(self, branch: str) -> bool:
        return branch in self._pending

    def is_current(self, branch: str) -> bool:
        return self._current == branch

    def __contains__(self, branch: str) -> bool:
        return self.is_current(branch) or self.is_pending(branch)

    def __len__(self) -> int:
        return len(self._pending) + (1 if self._current else 0)

    def enqueue(self, branch: str) -> bool:
        """Add a branch to the queue.

        Returns:
            False if the branch was already queued or in flight
        """
        if branch in self:
            logger.debug(f"Branch '{branch}' already queued, ignoring")
            return False

        self._pending.append(branch)
        logger.info(f"Queued branch '{branch}' ({len(self._pending)} pending)")
        self.advance()
        return True

    def advance(self) -> None:
        """Start the next pending branch if nothing is in flight."""
        while self._current is None and self._pending:
            self._current = self._pending.popleft()
            logger.debug(f"Provisioning '{self._current}'")
            if not self._start(self._current):
                self._current = None

    def finish(self, branch: str) -> None:
        """Mark the in-flight branch done and move on."""
        if self._current != branch:
            logger.warning(f"finish() for '{branch}' but current is '{self._current}'")
            return
        self._current = None
        self.advance()

    def remove(self, branch: str) -> bool:
        """Drop a branch that has not started yet.

        Returns:
            True if it was pending; an in-flight branch is never affected
        """
        try:
            self._pending.remove(branch)
        except ValueError:
            return False
        logger.info(f"Removed '{branch}' from the provisioning queue")
        return True

    skip = remove
