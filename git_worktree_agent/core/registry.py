"""Known-branch bookkeeping for the watcher."""

from typing import Callable, Dict, Iterable, List, Optional

from git_worktree_agent.models.branch import BranchRecord
from git_worktree_agent.utils.logging import get_logger

logger = get_logger(__name__)


class BranchRegistry:
    """Mapping of branch name to the record last seen for it.

    A name reported both by the remote and locally is stored once, using the
    remote record.
    """

    def __init__(self):
        self._branches: Dict[str, BranchRecord] = {}

    @staticmethod
    def _merge(
        remote: Iterable[BranchRecord], local: Iterable[BranchRecord]
    ) -> Dict[str, BranchRecord]:
        merged = {record.name: record for record in local}
        merged.update({record.name: record for record in remote})
        return merged

    def initialize(self, remote: Iterable[BranchRecord], local: Iterable[BranchRecord]) -> None:
        """Seed the registry without reporting anything as new."""
        self._branches = self._merge(remote, local)
        logger.debug(f"Registry initialized with {len(self._branches)} branches")

    def reconcile(
        self,
        remote: List[BranchRecord],
        local: List[BranchRecord],
        is_ignored: Callable[[str], bool],
        keep: Iterable[str] = (),
    ) -> List[str]:
        """Replace the registry with a fresh scan.

        Args:
            remote: Branches reported by the remote
            local: Local branches
            is_ignored: Predicate filtering which new names are reported
            keep: Names retained even if neither scan reports them any more
                (queued, in flight, or backing a worktree)

        Returns:
            Names of remote branches that were not known before and are not
            ignored, in scan order
        """
        newly_discovered = [
            record.name
            for record in remote
            if record.name not in self._branches and not is_ignored(record.name)
        ]

        fresh = self._merge(remote, local)
        for name in keep:
            if name not in fresh and name in self._branches:
                fresh[name] = self._branches[name]

        dropped = set(self._branches) - set(fresh)
        if dropped:
            logger.debug(f"Branches no longer reported: {sorted(dropped)}")

        self._branches = fresh
        return newly_discovered

    def add_local(self, name: str) -> None:
        """Record a branch created locally (e.g. a new worktree branch)."""
        if name not in self._branches:
            self._branches[name] = BranchRecord.local(name)

    def remove(self, name: str) -> bool:
        """Forget a branch. Returns False if it was not known."""
        return self._branches.pop(name, None) is not None

    def get(self, name: str) -> Optional[BranchRecord]:
        return self._branches.get(name)

    def names(self) -> List[str]:
        return sorted(self._branches)

    def records(self) -> List[BranchRecord]:
        return [self._branches[name] for name in self.names()]

    def remote_count(self) -> int:
        return sum(1 for record in self._branches.values() if not record.is_local)

    def __contains__(self, name: str) -> bool:
        return name in self._branches

    def __len__(self) -> int:
        return len(self._branches)
