"""Branch models and related enums"""
from enum import Enum
from dataclasses import dataclass


@dataclass(frozen=True)
class BranchRecord:
    """A branch as reported by the remote or local ref scan.

    Identity is ``name``; ``full_ref`` keeps the remote notation
    (``origin/feature/x``) or the bare name for local branches.
    """
    name: str
    full_ref: str
    remote: str = ""
    commit: str = ""
    is_local: bool = False

    @classmethod
    def local(cls, name: str, commit: str = "") -> "BranchRecord":
        """Build a record for a local-only branch."""
        return cls(name=name, full_ref=name, remote="", commit=commit, is_local=True)


class BranchStatus(Enum):
    """Display status of a branch in the dashboard."""
    REMOTE = "remote"                  # No local worktree
    LOCAL_ACTIVE = "local"             # Worktree exists
    LOCAL_PRUNABLE = "prunable"        # Worktree registered but directory missing
    QUEUED = "queued"                  # Waiting in the provisioning queue
    CREATING = "creating"              # Worktree creation in flight
    RUNNING_HOOK = "running-hook"      # Post-create command running
    UNTRACKED = "untracked"            # Ignored by pattern or explicitly untracked


@dataclass
class BranchItem:
    """A branch row for display."""
    name: str
    status: BranchStatus
    is_default: bool = False

    @property
    def has_worktree(self) -> bool:
        return self.status in (BranchStatus.LOCAL_ACTIVE, BranchStatus.LOCAL_PRUNABLE)

    @property
    def is_busy(self) -> bool:
        return self.status in (
            BranchStatus.QUEUED,
            BranchStatus.CREATING,
            BranchStatus.RUNNING_HOOK,
        )
