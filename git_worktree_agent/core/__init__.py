"""Core functionality for git-worktree-agent"""

from git_worktree_agent.core.agent import WorktreeAgent
from git_worktree_agent.core.fetch import FetchScheduler, classify_fetch_output
from git_worktree_agent.core.provisioning import ProvisioningQueue
from git_worktree_agent.core.registry import BranchRegistry
from git_worktree_agent.core.watcher import HookSession, Watcher

__all__ = [
    "BranchRegistry",
    "FetchScheduler",
    "HookSession",
    "ProvisioningQueue",
    "Watcher",
    "WorktreeAgent",
    "classify_fetch_output",
]
