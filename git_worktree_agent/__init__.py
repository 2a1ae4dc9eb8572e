"""
git-worktree-agent - Watch a remote for new branches and provision worktrees for them
"""

from .__version__ import __version__
from .core import Watcher, WorktreeAgent
from .cli.main import main

__all__ = ["Watcher", "WorktreeAgent", "main", "__version__"]
