"""Dashboard status model."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class AppStatus:
    """Snapshot of watcher state shown in the status bar."""
    is_fetching: bool = False
    last_fetch: Optional[datetime] = None
    remote_branch_count: int = 0
    worktree_count: int = 0
    running_hooks: int = 0
    pending_count: int = 0
    last_error: Optional[str] = None  # Kept until superseded
    auto_create_enabled: bool = False
    poll_interval: int = 10
    remote_name: str = "origin"
