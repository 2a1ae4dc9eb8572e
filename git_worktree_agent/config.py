"""Configuration handling for git-worktree-agent

Preferences and tracked/untracked branches live in a JSON file in the main
worktree root. The file is per-user and should be gitignored.
"""

import fnmatch
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, List, Set, Union

from git_worktree_agent.exceptions import ConfigError
from git_worktree_agent.utils.logging import get_logger

logger = get_logger(__name__)

CONFIG_FILE_NAME = ".gwa-config.json"

_UNSAFE_PATH_CHARS = '/\\:*?"<>|'


def sanitize_branch_name(branch: str) -> str:
    """Make a branch name usable as a single directory name."""
    for char in _UNSAFE_PATH_CHARS:
        branch = branch.replace(char, "-")
    return branch


@dataclass
class Config:
    """Configuration for git-worktree-agent with validation."""

    version: int = 1

    # Watching
    poll_interval_secs: int = 10
    remote_name: str = "origin"
    base_branch: Optional[str] = None

    # Provisioning
    post_create_command: Optional[str] = None
    command_working_dir: Optional[str] = None  # Relative to the worktree root
    auto_create_worktrees: bool = False
    worktree_base_dir: str = ".."  # Relative to the repository root

    # Branch filtering
    ignore_patterns: List[str] = field(
        default_factory=lambda: ["dependabot/*", "renovate/*"]
    )
    tracked_branches: Set[str] = field(default_factory=set)
    untracked_branches: Set[str] = field(default_factory=set)

    # Persisted state
    last_fetch: Optional[datetime] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_poll_interval()
        self._validate_remote_name()
        self._validate_worktree_base_dir()
        self._normalize_optional_strings()
        self.tracked_branches = set(self.tracked_branches)
        self.untracked_branches = set(self.untracked_branches)

    def _validate_poll_interval(self):
        """Validate poll_interval_secs is positive."""
        if self.poll_interval_secs <= 0:
            raise ValueError(
                f"poll_interval_secs must be positive, got {self.poll_interval_secs}"
            )

    def _validate_remote_name(self):
        """Validate remote_name is not empty."""
        if not self.remote_name or not self.remote_name.strip():
            raise ValueError("remote_name cannot be empty")
        self.remote_name = self.remote_name.strip()

    def _validate_worktree_base_dir(self):
        """Validate worktree_base_dir is not empty."""
        if not self.worktree_base_dir or not self.worktree_base_dir.strip():
            raise ValueError("worktree_base_dir cannot be empty")

    def _normalize_optional_strings(self):
        """Treat blank optional strings as unset."""
        for name in ("post_create_command", "command_working_dir", "base_branch"):
            value = getattr(self, name)
            if value is not None and not value.strip():
                setattr(self, name, None)

    # Branch policy

    def is_ignored(self, branch: str) -> bool:
        """Check if a branch is explicitly untracked or matches an ignore pattern."""
        if branch in self.untracked_branches:
            return True
        return any(fnmatch.fnmatchcase(branch, pattern) for pattern in self.ignore_patterns)

    def is_tracked(self, branch: str) -> bool:
        return branch in self.tracked_branches

    def track_branch(self, branch: str) -> None:
        self.untracked_branches.discard(branch)
        self.tracked_branches.add(branch)

    def untrack_branch(self, branch: str) -> None:
        self.tracked_branches.discard(branch)
        self.untracked_branches.add(branch)

    # The dashboard toggle speaks in terms of ignoring
    ignore_branch = untrack_branch
    unignore_branch = track_branch

    def get_worktree_path(self, repo_root: Union[str, Path], branch: str) -> Path:
        """Get the worktree directory path for a branch."""
        return Path(repo_root) / self.worktree_base_dir / sanitize_branch_name(branch)

    def mark_fetched(self, now: Optional[datetime] = None) -> None:
        self.last_fetch = now or datetime.now(timezone.utc)

    # Serialization

    def to_dict(self) -> dict:
        """Convert config to a JSON-friendly dictionary."""
        return {
            "version": self.version,
            "poll_interval_secs": self.poll_interval_secs,
            "remote_name": self.remote_name,
            "base_branch": self.base_branch,
            "post_create_command": self.post_create_command,
            "command_working_dir": self.command_working_dir,
            "auto_create_worktrees": self.auto_create_worktrees,
            "worktree_base_dir": self.worktree_base_dir,
            "ignore_patterns": list(self.ignore_patterns),
            "tracked_branches": sorted(self.tracked_branches),
            "untracked_branches": sorted(self.untracked_branches),
            "last_fetch": self.last_fetch.isoformat() if self.last_fetch else None,
        }

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary."""
        known_fields = {
            "version",
            "poll_interval_secs",
            "remote_name",
            "base_branch",
            "post_create_command",
            "command_working_dir",
            "auto_create_worktrees",
            "worktree_base_dir",
            "ignore_patterns",
            "tracked_branches",
            "untracked_branches",
            "last_fetch",
        }

        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        if filtered.get("last_fetch"):
            filtered["last_fetch"] = datetime.fromisoformat(filtered["last_fetch"])
        for key in ("tracked_branches", "untracked_branches"):
            if key in filtered:
                filtered[key] = set(filtered[key] or [])
        return cls(**filtered)

    # Persistence

    @staticmethod
    def path_for(repo_root: Union[str, Path]) -> Path:
        return Path(repo_root) / CONFIG_FILE_NAME

    @classmethod
    def exists(cls, repo_root: Union[str, Path]) -> bool:
        return cls.path_for(repo_root).exists()

    @classmethod
    def load(cls, repo_root: Union[str, Path]) -> "Config":
        """Load config from the repository root, or defaults if there is none.

        Raises:
            ConfigError: If the file exists but cannot be parsed
        """
        config_path = cls.path_for(repo_root)
        if not config_path.exists():
            logger.debug(f"No config file at {config_path}, using defaults")
            return cls()

        try:
            with open(config_path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(str(config_path), f"invalid JSON: {e}") from e
        except OSError as e:
            raise ConfigError(str(config_path), str(e)) from e

        if not isinstance(data, dict):
            raise ConfigError(str(config_path), "top-level value must be an object")

        try:
            config = cls.from_dict(data)
        except (TypeError, ValueError) as e:
            raise ConfigError(str(config_path), str(e)) from e

        logger.debug(f"Loaded config from {config_path}")
        return config

    def save(self, repo_root: Union[str, Path]) -> None:
        """Save config using an atomic write."""
        config_path = self.path_for(repo_root)
        temp_file = config_path.with_suffix(".tmp")
        try:
            with open(temp_file, "w") as f:
                json.dump(self.to_dict(), f, indent=2)
                f.flush()
            temp_file.replace(config_path)
            logger.debug(f"Saved config to {config_path}")
        finally:
            if temp_file.exists():
                temp_file.unlink()
