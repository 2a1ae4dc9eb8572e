"""Events exchanged between the watcher and the driver loop.

Each event is an immutable value; ``WatcherEvent`` is the closed union of
all of them and consumers dispatch with ``isinstance``.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union


@dataclass(frozen=True)
class FetchStarted:
    pass


@dataclass(frozen=True)
class FetchCompleted:
    """Fetch succeeded; ``output`` holds warnings or info lines, if any."""
    output: Optional[str] = None


@dataclass(frozen=True)
class FetchFailed:
    message: str


@dataclass(frozen=True)
class NewBranchesFound:
    names: List[str]


@dataclass(frozen=True)
class WorktreeCreating:
    branch: str


@dataclass(frozen=True)
class WorktreeCreated:
    branch: str
    path: Path


@dataclass(frozen=True)
class WorktreeCreateFailed:
    branch: str
    message: str


@dataclass(frozen=True)
class HookStarted:
    branch: str


@dataclass(frozen=True)
class HookOutput:
    branch: str
    line: str
    stream: str = "stdout"


@dataclass(frozen=True)
class HookCompleted:
    """Hook finished; ``exit_code`` is -1 when the command could not be spawned."""
    branch: str
    exit_code: int


WatcherEvent = Union[
    FetchStarted,
    FetchCompleted,
    FetchFailed,
    NewBranchesFound,
    WorktreeCreating,
    WorktreeCreated,
    WorktreeCreateFailed,
    HookStarted,
    HookOutput,
    HookCompleted,
]
