"""Background fetch scheduling and outcome classification."""

import queue
import threading
from typing import Callable, List, Optional, Tuple

import git

from git_worktree_agent.models.events import (
    FetchCompleted,
    FetchFailed,
    FetchStarted,
    WatcherEvent,
)
from git_worktree_agent.utils.logging import get_logger

logger = get_logger(__name__)

# (exit_status, stdout, stderr)
FetchResult = Tuple[int, str, str]
FetchFunction = Callable[[str], FetchResult]

BENIGN_PREFIXES = ("warning", "hint:", "from ")
BENIGN_SUBSTRINGS = ("post-quantum",)


def is_benign_line(line: str) -> bool:
    """Return True for fetch noise that does not indicate a failure."""
    lowered = line.strip().lower()
    if not lowered:
        return True
    if lowered.startswith(BENIGN_PREFIXES):
        return True
    return any(marker in lowered for marker in BENIGN_SUBSTRINGS)


def _collect_messages(stdout: str, stderr: str) -> List[str]:
    lines = stderr.splitlines() + stdout.splitlines()
    return [line.strip() for line in lines if line.strip()]


def classify_fetch_output(status: int, stdout: str, stderr: str) -> WatcherEvent:
    """Turn a finished fetch into ``FetchCompleted`` or ``FetchFailed``.

    git writes progress and notices to stderr even when it succeeds, so a
    non-zero exit only counts as a failure if some stderr line is not benign.
    """
    messages = _collect_messages(stdout, stderr)
    output = "\n".join(messages) if messages else None

    if status == 0:
        return FetchCompleted(output)

    if all(is_benign_line(line) for line in stderr.splitlines()):
        logger.debug(f"Fetch exited with {status} but only reported benign output")
        return FetchCompleted(output)

    return FetchFailed(stderr.strip())


class FetchScheduler:
    """Runs at most one fetch at a time on a background thread.

    The flag is only cleared by the consumer through ``on_complete`` or
    ``on_failed`` once it has seen the outcome event.
    """

    def __init__(self, events: "queue.Queue[WatcherEvent]", fetch_fn: FetchFunction):
        self.events = events
        self.fetch_fn = fetch_fn
        self._in_progress = False
        self._thread: Optional[threading.Thread] = None

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    def start_fetch(self, remote: str) -> bool:
        """Start a fetch unless one is already running.

        Returns:
            True if a new fetch was started
        """
        if self._in_progress:
            logger.debug("Fetch already in progress, skipping")
            return False

        self._in_progress = True
        self.events.put(FetchStarted())
        logger.info(f"Fetching {remote}")

        self._thread = threading.Thread(
            target=self._run, args=(remote,), name=f"fetch: {remote}", daemon=True
        )
        self._thread.start()
        return True

    def _run(self, remote: str) -> None:
        try:
            status, stdout, stderr = self.fetch_fn(remote)
        except (git.exc.GitError, OSError) as e:
            logger.error(f"Failed to run git fetch: {e}")
            self.events.put(FetchFailed(f"Failed to run git fetch: {e}"))
            return

        event = classify_fetch_output(status, stdout, stderr)
        if isinstance(event, FetchFailed):
            logger.warning(f"Fetch failed: {event.message}")
        else:
            logger.info("Fetch completed")
        self.events.put(event)

    def on_complete(self) -> None:
        self._in_progress = False

    def on_failed(self) -> None:
        self._in_progress = False
