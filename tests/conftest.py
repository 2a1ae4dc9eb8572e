"""Pytest fixtures for git-worktree-agent tests"""
import queue
import tempfile
import time
from pathlib import Path

import pytest
import git

from git_worktree_agent.config import Config
from git_worktree_agent.models.branch import BranchRecord


def _configure_user(repo):
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def origin(temp_dir):
    """A bare "origin" repository seeded with a main branch.

    Yields the seeding repository; push to its ``origin`` remote to make
    branches appear on the remote.
    """
    bare_path = temp_dir / "origin.git"
    bare = git.Repo.init(bare_path, bare=True)

    seed_path = temp_dir / "seed"
    seed = git.Repo.init(seed_path)
    _configure_user(seed)

    (seed_path / "README.md").write_text("# Test Repository\n")
    seed.index.add(["README.md"])
    seed.index.commit("Initial commit")
    seed.git.branch("-M", "main")

    seed.create_remote("origin", str(bare_path))
    seed.git.push("origin", "main")
    bare.git.symbolic_ref("HEAD", "refs/heads/main")

    yield seed

    seed.close()
    bare.close()


@pytest.fixture
def git_repo(temp_dir, origin):
    """A clone of ``origin`` inside its own directory.

    Worktrees use the default base dir "..", so they land next to the clone
    in ``temp_dir / "project"``.
    """
    clone_path = temp_dir / "project" / "repo"
    repo = git.Repo.clone_from(str(temp_dir / "origin.git"), str(clone_path))
    _configure_user(repo)

    yield repo

    repo.close()


def push_branch(seed, name: str) -> None:
    """Create ``name`` on the remote, pointing at main."""
    seed.git.push("origin", f"main:refs/heads/{name}")


def delete_remote_branch(seed, name: str) -> None:
    seed.git.push("origin", "--delete", name)


@pytest.fixture
def config():
    """Default configuration."""
    return Config()


def remote_branch(name: str, remote: str = "origin") -> BranchRecord:
    return BranchRecord(name=name, full_ref=f"{remote}/{name}", remote=remote, commit="abc1234")


def local_branch(name: str) -> BranchRecord:
    return BranchRecord.local(name, commit="abc1234")


def wait_for(source, predicate, timeout: float = 10.0):
    """Collect events until ``predicate(events)`` holds.

    ``source`` is called repeatedly and must return an iterable of new events
    (e.g. ``watcher.drain``).
    """
    collected = []
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        collected.extend(source())
        if predicate(collected):
            return collected
        time.sleep(0.01)
    raise AssertionError(f"Timed out waiting; events so far: {collected}")


def queue_reader(events: "queue.Queue"):
    """Adapter turning a queue into a ``wait_for`` source."""
    def read():
        items = []
        while True:
            try:
                items.append(events.get_nowait())
            except queue.Empty:
                return items
    return read
