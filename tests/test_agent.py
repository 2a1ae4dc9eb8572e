"""Tests for WorktreeAgent against real repositories"""
from pathlib import Path

import pytest

from git_worktree_agent.config import Config
from git_worktree_agent.core.agent import WorktreeAgent
from git_worktree_agent.exceptions import GitOperationError, RemoteNotFoundError
from git_worktree_agent.models.branch import BranchStatus
from git_worktree_agent.models.events import (
    FetchCompleted,
    FetchFailed,
    HookCompleted,
    NewBranchesFound,
    WorktreeCreated,
)
from git_worktree_agent.services.git import Repository

from tests.conftest import push_branch, wait_for


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_agent(git_repo, clock):
    """Build an agent for the cloned repository."""
    def factory(config=None, **kwargs):
        repository = Repository.discover(git_repo.working_dir)
        return WorktreeAgent(repository, config or Config(), clock=clock, **kwargs)
    return factory


def until(agent, event_type):
    """Drive the agent until an event of ``event_type`` has been applied."""
    return wait_for(
        agent.process_watcher_events,
        lambda events: any(isinstance(e, event_type) for e in events),
    )


def statuses(agent):
    return {item.name: item.status for item in agent.branch_items()}


class TestPolling:
    """Test the poll timer."""

    def test_first_tick_fetches(self, make_agent, clock):
        agent = make_agent(Config(poll_interval_secs=30))

        assert agent.poll_due()
        agent.tick()
        assert agent.watcher.is_fetching()
        assert not agent.poll_due()

        until(agent, FetchCompleted)
        clock.now += 29
        assert not agent.poll_due()
        clock.now += 1
        assert agent.poll_due()

    def test_overlapping_poll_is_refused(self, make_agent):
        agent = make_agent()

        assert agent.poll() is True
        assert agent.poll() is False

        until(agent, FetchCompleted)
        assert not agent.status.is_fetching
        assert agent.poll() is True

    def test_fetch_discovers_pushed_branch(self, make_agent, origin, git_repo):
        agent = make_agent()
        assert statuses(agent) == {"main": BranchStatus.LOCAL_ACTIVE}

        push_branch(origin, "feature-a")
        agent.poll()
        events = until(agent, NewBranchesFound)

        assert NewBranchesFound(["feature-a"]) in events
        assert statuses(agent)["feature-a"] == BranchStatus.REMOTE
        assert agent.status.remote_branch_count == 2
        assert agent.status.last_fetch is not None
        assert Config.exists(git_repo.working_dir)

    def test_fetch_failure_sets_error(self, make_agent):
        agent = make_agent(fetch_fn=lambda remote: (128, "", "fatal: repository not found\n"))

        agent.poll()
        until(agent, FetchFailed)

        assert agent.status.last_error == "fatal: repository not found"
        assert not agent.watcher.is_fetching()
        log = agent.logs_for("fetch:origin")[-1]
        assert log.exit_code == 1
        assert log.summary() == "✗ git fetch --prune origin (exit code: 1)"

    def test_branch_scan_failure_after_fetch(self, make_agent, git_repo, monkeypatch):
        """If the branches cannot be listed after a fetch, the fetch counts as failed."""
        agent = make_agent()

        def broken_listing(remote_name):
            raise GitOperationError("list_remote_branches", message="boom")

        monkeypatch.setattr(agent.repository, "list_remote_branches", broken_listing)
        agent.poll()
        events = until(agent, FetchFailed)

        assert any(isinstance(e, FetchCompleted) for e in events)
        assert agent.status.last_error.startswith("Failed to get remote branches:")
        assert agent.status.last_fetch is None
        assert not agent.status.is_fetching
        assert not agent.watcher.is_fetching()
        assert [log.exit_code for log in agent.logs_for("fetch:origin")] == [1]
        assert not Config.exists(git_repo.working_dir)

    def test_successful_fetch_clears_error(self, make_agent):
        agent = make_agent()
        agent.status.last_error = "earlier failure"

        agent.poll()
        until(agent, FetchCompleted)

        assert agent.status.last_error is None

    def test_auto_create(self, make_agent, origin, git_repo):
        agent = make_agent(Config(auto_create_worktrees=True))

        push_branch(origin, "feature-a")
        agent.poll()
        events = until(agent, WorktreeCreated)

        target = Path(git_repo.working_dir).parent / "feature-a"
        assert WorktreeCreated("feature-a", target.resolve()) in events
        assert target.is_dir()
        assert statuses(agent)["feature-a"] == BranchStatus.LOCAL_ACTIVE


class TestBranchList:
    """Test branch rows and statuses."""

    def test_order_and_default(self, make_agent, origin, git_repo):
        for name in ["zeta", "alpha", "dependabot/npm"]:
            push_branch(origin, name)
        git_repo.remotes.origin.fetch()
        agent = make_agent()
        agent.create_worktree("zeta")

        items = agent.branch_items()

        assert [item.name for item in items] == ["main", "zeta", "alpha", "dependabot/npm"]
        assert items[0].is_default
        assert not any(item.is_default for item in items[1:])
        assert items[1].status == BranchStatus.LOCAL_ACTIVE
        assert items[2].status == BranchStatus.REMOTE
        assert items[3].status == BranchStatus.UNTRACKED

    def test_base_branches_default_first(self, make_agent, origin, git_repo):
        push_branch(origin, "aaa")
        git_repo.remotes.origin.fetch()
        agent = make_agent()

        assert agent.default_branch == "main"
        assert agent.base_branches() == ["main", "aaa"]

    def test_configured_base_branch(self, make_agent):
        agent = make_agent(Config(base_branch="develop"))
        assert agent.default_branch == "develop"


class TestActions:
    """Test dashboard actions."""

    def test_create_worktree(self, make_agent, origin, git_repo):
        push_branch(origin, "feature-a")
        git_repo.remotes.origin.fetch()
        agent = make_agent()

        assert agent.create_worktree("feature-a") is True
        assert agent.create_worktree("feature-a") is False
        assert agent.create_worktree("main") is False

        assert agent.worktree_path("feature-a").resolve() == (
            Path(git_repo.working_dir).parent / "feature-a"
        ).resolve()
        assert agent.status.worktree_count == 2

    def test_failing_hook_sets_error(self, make_agent, origin, git_repo):
        push_branch(origin, "feature-a")
        git_repo.remotes.origin.fetch()
        agent = make_agent(Config(post_create_command="sleep 0.2; exit 4"))

        agent.create_worktree("feature-a")
        # Hook sessions only finish when events are processed
        assert statuses(agent)["feature-a"] == BranchStatus.RUNNING_HOOK

        events = until(agent, HookCompleted)

        assert HookCompleted("feature-a", 4) in events
        assert agent.status.last_error == "Hook failed for feature-a: exit code 4"
        assert agent.status.running_hooks == 0
        assert statuses(agent)["feature-a"] == BranchStatus.LOCAL_ACTIVE

    def test_queued_status(self, make_agent, origin, git_repo):
        for name in ["feature-a", "feature-b"]:
            push_branch(origin, name)
        git_repo.remotes.origin.fetch()
        agent = make_agent(Config(post_create_command="sleep 0.3"))

        agent.create_worktree("feature-a")
        agent.create_worktree("feature-b")

        current = statuses(agent)
        assert current["feature-a"] == BranchStatus.RUNNING_HOOK
        assert current["feature-b"] == BranchStatus.QUEUED
        assert agent.status.pending_count == 1

        assert agent.skip_branch("feature-b") is True
        assert statuses(agent)["feature-b"] == BranchStatus.REMOTE
        until(agent, HookCompleted)

    def test_create_new_worktree(self, make_agent, git_repo):
        agent = make_agent()

        assert agent.create_new_worktree("feature/new", "main") is True

        target = Path(git_repo.working_dir).parent / "feature-new"
        assert target.is_dir()
        assert "feature/new" in [head.name for head in git_repo.heads]
        assert statuses(agent)["feature/new"] == BranchStatus.LOCAL_ACTIVE

    def test_create_new_worktree_rejects_existing_name(self, make_agent):
        agent = make_agent()

        assert agent.create_new_worktree("main", "main") is False
        assert agent.status.last_error == "Branch already exists: main"
        assert agent.create_new_worktree("   ", "main") is False

    def test_failed_new_worktree_leaves_no_row(self, make_agent, git_repo):
        agent = make_agent()

        agent.create_new_worktree("feature/bad", "no-such-base")
        agent.process_watcher_events()

        assert "feature/bad" not in statuses(agent)
        assert agent.status.last_error.startswith("feature/bad: ")
        assert not (Path(git_repo.working_dir).parent / "feature-bad").exists()

    def test_skipped_new_worktree_leaves_no_row(self, make_agent):
        agent = make_agent(Config(post_create_command="sleep 0.3"))

        agent.create_new_worktree("first", "main")
        agent.create_new_worktree("second", "main")
        assert statuses(agent)["second"] == BranchStatus.QUEUED

        assert agent.skip_branch("second") is True

        assert "second" not in statuses(agent)
        assert statuses(agent)["first"] == BranchStatus.RUNNING_HOOK
        until(agent, HookCompleted)

    def test_can_delete(self, make_agent):
        agent = make_agent()

        assert agent.can_delete("main") == "Cannot delete the main worktree"
        assert agent.can_delete("nothing") == "No worktree for nothing"

    def test_delete_worktree(self, make_agent, origin, git_repo):
        push_branch(origin, "feature-a")
        git_repo.remotes.origin.fetch()
        agent = make_agent()
        agent.create_worktree("feature-a")
        target = agent.worktree_path("feature-a")

        assert agent.can_delete("feature-a") is None
        assert agent.delete_worktree("feature-a") is True

        assert not target.exists()
        assert statuses(agent)["feature-a"] == BranchStatus.REMOTE
        assert agent.status.worktree_count == 1

    def test_delete_main_refused(self, make_agent):
        agent = make_agent()

        assert agent.delete_worktree("main") is False
        assert agent.status.last_error == "Cannot delete the main worktree"


class TestSettings:
    """Test settings that persist to the config file."""

    def test_toggle_ignore_persists(self, make_agent, git_repo):
        agent = make_agent()

        assert agent.toggle_ignore("feature-a") is True
        assert Config.load(git_repo.working_dir).untracked_branches == {"feature-a"}

        assert agent.toggle_ignore("feature-a") is False
        saved = Config.load(git_repo.working_dir)
        assert saved.untracked_branches == set()
        assert saved.tracked_branches == {"feature-a"}

    def test_toggle_auto_create(self, make_agent, git_repo):
        agent = make_agent()

        assert agent.toggle_auto_create() is True
        assert agent.status.auto_create_enabled
        assert Config.load(git_repo.working_dir).auto_create_worktrees

    def test_update_settings(self, make_agent, git_repo):
        agent = make_agent(Config(post_create_command="make setup"))

        agent.update_settings(
            post_create_command="  ",
            command_working_dir="app",
            poll_interval_secs=30,
            auto_create_worktrees=True,
        )

        saved = Config.load(git_repo.working_dir)
        assert saved.post_create_command is None
        assert saved.command_working_dir == "app"
        assert saved.poll_interval_secs == 30
        assert saved.auto_create_worktrees
        assert agent.status.poll_interval == 30

    def test_update_settings_rejects_bad_interval(self, make_agent):
        agent = make_agent()

        with pytest.raises(ValueError):
            agent.update_settings(poll_interval_secs=0)
        assert agent.config.poll_interval_secs == 10


class TestOpen:
    """Test opening an agent from a path."""

    def test_open(self, git_repo):
        agent = WorktreeAgent.open(git_repo.working_dir)
        assert agent.config.remote_name == "origin"
        assert [b.name for b in agent.watcher.known_branches()] == ["main"]

    def test_open_with_missing_remote(self, git_repo):
        Config(remote_name="upstream").save(git_repo.working_dir)

        with pytest.raises(RemoteNotFoundError):
            WorktreeAgent.open(git_repo.working_dir)
