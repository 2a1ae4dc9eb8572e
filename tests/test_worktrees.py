"""Tests for WorktreeService"""
from pathlib import Path

import pytest

from git_worktree_agent.exceptions import GitOperationError, WorktreeExistsError
from git_worktree_agent.services.git.worktrees import WorktreeService, parse_worktree_list

from tests.conftest import push_branch


PORCELAIN = """worktree /nonexistent/repo
HEAD 1111111111111111111111111111111111111111
branch refs/heads/main

worktree /nonexistent/feature-x
HEAD 2222222222222222222222222222222222222222
branch refs/heads/feature/x
locked

worktree /nonexistent/detached
HEAD 3333333333333333333333333333333333333333
detached
prunable gitdir file points to non-existent location
"""


class TestParseWorktreeList:
    """Test parsing of porcelain output."""

    def test_parse(self):
        worktrees = parse_worktree_list(PORCELAIN)

        assert [wt.path for wt in worktrees] == [
            "/nonexistent/repo",
            "/nonexistent/feature-x",
            "/nonexistent/detached",
        ]
        main, feature, detached = worktrees
        assert main.is_main and main.branch_name == "main"
        assert not feature.is_main and feature.branch_name == "feature/x" and feature.is_locked
        assert detached.branch_name == "" and detached.is_prunable
        assert all(wt.is_orphaned for wt in worktrees)

    def test_no_trailing_newline(self):
        worktrees = parse_worktree_list("worktree /a\nHEAD abc\nbranch refs/heads/main")
        assert len(worktrees) == 1
        assert worktrees[0].commit_sha == "abc"

    def test_empty(self):
        assert parse_worktree_list("") == []


class TestWorktreeCreate:
    """Test worktree creation and its retry policy."""

    def test_create_tracking_remote_branch(self, git_repo, origin):
        push_branch(origin, "feature/login")
        git_repo.remotes.origin.fetch()
        service = WorktreeService(git_repo.working_dir)
        target = Path(git_repo.working_dir).parent / "feature-login"

        log = service.create("feature/login", target, remote="origin")

        assert target.is_dir()
        assert log[0] == f"Creating worktree at: {target}"
        assert log[-1] == f"✓ Worktree created successfully at: {target}"
        assert any(line.startswith("$ git worktree add --track -b feature/login") for line in log)
        assert service.has_worktree_for_branch("feature/login")
        assert service.get_worktree_path("feature/login").resolve() == target.resolve()

    def test_retry_when_branch_exists_locally(self, git_repo, origin):
        """If the local branch already exists, the branch is checked out as is."""
        push_branch(origin, "feature/x")
        git_repo.remotes.origin.fetch()
        git_repo.git.branch("feature/x", "origin/feature/x")
        service = WorktreeService(git_repo.working_dir)
        target = Path(git_repo.working_dir).parent / "feature-x"

        log = service.create("feature/x", target, remote="origin")

        assert target.is_dir()
        assert any("Branch exists locally, retrying" in line for line in log)
        assert service.has_worktree_for_branch("feature/x")

    def test_existing_path_fails_fast(self, git_repo):
        service = WorktreeService(git_repo.working_dir)
        target = Path(git_repo.working_dir).parent / "occupied"
        target.mkdir(parents=True)

        with pytest.raises(WorktreeExistsError) as exc_info:
            service.create("main", target, remote="origin")

        assert exc_info.value.log_lines == [f"ERROR: Worktree path already exists: {target}"]
        assert list(target.iterdir()) == []

    def test_missing_remote_branch(self, git_repo):
        service = WorktreeService(git_repo.working_dir)
        target = Path(git_repo.working_dir).parent / "ghost"

        with pytest.raises(GitOperationError) as exc_info:
            service.create("ghost", target, remote="origin")

        assert not target.exists()
        assert exc_info.value.branch == "ghost"
        assert any(line.startswith("ERROR:") for line in exc_info.value.log_lines)

    def test_new_branch_from_base(self, git_repo):
        service = WorktreeService(git_repo.working_dir)
        target = Path(git_repo.working_dir).parent / "feature-new"

        service.create("feature/new", target, base_ref="origin/main")

        assert target.is_dir()
        assert "feature/new" in [head.name for head in git_repo.heads]
        assert service.has_worktree_for_branch("feature/new")

    def test_local_only_branch(self, git_repo):
        git_repo.git.branch("scratch")
        service = WorktreeService(git_repo.working_dir)
        target = Path(git_repo.working_dir).parent / "scratch"

        log = service.create("scratch", target)

        assert target.is_dir()
        assert any(line == f"$ git worktree add {target} scratch" for line in log)


class TestWorktreeListAndRemove:
    """Test listing and removal."""

    def test_list_contains_main(self, git_repo):
        service = WorktreeService(git_repo.working_dir)
        worktrees = service.list()

        assert len(worktrees) == 1
        assert worktrees[0].is_main
        assert worktrees[0].branch_name == "main"
        assert service.worktree_branches() == {"main"}

    def test_remove(self, git_repo):
        service = WorktreeService(git_repo.working_dir)
        target = Path(git_repo.working_dir).parent / "temp-branch"
        service.create("temp-branch", target, base_ref="main")

        service.remove(target)

        assert not target.exists()
        assert not service.has_worktree_for_branch("temp-branch")
        assert service.get_worktree("temp-branch") is None

    def test_remove_unknown_path(self, git_repo, temp_dir):
        service = WorktreeService(git_repo.working_dir)
        with pytest.raises(GitOperationError):
            service.remove(temp_dir / "not-a-worktree")

    def test_prune_after_manual_delete(self, git_repo):
        import shutil

        service = WorktreeService(git_repo.working_dir)
        target = Path(git_repo.working_dir).parent / "gone"
        service.create("gone", target, base_ref="main")
        shutil.rmtree(target)

        assert service.get_worktree("gone").is_orphaned
        service.prune()
        assert not service.has_worktree_for_branch("gone")
