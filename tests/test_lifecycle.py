"""Tests for worktree creation and removal"""
import os
import shutil
import signal
import pytest
from unittest.mock import patch

from git_prl.exceptions import CreationFailure, GitOperationError, InterruptedCreation
from git_prl.services.git import GitOperations, WorktreeService


def branch_names(repo):
    return {head.name for head in repo.heads}


def registered_paths(root):
    return {os.path.realpath(info.path) for info in WorktreeService(root).get_worktree_info()}


class TestCreate:
    """Test worktree creation."""

    def test_create_makes_directory_and_branch(self, ctx, lifecycle, git_repo):
        """Test that both the directory and the branch come into existence."""
        descriptor = lifecycle.create(ctx, "writer", "prl/writer", agent="writer")

        assert descriptor.worktree_path == ctx.root / ".prl-worktrees" / "writer"
        assert descriptor.worktree_path.is_dir()
        assert "prl/writer" in branch_names(git_repo)
        assert str(descriptor.worktree_path) in registered_paths(ctx.root)
        assert GitOperations(ctx.root).current_branch(descriptor.worktree_path) == "prl/writer"
        assert descriptor.agent == "writer"

    def test_create_starts_from_base_ref(self, ctx, lifecycle, git_repo):
        """Test that the new branch points at the requested ref."""
        descriptor = lifecycle.create(ctx, "writer", "prl/writer")

        assert git_repo.heads["prl/writer"].commit == git_repo.heads["main"].commit
        assert (descriptor.worktree_path / "README.md").exists()

    def test_create_restores_signal_handlers(self, ctx, lifecycle):
        """Test that cancellation handlers are uninstalled after success."""
        before = signal.getsignal(signal.SIGTERM)

        lifecycle.create(ctx, "writer", "prl/writer")

        assert signal.getsignal(signal.SIGTERM) == before

    def test_invalid_ref_rolls_back(self, ctx, lifecycle, git_repo):
        """Test that a failed creation leaves neither directory nor branch."""
        with pytest.raises(CreationFailure) as exc_info:
            lifecycle.create(ctx, "writer", "prl/writer", base_ref="no-such-ref")

        assert not isinstance(exc_info.value, InterruptedCreation)
        assert isinstance(exc_info.value.__cause__, GitOperationError)
        assert exc_info.value.stage == "create"
        assert not (ctx.root / ".prl-worktrees" / "writer").exists()
        assert "prl/writer" not in branch_names(git_repo)

    def test_failure_keeps_preexisting_branch(self, ctx, lifecycle, git_repo):
        """Test that rollback never deletes a branch it did not create."""
        git_repo.git.branch("prl/writer")

        with pytest.raises(CreationFailure):
            lifecycle.create(ctx, "writer", "prl/writer")

        assert "prl/writer" in branch_names(git_repo)
        assert not (ctx.root / ".prl-worktrees" / "writer").exists()


class TestInterruptedCreate:
    """Test cancellation during worktree creation."""

    def test_signal_after_creation_removes_both(self, ctx, lifecycle, git_repo):
        """Test an interrupt observed once git already created everything."""
        real_create = GitOperations.create_worktree

        def create_then_interrupt(self, *args, **kwargs):
            real_create(self, *args, **kwargs)
            os.kill(os.getpid(), signal.SIGTERM)

        before = signal.getsignal(signal.SIGTERM)
        with patch.object(GitOperations, "create_worktree", autospec=True,
                          side_effect=create_then_interrupt):
            with pytest.raises(InterruptedCreation) as exc_info:
                lifecycle.create(ctx, "writer", "prl/writer")

        assert exc_info.value.signum == signal.SIGTERM
        assert not (ctx.root / ".prl-worktrees" / "writer").exists()
        assert "prl/writer" not in branch_names(git_repo)
        assert str(ctx.root / ".prl-worktrees" / "writer") not in registered_paths(ctx.root)
        assert signal.getsignal(signal.SIGTERM) == before

    def test_signal_before_creation_leaves_nothing(self, ctx, lifecycle, git_repo):
        """Test an interrupt that arrives before git created anything."""
        def interrupt_then_fail(self, worktree_path, branch_name, base_ref="HEAD"):
            os.kill(os.getpid(), signal.SIGINT)
            raise GitOperationError("worktree add", branch_name, "killed")

        with patch.object(GitOperations, "create_worktree", autospec=True,
                          side_effect=interrupt_then_fail):
            with pytest.raises(InterruptedCreation) as exc_info:
                lifecycle.create(ctx, "writer", "prl/writer")

        assert exc_info.value.signum == signal.SIGINT
        assert not (ctx.root / ".prl-worktrees" / "writer").exists()
        assert "prl/writer" not in branch_names(git_repo)

    def test_never_exactly_one_resource_left(self, ctx, lifecycle, git_repo):
        """Test that directory and branch are always both present or both absent."""
        real_create = GitOperations.create_worktree

        def create_then_interrupt(self, *args, **kwargs):
            real_create(self, *args, **kwargs)
            os.kill(os.getpid(), signal.SIGINT)

        with patch.object(GitOperations, "create_worktree", autospec=True,
                          side_effect=create_then_interrupt):
            with pytest.raises(InterruptedCreation):
                lifecycle.create(ctx, "writer", "prl/writer")

        directory_exists = (ctx.root / ".prl-worktrees" / "writer").exists()
        branch_exists = "prl/writer" in branch_names(git_repo)
        assert directory_exists == branch_exists


class TestRemove:
    """Test worktree removal."""

    def test_remove_deletes_worktree_and_branch(self, agent_worktree, lifecycle, git_repo):
        """Test a full removal."""
        outcome = lifecycle.remove(agent_worktree)

        assert outcome.worktree_removed
        assert outcome.branch_removed
        assert outcome.fully_removed
        assert outcome.errors == []
        assert not agent_worktree.worktree_path.exists()
        assert "prl/writer" not in branch_names(git_repo)

    def test_remove_discards_uncommitted_work(self, agent_worktree, lifecycle, git_repo):
        """Test that removal is forced."""
        (agent_worktree.worktree_path / "notes.txt").write_text("draft\n")
        (agent_worktree.worktree_path / "README.md").write_text("changed\n")

        outcome = lifecycle.remove(agent_worktree)

        assert outcome.fully_removed
        assert not agent_worktree.worktree_path.exists()

    def test_remove_deletes_unmerged_branch(self, agent_worktree, lifecycle, git_repo, make_commit):
        """Test that the branch is deleted even when it has unmerged commits."""
        make_commit(agent_worktree.worktree_path, "feature.txt", "work\n")

        outcome = lifecycle.remove(agent_worktree)

        assert outcome.branch_removed
        assert "prl/writer" not in branch_names(git_repo)

    def test_remove_twice_is_harmless(self, agent_worktree, lifecycle):
        """Test that already-absent resources count as removed."""
        lifecycle.remove(agent_worktree)
        outcome = lifecycle.remove(agent_worktree)

        assert outcome.fully_removed
        assert outcome.errors == []

    def test_remove_after_directory_deleted_by_hand(self, agent_worktree, lifecycle, git_repo, ctx):
        """Test that a stale registration does not keep the branch alive."""
        shutil.rmtree(agent_worktree.worktree_path)

        outcome = lifecycle.remove(agent_worktree)

        assert outcome.fully_removed
        assert "prl/writer" not in branch_names(git_repo)
        assert str(agent_worktree.worktree_path) not in registered_paths(ctx.root)

    def test_remove_reports_leftover_branch(self, agent_worktree, lifecycle):
        """Test a partial removal is reported, not raised."""
        with patch.object(GitOperations, "delete_branch", return_value=(False, "branch is locked")):
            outcome = lifecycle.remove(agent_worktree)

        assert outcome.worktree_removed
        assert not outcome.branch_removed
        assert not outcome.fully_removed
        assert outcome.errors == ["branch is locked"]

    def test_remove_never_raises(self, agent_worktree, lifecycle):
        """Test that unexpected errors become part of the outcome."""
        with patch.object(GitOperations, "remove_worktree", side_effect=OSError("permission denied")):
            outcome = lifecycle.remove(agent_worktree)

        assert not outcome.branch_removed
        assert not outcome.worktree_removed
        assert "permission denied" in outcome.errors
