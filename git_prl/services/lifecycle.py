"""Creation and removal of managed worktree/branch pairs."""

from pathlib import Path
from typing import Optional

import git

from git_prl.config import Config
from git_prl.exceptions import CreationFailure, GitOperationError, InterruptedCreation
from git_prl.logging_config import get_logger
from git_prl.models.worktree import (
    PendingCreation,
    RemovalOutcome,
    RepoContext,
    WorktreeDescriptor,
)
from git_prl.services.git import GitOperations
from git_prl.services.naming import NameResolver
from git_prl.services.transaction import RollbackTransaction

logger = get_logger(__name__)


class WorktreeLifecycle:
    """Materializes and discards managed worktrees.

    Creation is a single ``git worktree add -b`` call guarded by a
    RollbackTransaction: whatever that call left behind is undone if it
    fails or if SIGINT/SIGTERM arrives while it is pending. Removal never
    raises; it reports what it managed to remove.
    """

    def __init__(self, config: Optional[Config] = None, resolver: Optional[NameResolver] = None):
        self.config = config or Config()
        self.resolver = resolver or NameResolver(self.config)

    def create(
        self,
        ctx: RepoContext,
        worktree_name: str,
        branch_name: str,
        base_ref: Optional[str] = None,
        agent: Optional[str] = None,
    ) -> WorktreeDescriptor:
        """Create the worktree directory and its branch from ``base_ref``.

        Raises:
            InterruptedCreation: A cancellation signal arrived during creation.
            CreationFailure: Git failed to create the worktree.
        """
        descriptor = self.resolver.describe(ctx, worktree_name, branch_name, agent)
        self.resolver.container_path(ctx).mkdir(parents=True, exist_ok=True)

        git_ops = GitOperations(ctx.root)
        base_ref = base_ref or self.config.base_ref
        pending = PendingCreation(
            worktree_path=descriptor.worktree_path,
            branch_name=branch_name,
            worktree_preexisting=descriptor.worktree_path.exists(),
            branch_preexisting=git_ops.branch_exists(branch_name),
        )

        logger.info(f"Creating worktree {descriptor.worktree_path} on {branch_name} from {base_ref}")
        with RollbackTransaction() as txn:
            failure: Optional[GitOperationError] = None
            try:
                git_ops.create_worktree(descriptor.worktree_path, branch_name, base_ref)
            except GitOperationError as e:
                failure = e

            if failure is None and not txn.interrupted:
                return descriptor

            self._record_created(git_ops, pending, txn)
            if txn.interrupted:
                logger.warning("Worktree creation interrupted. Cleaning up partial state...")
                self._report_rollback(txn.rollback())
                raise InterruptedCreation(txn.interrupted_by, branch_name)

            self._report_rollback(txn.rollback())
            raise CreationFailure(
                f"Failed to create worktree {descriptor.worktree_path}: {failure.message}"
            ) from failure

    def _record_created(self, git_ops: GitOperations, pending: PendingCreation,
                        txn: RollbackTransaction) -> None:
        """Register undo steps for what the creation call actually produced.

        The branch is recorded first so that unwinding removes the worktree
        (which has the branch checked out) before deleting the branch.
        """
        pending.branch_created = (
            not pending.branch_preexisting and git_ops.branch_exists(pending.branch_name)
        )
        if pending.branch_created:
            txn.record(
                f"branch {pending.branch_name}",
                lambda: git_ops.delete_branch(pending.branch_name)[1],
            )

        pending.worktree_created = (
            not pending.worktree_preexisting and pending.worktree_path.exists()
        )
        if pending.worktree_created:
            txn.record(
                f"worktree {pending.worktree_path}",
                lambda: self._discard_worktree(git_ops, pending.worktree_path),
            )

    @staticmethod
    def _discard_worktree(git_ops: GitOperations, worktree_path: Path) -> Optional[str]:
        removed, error = git_ops.remove_worktree(worktree_path)
        if not removed and not worktree_path.exists():
            # Directory already gone; drop the stale registration
            git_ops.prune_worktrees()
            return None
        return error

    @staticmethod
    def _report_rollback(failures) -> None:
        if failures:
            for failure in failures:
                logger.warning(f"Rollback step failed: {failure}")
        else:
            logger.warning("Cleaned up partial state.")

    def remove(self, descriptor: WorktreeDescriptor) -> RemovalOutcome:
        """Force-remove the worktree, then force-delete its branch.

        Each resource is attempted independently and already-absent resources
        count as removed. Never raises.
        """
        errors = []
        try:
            git_ops = GitOperations(descriptor.root)

            removed, error = git_ops.remove_worktree(descriptor.worktree_path)
            if not removed and not descriptor.worktree_path.exists():
                # Directory deleted by hand: the registration would keep the branch checked out
                git_ops.prune_worktrees()
            worktree_removed = not descriptor.worktree_path.exists()
            if not worktree_removed:
                errors.append(error)

            deleted, error = git_ops.delete_branch(descriptor.branch_name)
            branch_removed = deleted or not git_ops.branch_exists(descriptor.branch_name)
            if not branch_removed:
                errors.append(error)
        except (git.exc.GitError, OSError) as e:
            logger.debug(f"Removal of {descriptor} aborted: {e}")
            errors.append(str(e))
            return RemovalOutcome(
                worktree_removed=not descriptor.worktree_path.exists(),
                branch_removed=False,
                errors=errors,
            )

        outcome = RemovalOutcome(worktree_removed, branch_removed, errors)
        logger.info(
            f"Removed {descriptor}: worktree={outcome.worktree_removed} branch={outcome.branch_removed}"
        )
        return outcome
