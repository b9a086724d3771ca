"""Merges an agent branch back into the base branch.

The protocol is linear:

    ValidateContext -> CheckRemote -> [SyncBase] -> Merge -> [Cleanup] -> Done

Any stage may fail, which aborts the run with an exception naming the
stage. Nothing is retried and nothing a failed merge leaves behind is
discarded; the user resolves it and runs apply again from the start.
All git commands run against the repository root, never the process's
current directory.
"""

from functools import partial
from pathlib import Path
from typing import Callable, Optional, Tuple

from rich.console import Console

from git_prl.config import Config
from git_prl.exceptions import (
    ContextError,
    DetachedHeadError,
    GitOperationError,
    GitPrlError,
    MergeFailure,
    OrphanedBranchError,
    WorktreeLookupError,
)
from git_prl.logging_config import get_logger
from git_prl.models.apply import ApplyResult, ApplyStage, RemoteStatus
from git_prl.models.worktree import RemovalOutcome, RepoContext, WorktreeDescriptor
from git_prl.services.git import GitOperations, WorktreeService
from git_prl.services.lifecycle import WorktreeLifecycle
from git_prl.utils import prompt

console = Console()
logger = get_logger(__name__)

SyncDecider = Callable[[RemoteStatus], bool]


class ApplyOrchestrator:
    """Drives the apply state machine for one agent branch."""

    def __init__(
        self,
        config: Optional[Config] = None,
        lifecycle: Optional[WorktreeLifecycle] = None,
        confirm: Optional[Callable[[str], bool]] = None,
        interactive: Optional[bool] = None,
    ):
        """Initialize the orchestrator.

        Args:
            config: Configuration; defaults to Config()
            lifecycle: Used to remove the worktree during cleanup
            confirm: Yes/no prompt; defaults to a terminal prompt
            interactive: Force interactive mode on or off; detected from the terminal when None
        """
        self.config = config or Config()
        self.lifecycle = lifecycle or WorktreeLifecycle(self.config)
        self.resolver = self.lifecycle.resolver
        self.confirm = confirm or prompt.confirm
        self.interactive = interactive

    def _is_interactive(self) -> bool:
        if self.interactive is None:
            return prompt.is_interactive()
        return self.interactive

    def run(
        self,
        ctx: RepoContext,
        current_branch: Optional[str],
        auto_cleanup: Optional[bool] = None,
        sync_decider: Optional[SyncDecider] = None,
    ) -> ApplyResult:
        """Apply ``current_branch`` onto the base branch of ``ctx``.

        Args:
            ctx: Repository root and base branch
            current_branch: Branch checked out in the worktree apply was invoked from
                (None for a detached HEAD)
            auto_cleanup: Remove the worktree without asking; defaults to config.auto_cleanup
            sync_decider: Called when the base branch is behind its upstream; returns
                whether to update it first. Defaults to asking in an interactive session.

        Raises:
            ContextError: The invocation context cannot be applied.
            MergeFailure: The merge failed; the repository is left as git left it.
        """
        if auto_cleanup is None:
            auto_cleanup = self.config.auto_cleanup
        if sync_decider is None:
            sync_decider = partial(self._ask_to_sync, ctx)

        descriptor = self.validate_context(ctx, current_branch)
        result = ApplyResult(descriptor=descriptor)

        try:
            self._enter(result, ApplyStage.CHECK_REMOTE)
            result.remote = self.check_remote(ctx)

            if result.remote.base_is_behind and sync_decider(result.remote):
                self._enter(result, ApplyStage.SYNC_BASE)
                result.base_synced = self.sync_base(ctx, result.remote)

            self._enter(result, ApplyStage.MERGE)
            result.merge_commit = self.merge(ctx, descriptor)

            self._enter(result, ApplyStage.CLEANUP)
            result.removal = self.cleanup(descriptor, auto_cleanup)
        except GitPrlError:
            logger.debug(f"Apply failed during {result.stage.value}")
            result.stage = ApplyStage.FAILED
            raise

        self._enter(result, ApplyStage.DONE)
        return result

    @staticmethod
    def _enter(result: ApplyResult, stage: ApplyStage) -> None:
        logger.debug(f"Apply {result.descriptor.branch_name}: {result.stage.value} -> {stage.value}")
        result.stage = stage

    def validate_context(self, ctx: RepoContext, current_branch: Optional[str]) -> WorktreeDescriptor:
        """Check that ``current_branch`` is a managed agent branch and locate its worktree.

        Raises:
            DetachedHeadError: No branch is checked out.
            ContextError: Already on the base branch, or the branch is not managed.
            OrphanedBranchError: The branch exists but its worktree directory is gone.
            WorktreeLookupError: The worktree location is not a directory.
        """
        if current_branch is None:
            raise DetachedHeadError()

        if current_branch == ctx.base_branch:
            raise ContextError(
                f"You're already on {ctx.base_branch}. Nothing to apply. "
                "Run `git prl apply` from a prl worktree branch."
            )

        if not self.resolver.is_managed_branch(current_branch):
            raise ContextError(
                "`git prl apply` must be run from an active prl worktree branch. "
                f"Current branch: {current_branch}"
            )

        return self.locate(ctx, current_branch)

    def locate(self, ctx: RepoContext, branch_name: str) -> WorktreeDescriptor:
        """Find the managed worktree that belongs to ``branch_name``.

        Git's worktree registry is consulted first so that worktrees created
        under an explicit name (whose directory does not match the branch)
        are found. Otherwise the directory is derived from the branch name.
        """
        container = self.resolver.container_path(ctx)
        registered = WorktreeService(ctx.root).find_by_branch(branch_name)
        if registered is not None and not registered.is_orphaned:
            registered_path = Path(registered.path).resolve()
            if registered_path.parent == container.resolve():
                return self.resolver.describe(ctx, registered_path.name, branch_name)

        expected = self.resolver.describe(ctx, self.resolver.worktree_name_for(branch_name), branch_name)
        if not expected.worktree_path.exists():
            raise OrphanedBranchError(branch_name, str(expected.worktree_path))
        if not expected.worktree_path.is_dir():
            raise WorktreeLookupError(branch_name, str(expected.worktree_path))
        return expected

    def check_remote(self, ctx: RepoContext) -> RemoteStatus:
        """Report how far the base branch is behind its upstream.

        Advisory only: problems talking to the remote are logged and reported
        as "not behind".
        """
        git_ops = GitOperations(ctx.root)
        upstream = git_ops.upstream_of(ctx.base_branch)
        if not upstream:
            logger.debug(f"{ctx.base_branch} has no upstream; skipping remote check")
            return RemoteStatus()

        try:
            git_ops.fetch(quiet=True)
            behind = git_ops.count_commits(ctx.base_branch, upstream)
        except GitOperationError as e:
            logger.debug(f"Remote check failed: {e}")
            return RemoteStatus(upstream=upstream)

        if behind:
            console.print(
                f"[yellow]Local {ctx.base_branch} is behind {upstream} by {behind} commit(s).[/yellow]"
            )
        return RemoteStatus(upstream=upstream, behind_count=behind)

    def _ask_to_sync(self, ctx: RepoContext, remote: RemoteStatus) -> bool:
        if not self._is_interactive():
            return False
        return self.confirm(
            f"Local {ctx.base_branch} is behind {remote.upstream or 'remote'}. "
            f"Fetch and update {ctx.base_branch} before merging?"
        )

    def _sync_source(self, ctx: RepoContext, remote: Optional[RemoteStatus]) -> Tuple[str, str]:
        """Remote name and branch on it that the base branch is updated from."""
        if remote is not None and remote.upstream and "/" in remote.upstream:
            remote_name, remote_branch = remote.upstream.split("/", 1)
            return remote_name, remote_branch
        return self.config.remote, ctx.base_branch

    def sync_base(self, ctx: RepoContext, remote: Optional[RemoteStatus] = None) -> bool:
        """Bring the base branch up to date with the remote.

        The upstream found by the remote check is used when there is one;
        otherwise the configured remote's branch of the same name.

        Failures are reported as warnings and never abort the apply. A merge
        that stops on conflicts is aborted, and the checkout the root working
        tree had before this stage is restored whether or not the update
        succeeded.

        Returns:
            True if the base branch was updated.
        """
        git_ops = GitOperations(ctx.root)
        remote_name, remote_branch = self._sync_source(ctx, remote)
        original = git_ops.current_branch() or git_ops.head_commit()

        synced = False
        merging = False
        try:
            git_ops.fetch(remote_name, remote_branch)
            git_ops.checkout(ctx.base_branch)
            merging = True
            git_ops.merge(f"{remote_name}/{remote_branch}")
            synced = True
            console.print(f"Updated local {ctx.base_branch} from {remote_name}/{remote_branch}.")
        except GitOperationError as e:
            logger.warning(
                f"Failed to update {ctx.base_branch} from remote, continuing with merge anyway: {e}"
            )
            if merging:
                aborted, error = git_ops.abort_merge()
                if not aborted:
                    logger.debug(f"Nothing to abort after failed update of {ctx.base_branch}: {error}")
        finally:
            if original != ctx.base_branch:
                try:
                    git_ops.checkout(original)
                except GitOperationError as e:
                    logger.warning(f"Could not return to {original}: {e}")
        return synced

    def merge(self, ctx: RepoContext, descriptor: WorktreeDescriptor) -> str:
        """Merge the agent branch into the base branch, always creating a merge commit.

        Returns:
            SHA of the base branch after the merge.

        Raises:
            MergeFailure: Git's report is carried unmodified; conflict state is left in place.
        """
        git_ops = GitOperations(ctx.root)
        try:
            git_ops.checkout(ctx.base_branch)
            merge_commit = git_ops.merge(descriptor.branch_name, no_ff=True)
        except GitOperationError as e:
            raise MergeFailure(descriptor.branch_name, ctx.base_branch, e.message or str(e)) from e

        console.print(f"[green]Merged branch {descriptor.branch_name} into {ctx.base_branch}.[/green]")
        return merge_commit

    def cleanup(self, descriptor: WorktreeDescriptor, auto_cleanup: bool) -> Optional[RemovalOutcome]:
        """Remove the merged worktree when requested or confirmed.

        Returns:
            The removal outcome, or None if the worktree was kept.
        """
        if auto_cleanup:
            return self._remove(descriptor)

        if self._is_interactive():
            if self.confirm(
                f"Merge successful. Delete worktree {descriptor.branch_name} and its branch?"
            ):
                return self._remove(descriptor)
            console.print("You can run `git prl prune` later to clean up this worktree.")
            return None

        console.print(
            f"Worktree {descriptor.branch_name} remains at {descriptor.worktree_path}. "
            "Run `git prl prune` when ready."
        )
        return None

    def _remove(self, descriptor: WorktreeDescriptor) -> RemovalOutcome:
        outcome = self.lifecycle.remove(descriptor)
        if outcome.fully_removed:
            console.print("Worktree removed.")
        else:
            console.print(
                f"[yellow]Could not fully remove {descriptor.branch_name}; "
                "run `git prl prune` to retry.[/yellow]"
            )
            for error in outcome.errors:
                logger.warning(error)
        return outcome
