"""Enumeration and interactive removal of managed worktrees."""

from typing import Callable, List, Optional

from rich.console import Console

from git_prl.config import Config
from git_prl.logging_config import get_logger
from git_prl.models.worktree import RemovalOutcome, RepoContext, WorktreeDescriptor
from git_prl.services.git import GitOperations, WorktreeService
from git_prl.services.lifecycle import WorktreeLifecycle
from git_prl.utils import prompt

console = Console()
logger = get_logger(__name__)


class PruneEnumerator:
    """Lists managed worktrees and removes them one confirmation at a time.

    Removal is always forced, so the only safeguard is the per-item prompt.
    Uncommitted changes are detected and mentioned in that prompt, never
    used to decide on the operator's behalf.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        lifecycle: Optional[WorktreeLifecycle] = None,
        confirm: Optional[Callable[[str], bool]] = None,
        interactive: Optional[bool] = None,
    ):
        self.config = config or Config()
        self.lifecycle = lifecycle or WorktreeLifecycle(self.config)
        self.resolver = self.lifecycle.resolver
        self.confirm = confirm or prompt.confirm
        self.interactive = interactive

    def _is_interactive(self) -> bool:
        if self.interactive is None:
            return prompt.is_interactive()
        return self.interactive

    def list(self, ctx: RepoContext) -> List[WorktreeDescriptor]:
        """Every entry directly under the managed container except the template.

        Entries are not checked for being valid, linked worktrees; removal
        copes with stale ones. The branch is the one git reports checked out
        at that path, or the default-formula branch when git knows nothing
        about the directory.
        """
        container = self.resolver.container_path(ctx)
        if not container.is_dir():
            logger.debug(f"No managed container at {container}")
            return []

        worktree_service = WorktreeService(ctx.root)
        descriptors = []
        for entry in sorted(container.iterdir(), key=lambda p: p.name):
            if entry.name == self.config.template_dir:
                continue
            registered = worktree_service.find_by_path(entry)
            if registered is not None and registered.branch_name:
                branch_name = registered.branch_name
            else:
                branch_name = self.resolver.branch_for(entry.name)
            descriptors.append(self.resolver.describe(ctx, entry.name, branch_name))

        logger.debug(f"Found {len(descriptors)} managed worktrees")
        return descriptors

    def prune(self, ctx: RepoContext) -> List[RemovalOutcome]:
        """Offer each managed worktree for removal.

        Anything other than an affirmative answer skips the item, and a
        non-interactive session skips every item.

        Returns:
            Outcomes of the removals that were attempted.
        """
        descriptors = self.list(ctx)
        if not descriptors:
            console.print("No prl worktrees to prune.")
            return []

        interactive = self._is_interactive()
        if not interactive:
            logger.info("Not attached to a terminal; nothing will be removed")

        git_ops = GitOperations(ctx.root)
        outcomes = []
        for descriptor in descriptors:
            if not interactive:
                console.print(f"Skipping {descriptor.branch_name}.")
                continue

            question = f"Remove worktree {descriptor.branch_name} at {descriptor.worktree_path}"
            if git_ops.has_uncommitted_changes(descriptor.worktree_path):
                question += " (has uncommitted changes)"
            if not self.confirm(f"{question}?"):
                console.print(f"Skipping {descriptor.branch_name}.")
                continue

            outcome = self.lifecycle.remove(descriptor)
            outcomes.append(outcome)
            if outcome.fully_removed:
                console.print(f"Removed {descriptor.branch_name}.")
            else:
                console.print(f"[yellow]Partially removed {descriptor.branch_name}.[/yellow]")
                for error in outcome.errors:
                    logger.warning(error)
        return outcomes
