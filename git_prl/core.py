"""Core functionality for git-prl"""

import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from rich.console import Console

from git_prl.config import Config, load_config
from git_prl.logging_config import get_logger
from git_prl.models.apply import ApplyResult
from git_prl.models.worktree import RemovalOutcome, RepoContext, WorktreeDescriptor
from git_prl.services import launcher, provisioning
from git_prl.services.apply_service import ApplyOrchestrator
from git_prl.services.display_service import DisplayService
from git_prl.services.git import GitOperations
from git_prl.services.lifecycle import WorktreeLifecycle
from git_prl.services.naming import NameResolver
from git_prl.services.prune_service import PruneEnumerator
from git_prl.utils import prompt

console = Console()
logger = get_logger(__name__)


class PrlManager:
    """Wires the worktree components together for one invocation."""

    def __init__(
        self,
        cwd: Union[str, Path, None] = None,
        config: Union[Config, Dict[str, Any], None] = None,
        confirm: Optional[Callable[[str], bool]] = None,
        interactive: Optional[bool] = None,
    ):
        """Initialize PrlManager.

        Args:
            cwd: Directory the command was invoked from; defaults to the process's
                current directory. Any worktree of the repository will do.
            config: Config object, or CLI overrides applied on top of the repository's
                config file
            confirm: Yes/no prompt; defaults to a terminal prompt
            interactive: Force interactive mode on or off; detected from the terminal when None

        Raises:
            ContextError: If ``cwd`` is not inside a git repository.
            ValueError: If the configuration is invalid.
        """
        self.cwd = Path(cwd) if cwd is not None else Path(os.getcwd())
        self.root = GitOperations.resolve_root(self.cwd)

        if isinstance(config, Config):
            self.config = config
        else:
            self.config = load_config(self.root, config)

        self.ctx = RepoContext(root=self.root, base_branch=self.config.base_branch)
        self.confirm = confirm or prompt.confirm
        self.interactive = interactive

        self.resolver = NameResolver(self.config)
        self.lifecycle = WorktreeLifecycle(self.config, self.resolver)
        logger.debug(f"Repository root: {self.root}, base branch: {self.ctx.base_branch}")

    def _is_interactive(self) -> bool:
        if self.interactive is None:
            return prompt.is_interactive()
        return self.interactive

    def start(
        self,
        agent: str,
        worktree_name: Optional[str] = None,
        agent_args: Sequence[str] = (),
    ) -> WorktreeDescriptor:
        """Create a worktree for ``agent``, run it there, and hand over a shell.

        Raises:
            AgentNotFoundError: If the agent is not on PATH (checked before any change).
            NameCollisionError: If ``worktree_name`` is already taken.
            CreationFailure: If the worktree could not be created.
        """
        launcher.ensure_agent_available(agent)

        if worktree_name:
            name, branch_name = self.resolver.resolve_explicit(self.ctx, worktree_name, agent)
        else:
            name, branch_name = self.resolver.resolve_default(self.ctx, agent)
        logger.info(f"Resolved worktree {name} on branch {branch_name} for agent {agent}")

        template_path = None
        if self.config.copy_template:
            template_path = provisioning.ensure_template(self.ctx, self.config)

        descriptor = self.lifecycle.create(self.ctx, name, branch_name, agent=agent)

        if template_path is not None:
            provisioning.copy_template(template_path, descriptor.worktree_path)
        if self.config.install_dependencies:
            provisioning.install_dependencies(descriptor)

        console.print(f"Worktree {descriptor.worktree_name} is ready at {descriptor.worktree_path}.")

        try:
            launcher.run_agent(descriptor, agent, agent_args)
            if self.config.open_shell:
                launcher.open_shell(descriptor, self._is_interactive())
        finally:
            self._offer_removal(descriptor)
        return descriptor

    def _offer_removal(self, descriptor: WorktreeDescriptor) -> Optional[RemovalOutcome]:
        if not self._is_interactive():
            console.print(
                f"Worktree {descriptor.branch_name} remains at {descriptor.worktree_path}. "
                "Run `git prl prune` when ready."
            )
            return None

        if not self.confirm(f"Delete branch {descriptor.branch_name} and its worktree?"):
            console.print("You can run `git prl prune` later to clean up this worktree.")
            return None

        outcome = self.lifecycle.remove(descriptor)
        if outcome.fully_removed:
            console.print("Worktree removed.")
        else:
            console.print(
                f"[yellow]Could not fully remove {descriptor.branch_name}; "
                "run `git prl prune` to retry.[/yellow]"
            )
        return outcome

    def apply(self, auto_cleanup: Optional[bool] = None) -> ApplyResult:
        """Merge the branch checked out at ``cwd`` into the base branch."""
        current_branch = GitOperations(self.root).current_branch(self.cwd)
        orchestrator = ApplyOrchestrator(
            self.config, self.lifecycle, confirm=self.confirm, interactive=self.interactive
        )
        return orchestrator.run(self.ctx, current_branch, auto_cleanup=auto_cleanup)

    def _enumerator(self) -> PruneEnumerator:
        return PruneEnumerator(
            self.config, self.lifecycle, confirm=self.confirm, interactive=self.interactive
        )

    def list_worktrees(self) -> List[WorktreeDescriptor]:
        """Render and return the managed worktrees."""
        descriptors = self._enumerator().list(self.ctx)
        DisplayService(verbose=self.config.verbose).display_worktree_table(descriptors)
        return descriptors

    def prune(self) -> List[RemovalOutcome]:
        """Offer every managed worktree for removal."""
        return self._enumerator().prune(self.ctx)
