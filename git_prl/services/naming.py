"""Worktree and branch name resolution.

Names are resolved by probing what already exists: a directory under the
managed container, or a branch under the managed prefix. Nothing is locked
between the probe and the creation that follows, so two concurrent
invocations can pick the same candidate; the loser's creation call fails
and is rolled back.
"""

import itertools
import re
from pathlib import Path
from typing import Optional, Tuple

from git_prl.config import Config
from git_prl.constants import FALLBACK_SEGMENT
from git_prl.exceptions import NameCollisionError
from git_prl.logging_config import get_logger
from git_prl.models.worktree import RepoContext, WorktreeDescriptor
from git_prl.services.git import GitOperations

logger = get_logger(__name__)

_DISALLOWED = re.compile(r"[^a-z0-9]+")


def sanitize(raw: Optional[str]) -> str:
    """Turn arbitrary text into a lowercase, hyphen-separated name segment.

    Runs of characters outside ``[a-z0-9]`` collapse to one hyphen, leading
    and trailing hyphens are dropped, and an empty result becomes ``"agent"``.
    """
    segment = _DISALLOWED.sub("-", (raw or "").lower()).strip("-")
    return segment or FALLBACK_SEGMENT


class NameResolver:
    """Computes unique worktree and branch names inside the managed namespace."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()

    @property
    def prefix(self) -> str:
        return self.config.branch_prefix

    def container_path(self, ctx: RepoContext) -> Path:
        """Directory that holds every managed worktree."""
        return Path(ctx.root) / self.config.container_dir

    def branch_for(self, worktree_name: str) -> str:
        """Default-path branch name for a worktree name."""
        return f"{self.prefix}/{worktree_name}"

    def is_managed_branch(self, branch_name: Optional[str]) -> bool:
        return bool(branch_name) and branch_name.startswith(f"{self.prefix}/")

    def worktree_name_for(self, branch_name: str) -> str:
        """Worktree name a managed branch maps to under the default formula."""
        return branch_name[len(self.prefix) + 1:]

    def describe(self, ctx: RepoContext, worktree_name: str, branch_name: str,
                 agent: Optional[str] = None) -> WorktreeDescriptor:
        """Build the descriptor for a name pair."""
        return WorktreeDescriptor(
            worktree_name=worktree_name,
            branch_name=branch_name,
            worktree_path=self.container_path(ctx) / worktree_name,
            root=Path(ctx.root),
            agent=agent,
        )

    def _directory_taken(self, ctx: RepoContext, name: str) -> bool:
        # The template entry is reserved even before it has been created
        return name == self.config.template_dir or (self.container_path(ctx) / name).exists()

    def resolve_default(self, ctx: RepoContext, agent: str) -> Tuple[str, str]:
        """Resolve a worktree/branch pair from the agent name.

        Tries ``<agent>``, then ``<agent>-1``, ``<agent>-2``, ... and returns the
        first candidate for which neither the directory nor the branch exists.

        Returns:
            Tuple of (worktree_name, branch_name)
        """
        git_ops = GitOperations(ctx.root)
        base = sanitize(agent)
        candidates = itertools.chain([base], (f"{base}-{n}" for n in itertools.count(1)))
        for candidate in candidates:
            branch_name = self.branch_for(candidate)
            if self._directory_taken(ctx, candidate) or git_ops.branch_exists(branch_name):
                logger.debug(f"Name {candidate} is taken")
                continue
            if candidate != base:
                logger.info(f"Worktree name conflict detected, using {candidate} instead of {base}")
            return candidate, branch_name

    def resolve_explicit(self, ctx: RepoContext, explicit_name: str, agent: str) -> Tuple[str, str]:
        """Resolve a pair for an explicitly requested worktree name.

        The worktree name is used as given (sanitized) and never incremented.
        The branch name comes from its own sequence keyed on the agent:
        ``<prefix>/<agent>-1``, ``<prefix>/<agent>-2``, ...

        Raises:
            NameCollisionError: If the worktree directory already exists.

        Returns:
            Tuple of (worktree_name, branch_name)
        """
        worktree_name = sanitize(explicit_name)
        if self._directory_taken(ctx, worktree_name):
            raise NameCollisionError(
                worktree_name, f"{self.config.container_dir}/{worktree_name}"
            )

        git_ops = GitOperations(ctx.root)
        agent_segment = sanitize(agent)
        for n in itertools.count(1):
            branch_name = f"{self.prefix}/{agent_segment}-{n}"
            if not git_ops.branch_exists(branch_name):
                if n > 1:
                    logger.info(
                        f"Branch name conflict detected, using {branch_name} "
                        f"instead of {self.prefix}/{agent_segment}-1"
                    )
                return worktree_name, branch_name
