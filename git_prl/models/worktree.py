"""Worktree data models."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from git_prl.constants import DEFAULT_BASE_BRANCH


@dataclass
class RepoContext:
    """Repository root and the base branch agent work is merged into.

    The root is always the main working tree, even when resolved from
    inside a secondary worktree.
    """

    root: Path
    base_branch: str = DEFAULT_BASE_BRANCH


@dataclass
class WorktreeDescriptor:
    """Identifies one managed worktree."""

    worktree_name: str
    branch_name: str
    worktree_path: Path
    root: Path
    agent: Optional[str] = None  # Unknown when reconstructed from a branch or directory

    def __str__(self) -> str:
        """String representation of worktree."""
        return f"{self.branch_name} @ {self.worktree_path}"


@dataclass
class PendingCreation:
    """What a single create call has brought into existence so far.

    Only lives for the duration of one WorktreeLifecycle.create call.
    """

    worktree_path: Path
    branch_name: str
    worktree_preexisting: bool = False
    branch_preexisting: bool = False
    worktree_created: bool = False
    branch_created: bool = False


@dataclass
class RemovalOutcome:
    """Per-resource result of removing a worktree and its branch."""

    worktree_removed: bool
    branch_removed: bool
    errors: List[str] = field(default_factory=list)

    @property
    def fully_removed(self) -> bool:
        return self.worktree_removed and self.branch_removed


@dataclass
class WorktreeInfo:
    """A worktree as registered with git (one entry of `git worktree list`)."""

    path: str
    branch_name: str  # Empty for detached HEAD
    commit_sha: str
    is_main: bool  # Is this the main working tree?
    is_orphaned: bool  # Directory missing?

    def __str__(self) -> str:
        """String representation of worktree."""
        status = "orphaned" if self.is_orphaned else "active"
        main_marker = " (main)" if self.is_main else ""
        return f"{self.branch_name} @ {self.path}{main_marker} [{status}]"
