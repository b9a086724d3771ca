"""Data models for git-prl."""

from .worktree import WorktreeDescriptor, WorktreeInfo, RepoContext, PendingCreation, RemovalOutcome
from .apply import ApplyStage, RemoteStatus, ApplyResult

__all__ = [
    "WorktreeDescriptor",
    "WorktreeInfo",
    "RepoContext",
    "PendingCreation",
    "RemovalOutcome",
    "ApplyStage",
    "RemoteStatus",
    "ApplyResult",
]
