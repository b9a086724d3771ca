"""Models for the apply (merge) protocol."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from git_prl.models.worktree import RemovalOutcome, WorktreeDescriptor


class ApplyStage(Enum):
    """Stages of the apply state machine."""
    VALIDATE_CONTEXT = "validate-context"
    CHECK_REMOTE = "check-remote"
    SYNC_BASE = "sync-base"
    MERGE = "merge"
    CLEANUP = "cleanup"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RemoteStatus:
    """Advisory result of comparing the base branch with its upstream."""
    upstream: Optional[str] = None
    behind_count: int = 0

    @property
    def base_is_behind(self) -> bool:
        return self.behind_count > 0


@dataclass
class ApplyResult:
    """Outcome of one apply run."""
    descriptor: WorktreeDescriptor
    stage: ApplyStage = ApplyStage.VALIDATE_CONTEXT
    remote: Optional[RemoteStatus] = None
    base_synced: Optional[bool] = None  # None = sync not attempted
    merge_commit: Optional[str] = None
    removal: Optional[RemovalOutcome] = None  # None = worktree kept
