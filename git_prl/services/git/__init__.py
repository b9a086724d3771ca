"""Git-related services for git-prl."""

from .operations import GitOperations, command_output
from .worktrees import WorktreeService

__all__ = [
    "GitOperations",
    "WorktreeService",
    "command_output",
]
