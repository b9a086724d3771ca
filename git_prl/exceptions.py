"""Custom exceptions for git-prl"""

from typing import Optional


class GitPrlError(Exception):
    """Base exception for all git-prl errors."""

    stage = "git-prl"


class GitOperationError(GitPrlError):
    """Exception raised for errors in Git operations."""

    stage = "git"

    def __init__(self, operation: str, branch: Optional[str] = None, message: Optional[str] = None):
        self.operation = operation
        self.branch = branch
        self.message = message

        error_msg = f"Git operation '{operation}' failed"
        if branch:
            error_msg += f" for branch '{branch}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class ContextError(GitPrlError):
    """Raised when the invocation context cannot be used (no repo, wrong branch)."""

    stage = "validate-context"


class DetachedHeadError(ContextError):
    """Exception raised when repository is in detached HEAD state."""

    def __init__(self):
        super().__init__("Could not determine current branch. Are you in a detached HEAD state?")


class OrphanedBranchError(ContextError):
    """A managed branch exists but its worktree directory is gone."""

    def __init__(self, branch: str, expected_path: str):
        self.branch = branch
        self.expected_path = expected_path
        super().__init__(
            f"Worktree for branch {branch} was deleted, moved, or renamed. "
            f"The branch exists but the worktree directory is missing ({expected_path})."
        )


class WorktreeLookupError(ContextError):
    """The worktree location for a branch exists but is not usable."""

    def __init__(self, branch: str, path: str):
        self.branch = branch
        self.path = path
        super().__init__(
            f"Could not locate the worktree for branch {branch}: {path} is not a directory. "
            "The worktree may have been manually modified."
        )


class ValidationError(GitPrlError):
    """Raised before any mutation when the requested operation is invalid."""

    stage = "resolve-name"


class NameCollisionError(ValidationError):
    """An explicitly requested worktree name is already taken."""

    def __init__(self, name: str, path: str):
        self.name = name
        self.path = path
        super().__init__(
            f"Worktree directory '{path}' already exists. Choose a different name."
        )


class AgentNotFoundError(ValidationError):
    """The agent executable cannot be found on PATH."""

    stage = "start"

    def __init__(self, agent: str):
        self.agent = agent
        super().__init__(
            f"{agent} is not a command that can launch an agent. Is it installed and in your PATH?"
        )


class CreationFailure(GitPrlError):
    """Worktree creation failed; partial state has been rolled back."""

    stage = "create"


class InterruptedCreation(CreationFailure):
    """Worktree creation was interrupted by a signal; partial state has been rolled back."""

    def __init__(self, signum: int, branch: str):
        self.signum = signum
        self.branch = branch
        super().__init__(
            f"Worktree creation for {branch} interrupted (signal {signum}); partial state cleaned."
        )


class MergeFailure(GitPrlError):
    """The merge step failed. Git's own report is carried verbatim."""

    stage = "merge"

    def __init__(self, branch: str, base_branch: str, output: str):
        self.branch = branch
        self.base_branch = base_branch
        self.output = output
        message = (
            f"Merging {branch} into {base_branch} encountered conflicts or failed. "
            "Resolve them and rerun `git prl apply`."
        )
        if output:
            message += f"\n{output}"
        super().__init__(message)
