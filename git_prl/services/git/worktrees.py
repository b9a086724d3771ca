"""Worktree registry queries for git-prl."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import git

from git_prl.logging_config import get_logger
from git_prl.models.worktree import WorktreeInfo

logger = get_logger(__name__)


def _same_path(a: Union[str, Path], b: Union[str, Path]) -> bool:
    return os.path.realpath(str(a)) == os.path.realpath(str(b))


class WorktreeService:
    """Reads git's own worktree registry."""

    def __init__(self, repo_path: Union[str, Path]):
        """Initialize the worktree service.

        Args:
            repo_path: Path to the git repository
        """
        self.repo_path = str(repo_path)

    def _get_repo(self) -> git.Repo:
        return git.Repo(self.repo_path)

    @staticmethod
    def _to_info(entry: Dict[str, Any]) -> WorktreeInfo:
        path = entry.get("path", "")
        return WorktreeInfo(
            path=path,
            branch_name=entry.get("branch", ""),
            commit_sha=entry.get("HEAD", ""),
            is_main=entry.get("is_main", False),
            is_orphaned=not os.path.exists(path) if path else True,
        )

    def get_worktree_info(self) -> List[WorktreeInfo]:
        """Get information about all registered worktrees.

        Returns:
            List of WorktreeInfo objects; empty if git cannot list worktrees
        """
        try:
            output = self._get_repo().git.worktree("list", "--porcelain")
        except git.exc.GitCommandError as e:
            logger.debug(f"Could not list worktrees: {e}")
            return []

        # Porcelain format, blank line between entries:
        # worktree /path/to/worktree
        # HEAD commit_sha
        # branch refs/heads/branch-name   (or "detached")
        worktree_list: List[WorktreeInfo] = []
        current: Dict[str, Any] = {}
        for line in output.split("\n") + [""]:
            line = line.strip()

            if not line:
                if current.get("path"):
                    worktree_list.append(self._to_info(current))
                current = {}
                continue

            if line.startswith("worktree "):
                current["path"] = line.split(" ", 1)[1]
                # First worktree in list is always the main one
                current["is_main"] = not worktree_list
            elif line.startswith("HEAD "):
                current["HEAD"] = line.split(" ", 1)[1]
            elif line.startswith("branch "):
                branch_ref = line.split(" ", 1)[1]
                if branch_ref.startswith("refs/heads/"):
                    current["branch"] = branch_ref[len("refs/heads/"):]
                else:
                    current["branch"] = ""
            elif line.startswith("detached"):
                current["branch"] = ""

        logger.debug(f"Found {len(worktree_list)} worktrees")
        return worktree_list

    def find_by_branch(self, branch_name: str) -> Optional[WorktreeInfo]:
        """Linked worktree that has ``branch_name`` checked out, if any."""
        for info in self.get_worktree_info():
            if not info.is_main and info.branch_name == branch_name:
                return info
        return None

    def find_by_path(self, path: Union[str, Path]) -> Optional[WorktreeInfo]:
        """Registered worktree located at ``path``, if any."""
        for info in self.get_worktree_info():
            if _same_path(info.path, path):
                return info
        return None
