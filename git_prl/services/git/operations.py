"""Git operations service"""

import re
from pathlib import Path
from typing import List, Optional, Tuple, Union

import git

from git_prl.exceptions import ContextError, GitOperationError
from git_prl.logging_config import get_logger

logger = get_logger(__name__)

_WRAPPED_STREAM = re.compile(r"^\s*(?:stdout|stderr):\s*'(.*)'\s*$", re.DOTALL)

def command_output(error: git.exc.GitCommandError) -> str:
    """Return what git printed for a failed command, without GitPython's wrapping.

    Git reports merge conflicts on stdout and most other failures on stderr,
    so both streams are included.
    """
    parts = []
    for stream in (getattr(error, "stdout", ""), getattr(error, "stderr", "")):
        text = (stream or "").strip()
        match = _WRAPPED_STREAM.match(text)
        if match:
            text = match.group(1).strip()
        if text:
            parts.append(text)
    if not parts:
        status = getattr(error, "status", "unknown")
        return f"exit code {status}"
    return "\n".join(parts)

class GitOperations:
    """Version-control primitives for one repository.

    Every method runs against ``repo_path``; nothing here depends on the
    process's current directory.
    """

    def __init__(self, repo_path: Union[str, Path]):
        """Initialize the service.

        Args:
            repo_path: Path to a working tree of the repository
        """
        self.repo_path = str(repo_path)

    def _get_repo(self) -> git.Repo:
        """Get a fresh git.Repo instance.

        GitPython repos are lightweight - they don't clone, just open the existing repo.
        """
        return git.Repo(self.repo_path)

    @staticmethod
    def resolve_root(start: Union[str, Path]) -> Path:
        """Resolve the main working tree of the repository containing ``start``.

        Works from the main working tree, from any linked worktree, and from
        subdirectories of either.

        Raises:
            ContextError: If ``start`` is not inside a git repository.
        """
        try:
            repo = git.Repo(str(start), search_parent_directories=True)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise ContextError(
                "Not a git repository. Run this command from inside a git repo."
            ) from e

        try:
            if repo.working_tree_dir is None:
                raise ContextError("Bare repositories have no working tree to manage.")
            common_dir = Path(repo.git.rev_parse("--git-common-dir"))
            if not common_dir.is_absolute():
                common_dir = Path(repo.working_tree_dir) / common_dir
        except git.exc.GitCommandError as e:
            raise ContextError(f"Could not resolve repository root: {command_output(e)}") from e
        finally:
            repo.close()

        return common_dir.resolve().parent

    def current_branch(self, worktree_path: Optional[Union[str, Path]] = None) -> Optional[str]:
        """Name of the branch checked out in a working tree.

        Args:
            worktree_path: Working tree (or a directory inside one) to inspect.
                Defaults to ``repo_path``.

        Returns:
            The branch name, or None for a detached HEAD.
        """
        path = str(worktree_path) if worktree_path is not None else self.repo_path
        repo = git.Repo(path, search_parent_directories=True)
        try:
            return repo.active_branch.name
        except TypeError:
            # Detached HEAD state - no active branch
            return None
        finally:
            repo.close()

    def head_commit(self) -> str:
        """SHA of the commit checked out at ``repo_path``."""
        return self._get_repo().head.commit.hexsha

    def branch_exists(self, branch_name: str) -> bool:
        """Check if a local branch exists."""
        try:
            self._get_repo().git.show_ref("--verify", "--quiet", f"refs/heads/{branch_name}")
            return True
        except git.exc.GitCommandError:
            return False

    def create_worktree(self, worktree_path: Union[str, Path], branch_name: str, base_ref: str = "HEAD") -> None:
        """Create a worktree at ``worktree_path`` on a new branch started from ``base_ref``.

        Raises:
            GitOperationError: If git refuses (existing path or branch, bad ref, disk errors).
        """
        try:
            repo = self._get_repo()
            repo.git.worktree("add", "-b", branch_name, str(worktree_path), base_ref)
            logger.info(f"Created worktree {worktree_path} on branch {branch_name}")
        except git.exc.GitCommandError as e:
            output = command_output(e)
            logger.debug(f"git worktree add failed: {output}")
            raise GitOperationError("worktree add", branch_name, output) from e

    def remove_worktree(self, worktree_path: Union[str, Path]) -> Tuple[bool, Optional[str]]:
        """Forcibly remove a worktree.

        Returns:
            Tuple of (success, error_message). error_message is None on success.
        """
        try:
            self._get_repo().git.worktree("remove", "--force", str(worktree_path))
            logger.info(f"Removed worktree at {worktree_path}")
            return True, None
        except git.exc.GitCommandError as e:
            error_msg = f"git worktree remove failed: {command_output(e)}"
            logger.debug(f"Failed to remove worktree at {worktree_path}: {error_msg}")
            return False, error_msg

    def prune_worktrees(self) -> Tuple[bool, Optional[str]]:
        """Prune registrations of worktrees whose directories are gone.

        Returns:
            Tuple of (success, error_message). error_message is None on success.
        """
        try:
            self._get_repo().git.worktree("prune")
            logger.debug("Pruned orphaned worktree metadata")
            return True, None
        except git.exc.GitCommandError as e:
            error_msg = f"git worktree prune failed: {command_output(e)}"
            logger.debug(error_msg)
            return False, error_msg

    def delete_branch(self, branch_name: str) -> Tuple[bool, Optional[str]]:
        """Forcibly delete a local branch.

        Returns:
            Tuple of (success, error_message). error_message is None on success.
        """
        try:
            self._get_repo().git.branch("-D", branch_name)
            logger.info(f"Deleted branch {branch_name}")
            return True, None
        except git.exc.GitCommandError as e:
            error_msg = f"git branch -D failed: {command_output(e)}"
            logger.debug(f"Failed to delete branch {branch_name}: {error_msg}")
            return False, error_msg

    def upstream_of(self, branch_name: str) -> Optional[str]:
        """Short name of the upstream configured for a branch (e.g. ``origin/main``)."""
        try:
            upstream = self._get_repo().git.rev_parse("--abbrev-ref", f"{branch_name}@{{upstream}}")
        except git.exc.GitCommandError:
            return None
        return upstream.strip() or None

    def fetch(self, remote: Optional[str] = None, refspec: Optional[str] = None, quiet: bool = False) -> None:
        """Fetch from a remote.

        Args:
            remote: Remote name; git's default when None
            refspec: Only fetch this ref (requires ``remote``)
            quiet: Pass --quiet

        Raises:
            GitOperationError: If the fetch fails.
        """
        args: List[str] = []
        if quiet:
            args.append("--quiet")
        if remote:
            args.append(remote)
            if refspec:
                args.append(refspec)
        try:
            self._get_repo().git.fetch(*args)
        except git.exc.GitCommandError as e:
            raise GitOperationError("fetch", refspec, command_output(e)) from e

    def count_commits(self, from_ref: str, to_ref: str) -> int:
        """Count commits reachable from ``to_ref`` but not from ``from_ref``."""
        try:
            count = self._get_repo().git.rev_list("--count", f"{from_ref}..{to_ref}")
        except git.exc.GitCommandError as e:
            raise GitOperationError("rev-list", to_ref, command_output(e)) from e
        return int(count.strip() or 0)

    def checkout(self, ref: str) -> None:
        """Check out ``ref`` in the working tree at ``repo_path``."""
        try:
            self._get_repo().git.checkout(ref)
        except git.exc.GitCommandError as e:
            raise GitOperationError("checkout", ref, command_output(e)) from e

    def merge(self, ref: str, no_ff: bool = False) -> str:
        """Merge ``ref`` into the current branch of ``repo_path``.

        Args:
            ref: Branch or ref to merge
            no_ff: Always create a merge commit

        Returns:
            The commit SHA HEAD points to after the merge.

        Raises:
            GitOperationError: On conflicts or any other failure, with git's output.
                The repository is left exactly as git left it.
        """
        args = ["--no-edit"]
        if no_ff:
            args.append("--no-ff")
        args.append(ref)
        try:
            repo = self._get_repo()
            repo.git.merge(*args)
            return repo.head.commit.hexsha
        except git.exc.GitCommandError as e:
            raise GitOperationError("merge", ref, command_output(e)) from e

    def abort_merge(self) -> Tuple[bool, Optional[str]]:
        """Abandon an in-progress merge in ``repo_path``.

        Returns:
            Tuple of (success, error_message). error_message is None on success.
        """
        try:
            self._get_repo().git.merge("--abort")
            logger.debug("Aborted in-progress merge")
            return True, None
        except git.exc.GitCommandError as e:
            error_msg = f"git merge --abort failed: {command_output(e)}"
            logger.debug(error_msg)
            return False, error_msg

    def has_uncommitted_changes(self, worktree_path: Union[str, Path]) -> bool:
        """Check a working tree for modified, staged, or untracked files.

        Unreadable working trees count as clean; callers use this for warnings only.
        A directory that is not itself a working tree is clean too, since git would
        otherwise report the status of whatever repository encloses it.
        """
        if not (Path(worktree_path) / ".git").exists():
            logger.debug(f"{worktree_path} is not a working tree")
            return False
        try:
            status = self._get_repo().git.execute(
                ["git", "-C", str(worktree_path), "status", "--porcelain"]
            )
        except git.exc.GitCommandError as e:
            logger.debug(f"Could not check status of {worktree_path}: {command_output(e)}")
            return False
        return bool(status.strip())
