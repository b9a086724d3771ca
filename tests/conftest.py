"""Pytest fixtures for git-prl tests"""
import tempfile
from pathlib import Path
import pytest
import git

from git_prl.config import Config
from git_prl.models.worktree import RepoContext
from git_prl.services.lifecycle import WorktreeLifecycle


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository for testing."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    # Initialize repository
    repo = git.Repo.init(repo_path)

    # Configure git user for commits
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    # Create initial commit on main branch
    test_file = repo_path / "README.md"
    test_file.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    # Rename master to main if needed
    repo.git.branch('-M', 'main')

    yield repo

    # Cleanup
    repo.close()


@pytest.fixture
def repo_root(git_repo):
    """Resolved path of the main working tree."""
    return Path(git_repo.working_dir).resolve()


@pytest.fixture
def ctx(repo_root):
    """Repository context with the default base branch."""
    return RepoContext(root=repo_root, base_branch="main")


@pytest.fixture
def config():
    """Configuration without any of the provisioning or shell steps."""
    return Config(copy_template=False, install_dependencies=False, open_shell=False)


@pytest.fixture
def lifecycle(config):
    """Worktree lifecycle using the test configuration."""
    return WorktreeLifecycle(config)


@pytest.fixture
def make_commit():
    """Return a helper that commits one file in a working tree."""
    def _make_commit(path, name, content, message=None):
        repo = git.Repo(path)
        try:
            (Path(path) / name).write_text(content)
            repo.index.add([name])
            return repo.index.commit(message or f"Update {name}").hexsha
        finally:
            repo.close()

    return _make_commit


@pytest.fixture
def agent_worktree(ctx, lifecycle):
    """A managed worktree ``writer`` on branch ``prl/writer``."""
    return lifecycle.create(ctx, "writer", "prl/writer")


@pytest.fixture
def remote_repo(temp_dir, git_repo):
    """Bare repository set up as ``origin``, with ``main`` tracking it."""
    remote_path = temp_dir / "remote.git"
    remote = git.Repo.init(remote_path, bare=True)
    git_repo.create_remote('origin', str(remote_path))
    git_repo.git.push('-u', 'origin', 'main')

    yield remote

    remote.close()


@pytest.fixture
def other_clone(temp_dir, remote_repo):
    """A second clone of the remote, used to advance ``origin/main``."""
    clone_path = temp_dir / "other_clone"
    clone = git.Repo.clone_from(remote_repo.git_dir, clone_path, branch='main')
    clone.config_writer().set_value("user", "name", "Other User").release()
    clone.config_writer().set_value("user", "email", "other@example.com").release()

    yield clone

    clone.close()
