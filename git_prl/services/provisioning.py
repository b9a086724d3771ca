"""Template files and dependency installation for new worktrees."""

import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, Union

from rich.console import Console

from git_prl.config import Config
from git_prl.constants import TEMPLATE_FILES, WORKTREE_ENV_VAR
from git_prl.logging_config import get_logger
from git_prl.models.worktree import RepoContext, WorktreeDescriptor
from git_prl.services.naming import NameResolver

console = Console()
logger = get_logger(__name__)


def worktree_env(worktree_path: Union[str, Path]) -> Dict[str, str]:
    """Environment for processes run inside a worktree."""
    env = os.environ.copy()
    env[WORKTREE_ENV_VAR] = str(worktree_path)
    return env


def ensure_template(ctx: RepoContext, config: Config) -> Path:
    """Create the template directory and seed it once from the main working tree.

    Seeding only happens while the directory is empty, so files the user
    adds or edits there later are kept.

    Returns:
        Path of the template directory
    """
    template_path = NameResolver(config).container_path(ctx) / config.template_dir
    template_path.mkdir(parents=True, exist_ok=True)

    if any(template_path.iterdir()):
        return template_path

    copied = 0
    for name in TEMPLATE_FILES:
        source = Path(ctx.root) / name
        if not source.is_file():
            continue
        try:
            shutil.copy2(source, template_path / name)
            copied += 1
        except OSError as e:
            logger.warning(f"Failed to copy {name} into template: {e}")

    if copied:
        logger.info(f"Initialized template with {copied} file(s) from {ctx.root}")
    else:
        logger.debug("No template files found in main working tree")
    return template_path


def copy_template(template_path: Path, worktree_path: Path) -> Dict[str, int]:
    """Copy every file under ``template_path`` into ``worktree_path``.

    A file that cannot be copied produces a warning; the rest are still copied.

    Returns:
        Dict with counts: {'copied': n, 'failed': n}
    """
    counts = {"copied": 0, "failed": 0}
    if not template_path.is_dir():
        return counts

    for source in sorted(template_path.rglob("*")):
        if not source.is_file():
            continue
        rel_path = source.relative_to(template_path)
        destination = worktree_path / rel_path
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, destination)
            counts["copied"] += 1
        except OSError as e:
            counts["failed"] += 1
            console.print(f"[yellow]Warning: Failed to copy template file {rel_path}[/yellow]")
            logger.debug(f"Copy of {source} failed: {e}")

    if counts["copied"]:
        logger.info(f"Copied {counts['copied']} template file(s) into {worktree_path}")
    return counts


def install_dependencies(descriptor: WorktreeDescriptor) -> bool:
    """Run ``npm install`` in the worktree when it has a package.json.

    Returns:
        True if dependencies were installed, False if skipped or failed
    """
    if not (descriptor.worktree_path / "package.json").is_file():
        logger.debug(f"No package.json in {descriptor.worktree_path}; skipping install")
        return False

    console.print("Running npm install inside the agent worktree...")
    try:
        result = subprocess.run(
            ["npm", "install"],
            cwd=descriptor.worktree_path,
            env=worktree_env(descriptor.worktree_path),
            check=False,
        )
    except FileNotFoundError:
        result = None

    if result is None or result.returncode != 0:
        console.print(
            "[yellow]Warning: npm install failed inside the agent worktree; "
            "continuing with shell startup.[/yellow]"
        )
        return False
    return True
