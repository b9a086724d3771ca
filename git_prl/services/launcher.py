"""Agent process and interactive shell inside a worktree.

Both run in the foreground with the terminal's streams inherited, so a
Ctrl-C reaches them directly.
"""

import os
import shutil
import subprocess
from typing import Optional, Sequence

from rich.console import Console

from git_prl.exceptions import AgentNotFoundError
from git_prl.logging_config import get_logger
from git_prl.models.worktree import WorktreeDescriptor
from git_prl.services.provisioning import worktree_env
from git_prl.utils import prompt

console = Console()
logger = get_logger(__name__)

DEFAULT_SHELL = "/bin/bash"


def ensure_agent_available(agent: str) -> str:
    """Resolve the agent executable on PATH.

    Raises:
        AgentNotFoundError: If ``agent`` cannot be found.
    """
    executable = shutil.which(agent)
    if executable is None:
        raise AgentNotFoundError(agent)
    logger.debug(f"Agent {agent} resolved to {executable}")
    return executable


def run_agent(descriptor: WorktreeDescriptor, agent: str, agent_args: Sequence[str] = ()) -> int:
    """Run the agent inside the worktree and wait for it to exit.

    A failing agent is reported, not raised: the worktree stays usable.

    Returns:
        The agent's exit code
    """
    command = [agent, *agent_args]
    console.print(f"Running agent command: {' '.join(command)}")
    try:
        result = subprocess.run(
            command,
            cwd=descriptor.worktree_path,
            env=worktree_env(descriptor.worktree_path),
            check=False,
        )
        returncode = result.returncode
    except OSError as e:
        logger.debug(f"Could not start {agent}: {e}")
        returncode = 127

    if returncode != 0:
        console.print(
            f"[yellow]Agent command {agent} failed; you can recover inside "
            f"{descriptor.worktree_path}.[/yellow]"
        )
    return returncode


def open_shell(descriptor: WorktreeDescriptor, interactive: Optional[bool] = None) -> Optional[int]:
    """Drop the user into ``$SHELL -i`` inside the worktree.

    Returns:
        The shell's exit code, or None if no terminal is attached
    """
    if interactive is None:
        interactive = prompt.is_interactive()
    if not interactive:
        console.print("Worktree shell skipped because this session is not attached to a terminal.")
        return None

    shell = os.environ.get("SHELL") or DEFAULT_SHELL
    console.print(f"Dropping you into an interactive {shell} shell inside {descriptor.worktree_path}.")
    result = subprocess.run(
        [shell, "-i"],
        cwd=descriptor.worktree_path,
        env=worktree_env(descriptor.worktree_path),
        check=False,
    )
    if result.returncode < 0:
        console.print(f"Shell exited due to signal {-result.returncode}.")
    elif result.returncode:
        console.print(f"Shell exited with code {result.returncode}.")
    return result.returncode
