"""Display service for managed worktrees"""
from pathlib import Path
from typing import List, Union

from rich.console import Console
from rich.table import Table

from git_prl.constants import COLUMNS
from git_prl.logging_config import get_logger
from git_prl.models.worktree import WorktreeDescriptor
from git_prl.services.git import GitOperations

console = Console()
logger = get_logger(__name__)


class DisplayService:
    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    @staticmethod
    def _relative(path: Path, root: Union[str, Path]) -> str:
        try:
            return str(path.relative_to(root))
        except ValueError:
            return str(path)

    def display_worktree_table(self, descriptors: List[WorktreeDescriptor]) -> None:
        """Display a table of managed worktrees, flagging uncommitted changes."""
        if not descriptors:
            console.print("No active prl worktrees were found.")
            return

        table = Table(title="Active prl worktrees")
        for col in COLUMNS:
            table.add_column(col.label, min_width=col.width or None)

        for descriptor in descriptors:
            git_ops = GitOperations(descriptor.root)
            if not descriptor.worktree_path.is_dir():
                state = "[red]missing[/red]"
            elif git_ops.has_uncommitted_changes(descriptor.worktree_path):
                state = "[yellow]modified[/yellow]"
            else:
                state = "clean"

            path = (
                str(descriptor.worktree_path)
                if self.verbose
                else self._relative(descriptor.worktree_path, descriptor.root)
            )
            table.add_row(descriptor.worktree_name, descriptor.branch_name, path, state)

        console.print(table)
        logger.debug(f"Displayed {len(descriptors)} worktrees")
