"""Interactive confirmation prompts."""

import sys
from typing import Optional

from rich.console import Console


def is_interactive() -> bool:
    """True when both stdin and stdout are attached to a terminal."""
    return sys.stdin.isatty() and sys.stdout.isatty()


def confirm(question: str, console: Optional[Console] = None) -> bool:
    """Ask a yes/no question, defaulting to no.

    Never blocks outside a terminal: without one the answer is always no.
    """
    if not is_interactive():
        return False

    console = console or Console()
    try:
        answer = console.input(f"{question} [y/N] ", markup=False)
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")
