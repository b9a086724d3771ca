"""Command-line interface for git-prl"""

import sys
from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape

from .args import parse_args
from .core import PrlManager
from .exceptions import GitPrlError
from .logging_config import setup_logging

console = Console()


def _overrides(parsed_args) -> dict:
    """Config values given on the command line; None means "not given"."""
    overrides = {
        "base_branch": parsed_args.base_branch,
        "verbose": parsed_args.verbose or None,
        "debug": parsed_args.debug or None,
    }
    if parsed_args.command == "start":
        if parsed_args.no_shell:
            overrides["open_shell"] = False
        if parsed_args.no_install:
            overrides["install_dependencies"] = False
    return overrides


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the application."""
    parsed_args = parse_args(argv)
    setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

    try:
        manager = PrlManager(config=_overrides(parsed_args))

        if parsed_args.debug:
            console.print("[yellow]Debug mode enabled[/yellow]")
            console.print("[yellow]Configuration:[/yellow]")
            for key, value in manager.config.to_dict().items():
                console.print(f"  {key}: {value}")

        if parsed_args.command == "start":
            manager.start(
                parsed_args.agent,
                worktree_name=parsed_args.worktree_name,
                agent_args=parsed_args.agent_args,
            )
        elif parsed_args.command == "apply":
            manager.apply(auto_cleanup=parsed_args.cleanup)
        elif parsed_args.command == "list":
            manager.list_worktrees()
        elif parsed_args.command == "prune":
            manager.prune()

        return 0
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled[/yellow]")
        return 1
    except GitPrlError as e:
        console.print(f"[red]Error ({e.stage}): {escape(str(e))}[/red]")
        if parsed_args.debug:
            console.print_exception()
        return 1
    except ValueError as e:
        console.print(f"[red]Configuration error: {escape(str(e))}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
