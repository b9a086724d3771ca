"""Command-line argument parsing for git-prl."""

import argparse
import sys
from typing import List, Optional, Sequence

from git_prl.__version__ import __version__

COMMANDS = ("start", "apply", "list", "prune")

# Options of the top-level parser; anything else belongs to a command
_GLOBAL_FLAGS = ("-v", "--verbose", "--debug", "--version", "-h", "--help")
_GLOBAL_OPTIONS_WITH_VALUE = ("--base-branch",)


def _with_implicit_start(argv: Sequence[str]) -> List[str]:
    """Insert ``start`` before the first argument that is neither a global option nor a command."""
    argv = list(argv)
    skip_next = False
    for index, token in enumerate(argv):
        if skip_next:
            skip_next = False
            continue
        if token in _GLOBAL_FLAGS:
            continue
        if token in _GLOBAL_OPTIONS_WITH_VALUE:
            skip_next = True
            continue
        if token.startswith(tuple(f"{option}=" for option in _GLOBAL_OPTIONS_WITH_VALUE)):
            continue
        if token not in COMMANDS:
            argv.insert(index, "start")
        break
    return argv


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git prl",
        description="Run parallel agents each in their own git worktree",
        epilog="Running `git prl <agent>` is shorthand for `git prl start <agent>`.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument("--version", action="version", version=f"git-prl {__version__}")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument(
        "--base-branch", help="Branch agent work is merged into (default: main)"
    )

    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    subparsers.required = True

    start = subparsers.add_parser("start", help="Create a worktree and run an agent in it")
    start.add_argument(
        "-n", "--name", dest="worktree_name", help="Explicit worktree name (must not exist yet)"
    )
    start.add_argument(
        "--no-shell", action="store_true", help="Do not open a shell after the agent exits"
    )
    start.add_argument(
        "--no-install", action="store_true", help="Skip dependency installation"
    )
    start.add_argument("agent", help="Agent command to run")
    start.add_argument(
        "agent_args", nargs=argparse.REMAINDER, help="Arguments passed through to the agent"
    )

    apply = subparsers.add_parser(
        "apply", help="Merge the current agent branch into the base branch"
    )
    apply.add_argument(
        "--cleanup",
        action="store_true",
        default=None,
        help="Remove the worktree and branch after a successful merge without asking",
    )

    subparsers.add_parser("list", help="List active prl worktrees")
    subparsers.add_parser("prune", help="Prompt to remove prl worktrees")

    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    if argv is None:
        argv = sys.argv[1:]
    args = build_parser().parse_args(_with_implicit_start(argv))
    if args.command == "start" and args.agent_args and args.agent_args[0] == "--":
        args.agent_args = args.agent_args[1:]
    return args
