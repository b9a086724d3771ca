"""Utility functions for git-prl."""

from .prompt import confirm, is_interactive

__all__ = [
    "confirm",
    "is_interactive",
]
