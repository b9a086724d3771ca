"""
git-prl - Run parallel agents each in their own git worktree
"""

from .__version__ import __version__
from .core import PrlManager
from .cli import main

__all__ = ["PrlManager", "main", "__version__"]
