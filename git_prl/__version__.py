"""Version information for git-prl."""

__version__ = "0.1.0"
