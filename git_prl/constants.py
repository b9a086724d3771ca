"""Shared constants for git-prl."""

from dataclasses import dataclass
from typing import List


@dataclass
class ColumnDefinition:
    """Definition of a table column."""

    key: str
    label: str
    width: int = 0  # 0 means auto-width


COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("worktree", "Worktree", 20),
    ColumnDefinition("branch", "Branch", 30),
    ColumnDefinition("path", "Path"),
    ColumnDefinition("state", "State", 12),
]


# Managed namespace
DEFAULT_BRANCH_PREFIX = "prl"
DEFAULT_CONTAINER_DIR = ".prl-worktrees"
DEFAULT_TEMPLATE_DIR = "template"
DEFAULT_BASE_BRANCH = "main"
DEFAULT_REMOTE = "origin"

# Used when an agent or worktree name sanitizes to nothing
FALLBACK_SEGMENT = "agent"

# Exposed to the installer, the agent and the shell so nested tooling can self-locate
WORKTREE_ENV_VAR = "PRL_WORKTREE_PATH"

CONFIG_FILE_NAME = ".git-prl.json"

# Files seeded into the template directory from the main working tree
TEMPLATE_FILES: List[str] = [
    ".env",
    ".env.local",
    ".env.development",
    ".env.production",
    ".env.test",
    "package.json",
    "package-lock.json",
    ".eslintrc",
    ".eslintrc.js",
    ".eslintrc.json",
    ".eslintrc.yaml",
    ".eslintrc.yml",
    ".prettierrc",
    ".prettierrc.js",
    ".prettierrc.json",
    ".prettierignore",
    "tsconfig.json",
    ".gitignore",
]
