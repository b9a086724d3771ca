"""Configuration handling for git-prl"""

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from git_prl.constants import (
    CONFIG_FILE_NAME,
    DEFAULT_BASE_BRANCH,
    DEFAULT_BRANCH_PREFIX,
    DEFAULT_CONTAINER_DIR,
    DEFAULT_REMOTE,
    DEFAULT_TEMPLATE_DIR,
)
from git_prl.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Config:
    """Configuration for git-prl with validation."""

    # Naming and layout
    base_branch: str = DEFAULT_BASE_BRANCH
    branch_prefix: str = DEFAULT_BRANCH_PREFIX
    container_dir: str = DEFAULT_CONTAINER_DIR
    template_dir: str = DEFAULT_TEMPLATE_DIR

    # Remote synchronization
    remote: str = DEFAULT_REMOTE

    # Ref new agent branches start from
    base_ref: str = "HEAD"

    # Behaviour
    auto_cleanup: bool = False
    copy_template: bool = True
    install_dependencies: bool = True
    open_shell: bool = True

    # Output
    verbose: bool = False
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_base_branch()
        self._validate_segment("branch_prefix")
        self._validate_segment("container_dir")
        self._validate_segment("template_dir")
        self._validate_remote()
        self._validate_base_ref()

    def _validate_base_branch(self):
        """Validate base_branch is not empty."""
        if not self.base_branch or not self.base_branch.strip():
            raise ValueError("base_branch cannot be empty")
        self.base_branch = self.base_branch.strip()

    def _validate_segment(self, key: str):
        """Validate that a naming option is a single non-empty path segment."""
        value = getattr(self, key)
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"{key} cannot be empty")
        value = value.strip()
        if "/" in value or "\\" in value or value in (".", ".."):
            raise ValueError(f"{key} must be a single path segment, got '{value}'")
        setattr(self, key, value)

    def _validate_remote(self):
        """Validate remote is not empty."""
        if not self.remote or not self.remote.strip():
            raise ValueError("remote cannot be empty")
        self.remote = self.remote.strip()

    def _validate_base_ref(self):
        """Validate base_ref is not empty."""
        if not self.base_ref or not self.base_ref.strip():
            raise ValueError("base_ref cannot be empty")

    def to_dict(self) -> dict:
        """Convert config to a plain dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {f.name for f in fields(cls)}
        unknown = set(config_dict) - known_fields
        if unknown:
            logger.debug(f"Ignoring unknown config keys: {sorted(unknown)}")
        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)


def get_config_path(root: Path) -> Path:
    """Path of the per-repository config file."""
    return Path(root) / CONFIG_FILE_NAME


def load_config(root: Optional[Path] = None, overrides: Optional[Dict[str, Any]] = None) -> Config:
    """Load configuration from the repository config file and apply overrides.

    Args:
        root: Repository root. When None, no config file is read.
        overrides: Values (typically from the CLI) that win over the file.
            Keys whose value is None are ignored.

    Raises:
        ValueError: If the config file is not valid JSON or holds invalid values.
    """
    data: Dict[str, Any] = {}

    if root is not None:
        config_path = get_config_path(root)
        if config_path.exists():
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    loaded = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in {config_path}: {e}") from e
            if not isinstance(loaded, dict):
                raise ValueError(f"{config_path} must contain a JSON object")
            logger.debug(f"Loaded config from {config_path}")
            data.update(loaded)

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})

    return Config.from_dict(data)
