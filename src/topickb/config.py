"""Configuration management for topickb.

This module contains all configurable constants for the topic store.
Magic numbers are documented here rather than scattered throughout the codebase.
"""

import os
from pathlib import Path

PROJECT_CONFIG_FILENAME = ".topickb.yaml"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or unusable."""

    pass


def get_user_store_root() -> Path:
    """Get the user-scope store directory (~/.topickb/store)."""
    return Path.home() / ".topickb" / "store"


def get_store_root() -> Path:
    """Get the directory holding the JSON entity collections.

    Discovery order:
    1. TOPICKB_STORE_ROOT environment variable (explicit override)
    2. Walk up from cwd looking for .topickb.yaml with a store_path field
    3. ~/.topickb/store/

    Raises:
        ConfigurationError: If the discovered location exists but is not a directory.
    """
    root = os.environ.get("TOPICKB_STORE_ROOT")
    if root:
        path = Path(root)
    else:
        project_config = _discover_project_config()
        if project_config:
            _, path = project_config
        else:
            path = get_user_store_root()

    if path.exists() and not path.is_dir():
        raise ConfigurationError(f"Store root is not a directory: {path}")
    return path


def _discover_project_config(start_dir: Path | None = None, max_depth: int = 10) -> tuple[Path, Path] | None:
    """Walk up from start_dir looking for .topickb.yaml with store_path.

    Args:
        start_dir: Directory to start from (defaults to cwd)
        max_depth: Maximum directories to traverse up

    Returns:
        Tuple of (config_path, store_path) if found, None otherwise.
    """
    import yaml

    current = Path(start_dir or os.getcwd()).resolve()

    for _ in range(max_depth):
        config_file = current / PROJECT_CONFIG_FILENAME
        if config_file.exists():
            try:
                data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigurationError(f"Could not read {config_file}: {e}") from e
            if isinstance(data, dict) and "store_path" in data:
                return (config_file, (current / str(data["store_path"])).resolve())

        parent = current.parent
        if parent == current:  # Reached filesystem root
            break
        current = parent

    return None


# =============================================================================
# Collections
# =============================================================================

# Each collection is stored independently (one JSON file per collection for
# the file-backed store).
TOPICS_COLLECTION = "topics"
VERSIONS_COLLECTION = "topic_versions"
RESOURCES_COLLECTION = "resources"


# =============================================================================
# Listing Limits
# =============================================================================

# Default page size for `tkb list`
DEFAULT_LIST_LIMIT = 20

# Upper bound for a single page (prevents dumping huge stores to a terminal)
MAX_LIST_LIMIT = 500


# =============================================================================
# Tree Rendering
# =============================================================================

# Depth shown by `tkb tree` when --depth is not given. The tree itself is
# always built in full; this only limits rendering.
DEFAULT_TREE_DEPTH = 10
