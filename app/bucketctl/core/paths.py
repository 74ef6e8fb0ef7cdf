"""XDG-compliant path management for bucketctl.

This module provides standardized paths following the XDG Base Directory
Specification for configuration and data storage, plus the layout of the
data root.

XDG defaults:
- Config: ~/.config/bucketctl/
- Data root: ~/.local/share/bucketctl/

Data root layout:
- buckets/<bucket>/        subscribed manifest repositories
- apps/<name>/<version>/   installed versions, plus a `current` pointer
- shims/                   executable shims
- persist/<name>/          user data kept across versions
- cache/                   downloaded artifacts
- installed.json           install-state store
- .lock                    single-writer lock file
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "bucketctl"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/bucketctl/ (or XDG_CONFIG_HOME/bucketctl/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_config_path() -> Path:
    """Get the configuration file path.

    Returns:
        Path to ~/.config/bucketctl/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the default data root.

    Returns:
        Path to ~/.local/share/bucketctl/ (or XDG_DATA_HOME/bucketctl/).
    """
    return _get_xdg_dir("XDG_DATA_HOME", ".local/share")


def buckets_dir(root: Path) -> Path:
    """Directory holding subscribed buckets."""
    return root / "buckets"


def apps_dir(root: Path) -> Path:
    """Directory holding installed applications."""
    return root / "apps"


def shims_dir(root: Path) -> Path:
    """Directory holding executable shims."""
    return root / "shims"


def persist_dir(root: Path) -> Path:
    """Directory holding persisted user data."""
    return root / "persist"


def default_cache_dir(root: Path) -> Path:
    """Default download cache directory under the data root."""
    return root / "cache"


def installed_state_path(root: Path) -> Path:
    """Path of the install-state store."""
    return root / "installed.json"


def lock_path(root: Path) -> Path:
    """Path of the single-writer lock file."""
    return root / ".lock"


def ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_root_dirs(root: Path) -> None:
    """Create the data root and its standard subdirectories.

    Args:
        root: Data root directory.

    Raises:
        RuntimeError: If a directory cannot be created.
    """
    ensure_dir(root, "data")
    ensure_dir(buckets_dir(root), "buckets")
    ensure_dir(apps_dir(root), "apps")
    ensure_dir(shims_dir(root), "shims")
    ensure_dir(persist_dir(root), "persist")
