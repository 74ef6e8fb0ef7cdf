"""Configuration file I/O.

This module provides functions for loading and saving the bucketctl
configuration file in TOML format, validated with Pydantic.
"""

import os
import platform
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from bucketctl.core.errors import ConfigError
from bucketctl.core.paths import default_cache_dir, get_config_path, get_data_dir
from bucketctl.models.manifest import ArchitectureType


def detect_architecture() -> ArchitectureType:
    """Map the host machine to a manifest architecture identifier."""
    machine = platform.machine().lower()
    if machine in ("arm64", "aarch64"):
        return "arm64"
    if machine in ("x86", "i386", "i686"):
        return "32bit"
    return "64bit"


def default_parallelism() -> int:
    """Default size of the sync worker pool (available CPU count, at most 64)."""
    return min(os.cpu_count() or 4, 64)


class Settings(BaseModel):
    """bucketctl configuration.

    Attributes:
        root_path: Data root holding buckets, apps, shims and state.
        cache_path: Download cache; defaults to ``<root_path>/cache``.
        parallelism: Number of sync workers.
        architecture: Architecture used to pick manifest artifacts.
        bucket_priority: Bucket names, highest priority first. Buckets not
            listed share the lowest priority.
        user_agent: User-Agent header for downloads.
        timeout: Network timeout in seconds.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    root_path: Annotated[Path, Field(description="Data root")] = Field(
        default_factory=get_data_dir
    )
    cache_path: Annotated[Path | None, Field(description="Download cache")] = None
    parallelism: Annotated[int, Field(ge=1, le=64, description="Sync workers")] = Field(
        default_factory=default_parallelism
    )
    architecture: Annotated[ArchitectureType, Field(description="Target architecture")] = Field(
        default_factory=detect_architecture
    )
    bucket_priority: Annotated[
        list[str],
        Field(default_factory=list, description="Bucket names, highest priority first"),
    ]
    user_agent: Annotated[str, Field(description="HTTP User-Agent")] = "bucketctl"
    timeout: Annotated[float, Field(gt=0, description="Network timeout in seconds")] = 60.0

    @property
    def cache_dir(self) -> Path:
        """Effective download cache directory."""
        return self.cache_path or default_cache_dir(self.root_path)


# Keys accepted by `config set`
SETTABLE_KEYS: tuple[str, ...] = tuple(Settings.model_fields)


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate settings from a TOML file.

    A missing file yields the default settings.

    Args:
        path: Path to the config file. If None, uses the default path.

    Returns:
        Validated Settings object.

    Raises:
        ConfigError: If the file cannot be read, parsed or validated.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        return Settings()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config content: {e}") from e


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Save settings to a TOML file.

    The file is written atomically through a temporary file in the same
    directory and os.replace().

    Args:
        settings: Settings to save.
        path: Target path. If None, uses the default path.

    Returns:
        Path where the settings were saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = _settings_to_dict(settings)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path


def set_value(settings: Settings, key: str, value: str) -> Settings:
    """Return settings with one key updated from its string form.

    List values (``bucket_priority``) are given comma-separated.

    Args:
        settings: Current settings.
        key: Setting name.
        value: New value as typed by the user.

    Returns:
        Updated, validated Settings.

    Raises:
        ConfigError: If the key is unknown or the value invalid.
    """
    if key not in SETTABLE_KEYS:
        raise ConfigError(f"Invalid config key '{key}'")

    parsed: Any = value
    if key == "bucket_priority":
        parsed = [v.strip() for v in value.split(",") if v.strip()]
    elif key == "cache_path" and value == "":
        parsed = None

    data = settings.model_dump()
    data[key] = parsed
    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config value '{value}' for '{key}': {e}") from e


def _settings_to_dict(settings: Settings) -> dict[str, Any]:
    """Convert settings to a dictionary suitable for TOML serialization.

    TOML has no null, so unset optional values are omitted.
    """
    result: dict[str, Any] = {
        "root_path": str(settings.root_path),
        "parallelism": settings.parallelism,
        "architecture": settings.architecture,
        "bucket_priority": list(settings.bucket_priority),
        "user_agent": settings.user_agent,
        "timeout": settings.timeout,
    }
    if settings.cache_path is not None:
        result["cache_path"] = str(settings.cache_path)
    return result
