"""Console colors.

The palette ships in data/theme.toml. A ``[colors]`` table in
~/.config/bucketctl/theme.toml overrides single keys. The palette is
turned into Rich styles for tables, plan actions and download progress.
"""

import logging
import re
import sys
import tomllib
from importlib import resources
from pathlib import Path
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from rich.theme import Theme

from bucketctl.core.paths import get_config_dir

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"#(?:[0-9a-fA-F]{3}){1,2}")


class ThemeColors(BaseModel):
    """Palette of the bucketctl console, as #RGB or #RRGGBB values."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    text: str = "#ffffff"
    muted: str = "#b2bec3"
    header: str = "#69B9A1"
    border: str = "#29526d"

    success: str = "#03b971"
    warning: str = "#f5b332"
    error: str = "#f53263"
    info: str = "#0ec1c8"

    # Plan actions
    added: str = "#c1ff62"
    removed: str = "#f53263"
    changed: str = "#0e8ac8"

    package_installed: str = "#69B9A1"
    package_held: str = "#d44ebc"

    # Download progress
    progress_bar: str = "#0e8ac8"
    progress_done: str = "#03b971"

    @field_validator("*", mode="before")
    @classmethod
    def validate_hex_color(cls, v: object, info: Any) -> str:
        if not isinstance(v, str):
            raise ValueError(f"{info.field_name}: color must be a string")
        color = v.strip()
        if not color.startswith("#"):
            raise ValueError(f"{info.field_name}: color must start with '#'")
        if not _HEX_COLOR.fullmatch(color):
            raise ValueError(f"{info.field_name}: invalid hex color '{color}'")
        return color


def get_user_theme_path() -> Path:
    """Get the user theme override path (~/.config/bucketctl/theme.toml)."""
    return get_config_dir() / "theme.toml"


def get_bundled_theme_path() -> Path:
    return resources.files("bucketctl.data").joinpath("theme.toml")  # type: ignore[return-value]


def _read_colors(path: Path) -> dict[str, str]:
    """Read the ``[colors]`` table of a theme file.

    Missing files give an empty table. Unreadable files and non-string
    values are reported and ignored.
    """
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return {}
    except (tomllib.TOMLDecodeError, OSError) as e:
        logger.warning("Ignoring theme file %s: %s", path, e)
        # Themes load at import time, before logging is configured
        print(f"Warning: Ignoring theme file {path}: {e}", file=sys.stderr)
        return {}

    colors: object = data.get("colors", {})
    if not isinstance(colors, dict):
        logger.warning("Ignoring theme file %s: 'colors' is not a table", path)
        return {}
    return {
        key: value
        for key, value in cast(dict[str, object], colors).items()
        if isinstance(value, str)
    }


def load_theme() -> ThemeColors:
    """Bundled palette with the user's overrides applied.

    An override that fails validation discards all overrides rather than
    leaving a half-applied palette.
    """
    bundled = _read_colors(Path(get_bundled_theme_path()))
    if not bundled:
        logger.error("Bundled theme is missing, installation may be corrupted")

    overrides = _read_colors(get_user_theme_path())
    try:
        return ThemeColors(**{**bundled, **overrides})
    except ValidationError as e:
        print(f"Warning: Invalid theme configuration: {e}", file=sys.stderr)

    try:
        return ThemeColors(**bundled)
    except ValidationError:
        return ThemeColors()


def get_rich_theme(colors: ThemeColors | None = None) -> Theme:
    """Rich styles for a palette (loaded when not given)."""
    if colors is None:
        colors = load_theme()

    palette = colors.model_dump()
    styles: dict[str, str] = dict(palette)
    styles.update(
        {
            "error": f"bold {colors.error}",
            "package_installed": f"bold {colors.package_installed}",
            "bold_header": f"bold {colors.header}",
            "dim": colors.muted,
            "package.name": f"bold {colors.text}",
            "package.version": colors.muted,
            "package.bucket": colors.info,
            # Rich progress columns
            "bar.back": colors.border,
            "bar.complete": colors.progress_bar,
            "bar.finished": colors.progress_done,
            "progress.description": colors.text,
            "progress.download": colors.info,
            "progress.data.speed": colors.muted,
        }
    )
    return Theme(styles)


_cached_theme: Theme | None = None


def get_theme() -> Theme:
    """Get the Rich theme, loading and caching it on first use."""
    global _cached_theme
    if _cached_theme is None:
        _cached_theme = get_rich_theme()
    return _cached_theme
