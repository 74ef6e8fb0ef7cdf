"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from bucketctl.core.theme import get_theme

if TYPE_CHECKING:
    from bucketctl.models.package import Package


def _detect_color_system() -> str | None:
    """Use truecolor on interactive terminals, otherwise let Rich decide."""
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def format_size(num_bytes: int) -> str:
    """Format a byte count for humans (e.g. ``1.5 MB``)."""
    size = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


def create_package_table(title: str = "Installed Packages") -> Table:
    """Create a pre-configured table for displaying installed packages.

    Args:
        title: Table title.

    Returns:
        Rich Table configured for package display.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("", width=2, justify="center")
    table.add_column("Package", no_wrap=True)
    table.add_column("Version", style="muted")
    table.add_column("Bucket", style="package.bucket")
    table.add_column("Latest", style="muted")
    table.add_column("Description", style="text", overflow="ellipsis")
    return table


def format_package_row(pkg: Package) -> tuple[str, str, str, str, str, str]:
    """Format an installed package as a table row.

    Held packages get an empty circle in the held color, others a filled
    circle. The latest column is empty when the install is current.

    Args:
        pkg: Installed package, bound to its candidate manifest if known.

    Returns:
        Tuple of (icon, name, version, bucket, latest, description).
    """
    if pkg.is_held:
        icon = "[package_held]○[/]"
        name = f"[package_held]{pkg.name}[/]"
    else:
        icon = "[package_installed]●[/]"
        name = f"[package_installed]{pkg.name}[/]"

    installed_version = pkg.installed_version or "-"
    latest = ""
    if pkg.manifest is not None and pkg.manifest.version != installed_version:
        latest = f"[changed]{pkg.manifest.version}[/]"
    description = pkg.manifest.description if pkg.manifest is not None else None

    return (
        icon,
        name,
        f"[muted]{installed_version}[/]",
        pkg.bucket,
        latest,
        f"[text]{description or '-'}[/]",
    )


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
