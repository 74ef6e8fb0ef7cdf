"""Config commands.

Shows the effective settings and changes single keys in config.toml.
"""

from typing import Annotated

import typer
from rich.table import Table

from bucketctl.cli.session import require_settings
from bucketctl.core.config import SETTABLE_KEYS, save_settings, set_value
from bucketctl.core.errors import ConfigError
from bucketctl.core.paths import get_config_path
from bucketctl.utils.formatting import console, print_error, print_success

app = typer.Typer(
    help="Show and change settings.",
    no_args_is_help=True,
)


@app.command()
def show() -> None:
    """Show the effective settings."""
    settings = require_settings()
    path = get_config_path()

    table = Table(
        title="Settings",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Key", style="package.name")
    table.add_column("Value")

    table.add_row("root_path", str(settings.root_path))
    table.add_row("cache_path", str(settings.cache_dir))
    table.add_row("parallelism", str(settings.parallelism))
    table.add_row("architecture", settings.architecture)
    table.add_row("bucket_priority", ", ".join(settings.bucket_priority) or "[muted]-[/muted]")
    table.add_row("user_agent", settings.user_agent)
    table.add_row("timeout", f"{settings.timeout:g}s")
    console.print(table)

    source = str(path) if path.exists() else f"{path} (not created, using defaults)"
    console.print(f"\n[muted]Config file: {source}[/muted]")


@app.command("set")
def set_key(
    key: Annotated[
        str,
        typer.Argument(help=f"Setting to change: {', '.join(SETTABLE_KEYS)}."),
    ],
    value: Annotated[
        str,
        typer.Argument(help="New value. Lists are comma-separated."),
    ],
) -> None:
    """Change one setting."""
    settings = require_settings()
    try:
        updated = set_value(settings, key, value)
        path = save_settings(updated)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Set {key} in {path}")
