"""Download cache commands.

Cache files are named ``<name>#<version>#<url>`` so they can be listed
and removed by package name.
"""

from typing import Annotated

import typer
from rich.table import Table

from bucketctl.cli.session import require_settings
from bucketctl.core.cache import list_cache, remove_cache
from bucketctl.core.errors import FilesystemError
from bucketctl.utils.formatting import (
    console,
    format_size,
    print_error,
    print_info,
    print_success,
)

app = typer.Typer(
    help="Inspect and clean the download cache.",
    no_args_is_help=True,
)


@app.command("list")
def list_files(
    query: Annotated[
        str,
        typer.Argument(help="Package name or wildcard pattern."),
    ] = "*",
) -> None:
    """List cached downloads."""
    settings = require_settings()
    files = list_cache(settings.cache_dir, query)
    if not files:
        print_info("No cached downloads match.")
        return

    table = Table(
        title="Download Cache",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Package", style="package.name")
    table.add_column("Version", style="package.version")
    table.add_column("Size", justify="right")
    table.add_column("URL", style="muted", overflow="ellipsis")

    for entry in files:
        table.add_row(entry.name, entry.version, format_size(entry.size), entry.url)
    console.print(table)

    total = sum(entry.size for entry in files)
    console.print(f"\n[muted]{len(files)} file(s), {format_size(total)} total[/muted]")


@app.command("rm")
def remove(
    query: Annotated[
        str,
        typer.Argument(help="Package name or wildcard pattern; '*' empties the cache."),
    ],
) -> None:
    """Remove cached downloads."""
    settings = require_settings()
    freed = sum(entry.size for entry in list_cache(settings.cache_dir, query))
    try:
        removed = remove_cache(settings.cache_dir, query)
    except FilesystemError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not removed:
        print_info("No cached downloads match.")
        return
    print_success(f"Removed {len(removed)} file(s).")
    if freed:
        console.print(f"[muted]{format_size(freed)} freed[/muted]")
