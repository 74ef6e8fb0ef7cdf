"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from bucketctl import __version__
from bucketctl.cli.commands import (
    bucket,
    cache,
    cleanup,
    config,
    hold,
    install,
    installed,
    uninstall,
    upgrade,
)
from bucketctl.utils.formatting import err_console

# Create main Typer app
app = typer.Typer(
    name="bucketctl",
    help="Install portable applications from manifest buckets.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"bucketctl version {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
) -> None:
    """bucketctl - Install portable applications from manifest buckets.

    Packages are described by JSON manifests in local bucket directories.
    bucketctl resolves them with their dependencies, downloads and verifies
    their artifacts and installs them side by side under one data root.
    """
    _configure_logging(verbose)

    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet


# Register commands
app.command(name="install")(install.install)
app.command(name="upgrade")(upgrade.upgrade)
app.command(name="uninstall")(uninstall.uninstall)
app.command(name="list")(installed.list_packages)
app.command(name="hold")(hold.hold)
app.command(name="unhold")(hold.unhold)
app.command(name="cleanup")(cleanup.cleanup)
app.add_typer(bucket.app, name="bucket")
app.add_typer(cache.app, name="cache")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
