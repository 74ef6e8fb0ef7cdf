"""Upgrade command implementation.

Upgrades installed packages to the version their bucket now offers.
"""

from typing import Annotated

import typer

from bucketctl.cli.runner import run_request
from bucketctl.models.query import OperationKind, QueryOptions, QuerySpec


def upgrade(
    ctx: typer.Context,
    packages: Annotated[
        list[str] | None,
        typer.Argument(help="Installed packages to upgrade. Defaults to all of them."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt and proceed."),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="Show what would be done without making changes."),
    ] = False,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Reinstall packages that are already up to date."),
    ] = False,
    independent: Annotated[
        bool,
        typer.Option("--independent", "-i", help="Do not install or upgrade dependencies."),
    ] = False,
    ignore_cache: Annotated[
        bool,
        typer.Option("--ignore-cache", "-k", help="Download even when a cached copy exists."),
    ] = False,
    skip_hash_validation: Annotated[
        bool,
        typer.Option(
            "--skip-hash-validation",
            "-s",
            help="Do not verify download digests.",
        ),
    ] = False,
    escape_hold: Annotated[
        bool,
        typer.Option("--escape-hold", help="Upgrade held packages as well."),
    ] = False,
    offline: Annotated[
        bool,
        typer.Option("--offline", help="Do not query download sizes before confirming."),
    ] = False,
) -> None:
    """Upgrade installed packages.

    Held packages are left alone unless --escape-hold is given.

    Examples:
        bucketctl upgrade                  # Upgrade everything
        bucketctl upgrade git -y           # Upgrade one package without asking
    """
    options = QueryOptions(
        assume_yes=yes,
        offline=offline,
        escape_hold=escape_hold,
        force=force,
        ignore_cache=ignore_cache,
        no_hash_check=skip_hash_validation,
        no_dependencies=independent,
    )
    patterns = tuple(packages) if packages else ("*",)
    spec = QuerySpec(kind=OperationKind.UPGRADE, patterns=patterns, options=options)
    run_request(spec, dry_run=dry_run, quiet=ctx.obj.get("quiet", False))
