"""Uninstall command implementation.

Removes installed packages, refusing to break the packages that depend on
them unless asked to cascade.
"""

from typing import Annotated

import typer

from bucketctl.cli.runner import run_request
from bucketctl.models.query import OperationKind, QueryOptions, QuerySpec


def uninstall(
    ctx: typer.Context,
    packages: Annotated[
        list[str],
        typer.Argument(help="Installed packages to remove: name, bucket/name or a wildcard."),
    ],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt and proceed."),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="Show what would be done without making changes."),
    ] = False,
    cascade: Annotated[
        bool,
        typer.Option("--cascade", "-c", help="Also remove packages that depend on them."),
    ] = False,
    purge: Annotated[
        bool,
        typer.Option("--purge", "-p", help="Also remove persisted user data."),
    ] = False,
    escape_hold: Annotated[
        bool,
        typer.Option("--escape-hold", help="Remove held packages as well."),
    ] = False,
) -> None:
    """Uninstall packages.

    Examples:
        bucketctl uninstall git            # Remove one package
        bucketctl uninstall libfoo -c      # Remove libfoo and its dependents
        bucketctl uninstall app --purge    # Remove with its user data
    """
    options = QueryOptions(
        assume_yes=yes,
        escape_hold=escape_hold,
        cascade=cascade,
        purge=purge,
    )
    spec = QuerySpec(kind=OperationKind.UNINSTALL, patterns=tuple(packages), options=options)
    run_request(spec, dry_run=dry_run, quiet=ctx.obj.get("quiet", False))
