"""Install command implementation.

Installs packages and their dependencies from the subscribed buckets.
"""

from typing import Annotated

import typer

from bucketctl.cli.runner import run_request
from bucketctl.models.query import OperationKind, QueryOptions, QuerySpec


def install(
    ctx: typer.Context,
    packages: Annotated[
        list[str],
        typer.Argument(help="Packages to install: name, bucket/name or a wildcard."),
    ],
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
        typer.Option("--independent", "-i", help="Do not install dependencies."),
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
    download_only: Annotated[
        bool,
        typer.Option("--download-only", help="Only download artifacts into the cache."),
    ] = False,
    escape_hold: Annotated[
        bool,
        typer.Option("--escape-hold", help="Upgrade held packages on the way."),
    ] = False,
    offline: Annotated[
        bool,
        typer.Option("--offline", help="Do not query download sizes before confirming."),
    ] = False,
) -> None:
    """Install packages.

    Dependencies are installed first, already installed dependencies that
    are outdated are upgraded.

    Examples:
        bucketctl install git              # Install from the preferred bucket
        bucketctl install extras/vscode    # Install from a specific bucket
        bucketctl install 'python*' -n     # Preview every matching package
    """
    options = QueryOptions(
        assume_yes=yes,
        offline=offline,
        escape_hold=escape_hold,
        force=force,
        download_only=download_only,
        ignore_cache=ignore_cache,
        no_hash_check=skip_hash_validation,
        no_dependencies=independent,
    )
    spec = QuerySpec(kind=OperationKind.INSTALL, patterns=tuple(packages), options=options)
    run_request(spec, dry_run=dry_run, quiet=ctx.obj.get("quiet", False))
