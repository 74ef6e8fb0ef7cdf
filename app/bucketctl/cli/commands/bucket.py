"""Bucket commands.

Lists the subscribed buckets in priority order and refreshes the ones
that are git checkouts.
"""

from typing import Annotated

import typer
from rich.table import Table

from bucketctl.cli.session import require_settings
from bucketctl.core.buckets import BucketSource
from bucketctl.core.events import EventBus
from bucketctl.core.paths import buckets_dir
from bucketctl.models.event import EventKind
from bucketctl.utils.formatting import (
    console,
    print_error,
    print_info,
    print_success,
)

app = typer.Typer(
    help="Inspect and refresh buckets.",
    no_args_is_help=True,
)


def _source() -> BucketSource:
    settings = require_settings()
    return BucketSource(buckets_dir(settings.root_path), settings.bucket_priority)


@app.command("list")
def list_buckets() -> None:
    """List buckets, highest priority first."""
    source = _source()
    buckets = source.list_buckets()
    if not buckets:
        print_info(f"No buckets found in {source.buckets_dir}.")
        return

    table = Table(
        title="Buckets",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Priority", justify="right")
    table.add_column("Name", style="package.bucket")
    table.add_column("Manifests", justify="right")
    table.add_column("Git", justify="center")
    table.add_column("Path", style="muted")

    for bucket in sorted(buckets, key=lambda b: (b.priority, b.order)):
        table.add_row(
            str(bucket.priority),
            bucket.name,
            str(len(source.manifests(bucket))),
            "[success]yes[/]" if bucket.is_git_repo else "[muted]no[/]",
            str(bucket.path),
        )
    console.print(table)


@app.command("update")
def update(
    names: Annotated[
        list[str] | None,
        typer.Argument(help="Buckets to refresh. Defaults to all of them."),
    ] = None,
) -> None:
    """Refresh git buckets with a fast-forward pull."""
    source = _source()
    known = {b.name for b in source.list_buckets()}
    unknown = [n for n in names or [] if n not in known]
    if unknown:
        print_error(f"Unknown bucket(s): {', '.join(unknown)}")
        raise typer.Exit(code=1)

    bus = EventBus()
    with console.status("Refreshing buckets..."):
        results = source.refresh(bus, names or ())
    bus.close()

    for event in bus.recorded():
        if event.kind == EventKind.BUCKET_REFRESH_FAILED:
            print_error(f"{event.package}: {event.message}")

    refreshed = sum(1 for ok in results.values() if ok)
    if refreshed == len(results):
        print_success(f"Refreshed {refreshed} bucket(s).")
        return
    failed = len(results) - refreshed
    console.print(f"\n[success]{refreshed} refreshed[/], [error]{failed} failed[/]")
    raise typer.Exit(code=1)
