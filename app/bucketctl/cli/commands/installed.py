"""List command implementation.

Shows installed packages with their bucket and, when their bucket offers
a newer version, the version an upgrade would install.
"""

import fnmatch
from typing import Annotated

import typer

from bucketctl.cli.session import open_session
from bucketctl.utils.formatting import (
    console,
    create_package_table,
    format_package_row,
    print_info,
)


def list_packages(
    pattern: Annotated[
        str,
        typer.Argument(help="Only list packages whose name matches this pattern."),
    ] = "*",
    upgradable: Annotated[
        bool,
        typer.Option("--upgradable", "-u", help="Only list packages with a newer version."),
    ] = False,
    held: Annotated[
        bool,
        typer.Option("--held", help="Only list held packages."),
    ] = False,
) -> None:
    """List installed packages.

    Examples:
        bucketctl list                     # Everything installed
        bucketctl list 'py*'               # Names starting with py
        bucketctl list --upgradable        # What `upgrade` would touch
    """
    session = open_session()

    packages = []
    for name in session.installed.names():
        if not fnmatch.fnmatchcase(name, pattern):
            continue
        package = session.catalog.package_for_record(session.installed[name])
        if held and not package.is_held:
            continue
        if upgradable and (package.manifest is None or package.is_up_to_date):
            continue
        packages.append(package)

    if not packages:
        print_info("No installed packages match.")
        return

    table = create_package_table()
    for package in packages:
        table.add_row(*format_package_row(package))
    console.print(table)

    outdated = sum(1 for p in packages if p.manifest is not None and not p.is_up_to_date)
    summary = f"\n[muted]{len(packages)} package(s)"
    if outdated:
        summary += f", {outdated} upgradable"
    console.print(summary + "[/muted]")
