"""Hold and unhold commands.

A held package is pinned at its installed version: upgrades leave it
alone and uninstall refuses it unless --escape-hold is given.
"""

from typing import Annotated

import typer

from bucketctl.cli.session import require_settings
from bucketctl.core.errors import BucketctlError
from bucketctl.core.lock import InstallLock
from bucketctl.core.paths import lock_path
from bucketctl.core.state import InstallStateStore
from bucketctl.utils.formatting import print_error, print_info, print_success


def _set_held(packages: list[str], held: bool) -> None:
    settings = require_settings()
    store = InstallStateStore(settings.root_path)
    verb = "Held" if held else "Released"

    failed = False
    try:
        with InstallLock(lock_path(settings.root_path)):
            for name in packages:
                try:
                    record = store.set_held(name, held)
                except BucketctlError as e:
                    print_error(str(e))
                    failed = True
                    continue
                print_success(f"{verb} {record.name} at {record.version}")
    except BucketctlError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if failed:
        raise typer.Exit(code=1)


def hold(
    packages: Annotated[
        list[str],
        typer.Argument(help="Installed packages to hold at their current version."),
    ],
) -> None:
    """Hold packages at their installed version."""
    _set_held(packages, held=True)
    print_info("Held packages are skipped by upgrade unless --escape-hold is given.")


def unhold(
    packages: Annotated[
        list[str],
        typer.Argument(help="Held packages to release."),
    ],
) -> None:
    """Release held packages so they upgrade again."""
    _set_held(packages, held=False)
