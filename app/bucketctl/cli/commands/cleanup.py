"""Cleanup command.

Upgrades keep the previous version directories beside the new one.
cleanup removes every version of a package except the current one and,
with --cache, the cached downloads of those older versions.
"""

from typing import Annotated

import typer

from bucketctl.backends.local import LocalFilesystem
from bucketctl.cli.session import require_settings
from bucketctl.core.cache import prune_cache
from bucketctl.core.errors import BucketctlError
from bucketctl.core.lock import InstallLock
from bucketctl.core.paths import lock_path
from bucketctl.core.state import InstallStateStore
from bucketctl.utils.formatting import console, format_size, print_error, print_info, print_success


def cleanup(
    packages: Annotated[
        list[str] | None,
        typer.Argument(help="Installed packages to clean up."),
    ] = None,
    all_packages: Annotated[
        bool,
        typer.Option("--all", "-a", help="Clean up every installed package."),
    ] = False,
    cache: Annotated[
        bool,
        typer.Option("--cache", "-k", help="Also remove cached downloads of old versions."),
    ] = False,
) -> None:
    """Remove old versions of installed packages."""
    if not packages and not all_packages:
        print_error("Name the packages to clean up, or pass --all.")
        raise typer.Exit(code=1)

    settings = require_settings()
    store = InstallStateStore(settings.root_path)
    fs = LocalFilesystem(settings.root_path)

    failed = False
    cleaned = 0
    freed = 0
    try:
        with InstallLock(lock_path(settings.root_path)):
            installed = store.load()
            names = list(installed) if all_packages else packages or []
            for name in names:
                record = installed.get(name)
                if record is None:
                    print_error(f"{name} is not installed")
                    failed = True
                    continue
                try:
                    removed = fs.prune_versions(name)
                    files = prune_cache(settings.cache_dir, name, record.version) if cache else []
                except BucketctlError as e:
                    print_error(str(e))
                    failed = True
                    continue

                freed += sum(f.size for f in files)
                if removed:
                    cleaned += 1
                    print_success(f"Removed {name} {' '.join(removed)}")
                elif not all_packages:
                    print_info(f"{name} is already clean.")
    except BucketctlError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if all_packages and not failed:
        print_info("Everything is clean." if not cleaned else f"Cleaned {cleaned} package(s).")
    if freed:
        console.print(f"[muted]{format_size(freed)} of cached downloads freed[/muted]")
    if failed:
        raise typer.Exit(code=1)
