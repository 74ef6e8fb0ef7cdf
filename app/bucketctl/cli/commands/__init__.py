"""CLI commands for bucketctl.

This package contains all subcommand implementations.
"""

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

__all__ = [
    "bucket",
    "cache",
    "cleanup",
    "config",
    "hold",
    "install",
    "installed",
    "uninstall",
    "upgrade",
]
