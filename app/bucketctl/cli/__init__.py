"""CLI package for bucketctl.

This package contains the Typer application and all subcommands.
"""

from bucketctl.cli.main import app

__all__ = ["app"]
