"""Shared setup for CLI commands.

Builds the settings, bucket source, install-state store, catalog and sync
engine a command needs, and converts setup failures into exit code 1.
"""

from dataclasses import dataclass

import typer

from bucketctl.backends.hashing import HashlibHasher
from bucketctl.backends.http import HttpDownloader
from bucketctl.backends.local import LocalFilesystem
from bucketctl.core.buckets import BucketSource
from bucketctl.core.catalog import ManifestCatalog
from bucketctl.core.config import Settings, load_settings
from bucketctl.core.errors import ConfigError, StateError
from bucketctl.core.events import EventBus
from bucketctl.core.paths import buckets_dir, ensure_root_dirs
from bucketctl.core.state import InstallStateStore
from bucketctl.core.sync import SyncEngine
from bucketctl.models.package import InstalledSet
from bucketctl.models.query import QueryOptions
from bucketctl.utils.formatting import print_error


@dataclass
class Session:
    """Everything a command reads from disk, loaded once per invocation."""

    settings: Settings
    source: BucketSource
    store: InstallStateStore
    installed: InstalledSet
    catalog: ManifestCatalog


def require_settings() -> Settings:
    """Load settings or exit with code 1.

    Raises:
        typer.Exit: If the configuration is invalid.
    """
    try:
        return load_settings()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def open_session(settings: Settings | None = None) -> Session:
    """Load settings, install state and every bucket.

    Raises:
        typer.Exit: If the configuration or install state is unreadable.
    """
    settings = settings or require_settings()
    source = BucketSource(buckets_dir(settings.root_path), settings.bucket_priority)
    store = InstallStateStore(settings.root_path)
    try:
        installed = store.load()
    except StateError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    catalog = ManifestCatalog.load(source, installed, settings.architecture)
    return Session(
        settings=settings,
        source=source,
        store=store,
        installed=installed,
        catalog=catalog,
    )


def create_engine(session: Session, bus: EventBus, options: QueryOptions) -> SyncEngine:
    """Sync engine wired to the real network and filesystem backends.

    Raises:
        typer.Exit: If the data root cannot be created.
    """
    settings = session.settings
    try:
        ensure_root_dirs(settings.root_path)
    except RuntimeError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    return SyncEngine(
        downloader=HttpDownloader(user_agent=settings.user_agent, timeout=settings.timeout),
        hasher=HashlibHasher(),
        fs=LocalFilesystem(settings.root_path),
        store=session.store,
        bus=bus,
        cache_dir=settings.cache_dir,
        parallelism=settings.parallelism,
        options=options,
    )
