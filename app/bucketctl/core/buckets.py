"""Bucket discovery, manifest loading and refresh.

Buckets are directories under the buckets root. Each holds manifest JSON
files named after the package they describe.
"""

import json
import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from bucketctl.core.errors import ManifestParseError, NotFoundError
from bucketctl.core.events import EventBus
from bucketctl.models.bucket import DEFAULT_PRIORITY, Bucket
from bucketctl.models.event import Event, EventKind
from bucketctl.models.manifest import Manifest
from bucketctl.utils.shell import command_exists, run_git

logger = logging.getLogger(__name__)


def load_manifest(path: Path, name: str | None = None) -> Manifest:
    """Load and validate one manifest file.

    Args:
        path: Path to the manifest JSON file.
        name: Package name; defaults to the file stem.

    Returns:
        Validated Manifest.

    Raises:
        ManifestParseError: If the file cannot be read, parsed or validated.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ManifestParseError(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise ManifestParseError(f"Failed to read manifest {path}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestParseError(f"Manifest {path} is not a JSON object")

    try:
        return Manifest.model_validate({**data, "name": name or path.stem})
    except ValidationError as e:
        raise ManifestParseError(f"Invalid manifest {path}: {e}") from e


class BucketSource:
    """Read access to the locally synced buckets.

    Attributes:
        buckets_dir: Directory holding one subdirectory per bucket.
        priorities: Bucket names, highest priority first.
    """

    def __init__(self, buckets_dir: Path, priorities: Sequence[str] = ()) -> None:
        self.buckets_dir = buckets_dir
        self.priorities = list(priorities)

    def _priority_of(self, name: str) -> int:
        if name in self.priorities:
            return self.priorities.index(name)
        return DEFAULT_PRIORITY

    def list_buckets(self) -> list[Bucket]:
        """List subscribed buckets, in subscription (directory name) order.

        Returns:
            Buckets with their configured priority; empty if the buckets
            directory does not exist.
        """
        if not self.buckets_dir.is_dir():
            return []
        dirs = sorted(p for p in self.buckets_dir.iterdir() if p.is_dir())
        return [
            Bucket(name=d.name, path=d, priority=self._priority_of(d.name), order=i)
            for i, d in enumerate(dirs)
        ]

    def get_bucket(self, name: str) -> Bucket:
        """Find a subscribed bucket by name.

        Raises:
            NotFoundError: If no such bucket is subscribed.
        """
        for bucket in self.list_buckets():
            if bucket.name == name:
                return bucket
        raise NotFoundError(name, f"Bucket not found: {name}")

    def manifests(self, bucket: Bucket) -> dict[str, Manifest]:
        """Load every live manifest of a bucket.

        Files that fail to parse are logged and skipped.

        Returns:
            Mapping of package name to manifest.
        """
        manifests: dict[str, Manifest] = {}
        manifest_dir = bucket.manifest_dir
        if not manifest_dir.is_dir():
            return manifests

        for path in sorted(manifest_dir.glob("*.json")):
            try:
                manifests[path.stem] = load_manifest(path)
            except ManifestParseError as e:
                logger.warning("Skipping manifest in bucket %s: %s", bucket.name, e)
        return manifests

    def old_manifest(self, bucket: Bucket, name: str, version: str) -> Manifest | None:
        """Load a superseded manifest from the bucket's old-versions area.

        Returns:
            The manifest, or None if absent or unparseable.
        """
        path = bucket.old_manifest_path(name, version)
        if not path.is_file():
            return None
        try:
            return load_manifest(path, name)
        except ManifestParseError as e:
            logger.warning("Ignoring old manifest %s: %s", path, e)
            return None

    def refresh(self, bus: EventBus | None = None, names: Sequence[str] = ()) -> dict[str, bool]:
        """Update git-backed buckets with ``git pull --ff-only``.

        Non-git buckets are left alone and count as refreshed. A failing
        bucket does not stop the others.

        Args:
            bus: Event bus receiving refresh events.
            names: Buckets to refresh; all when empty.

        Returns:
            Mapping of bucket name to refresh success.
        """
        results: dict[str, bool] = {}
        has_git = command_exists("git")

        for bucket in self.list_buckets():
            if names and bucket.name not in names:
                continue
            if bus is not None:
                bus.emit(Event(EventKind.BUCKET_REFRESH_START, package=bucket.name))

            error: str | None = None
            if bucket.is_git_repo:
                if not has_git:
                    error = "git is not installed"
                else:
                    try:
                        result = run_git(bucket.path, "pull", "--ff-only", "--quiet")
                        if not result.success:
                            error = result.error_message
                    except (OSError, subprocess.TimeoutExpired) as e:
                        error = str(e)

            results[bucket.name] = error is None
            if error is None:
                logger.debug("Refreshed bucket %s", bucket.name)
                if bus is not None:
                    bus.emit(Event(EventKind.BUCKET_REFRESH_DONE, package=bucket.name))
            else:
                logger.warning("Failed to refresh bucket %s: %s", bucket.name, error)
                if bus is not None:
                    bus.emit(
                        Event(EventKind.BUCKET_REFRESH_FAILED, package=bucket.name, message=error)
                    )

        return results
