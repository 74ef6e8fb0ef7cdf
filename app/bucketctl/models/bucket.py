"""Bucket model.

A bucket is a named, locally synced directory of manifest files. Buckets
are ranked by priority; the rank is the tie-break when several buckets
declare the same package name.
"""

from dataclasses import dataclass
from pathlib import Path

# Priority assigned to buckets not listed in the configuration
DEFAULT_PRIORITY = 100


@dataclass(frozen=True, slots=True)
class Bucket:
    """A subscribed manifest repository.

    Attributes:
        name: Bucket name (directory name under the buckets root).
        path: Local directory holding the bucket.
        priority: Candidate selection rank; lower values win.
        order: Position in subscription order, used for stable display.
    """

    name: str
    path: Path
    priority: int = DEFAULT_PRIORITY
    order: int = 0

    def __post_init__(self) -> None:
        """Validate bucket data after initialization."""
        if not self.name:
            msg = "Bucket name cannot be empty"
            raise ValueError(msg)
        if "/" in self.name:
            msg = f"Bucket name cannot contain '/': {self.name}"
            raise ValueError(msg)

    @property
    def manifest_dir(self) -> Path:
        """Directory containing the live manifests.

        Buckets may keep their manifests in a ``bucket/`` subdirectory.
        """
        nested = self.path / "bucket"
        if nested.is_dir():
            return nested
        return self.path

    @property
    def old_versions_dir(self) -> Path:
        """Directory holding superseded manifests (``old/<name>/<version>.json``)."""
        return self.path / "old"

    def manifest_path(self, name: str) -> Path:
        """Path of the live manifest for a package name."""
        return self.manifest_dir / f"{name}.json"

    def old_manifest_path(self, name: str, version: str) -> Path:
        """Path of a superseded manifest for a package version."""
        return self.old_versions_dir / name / f"{version}.json"

    @property
    def is_git_repo(self) -> bool:
        """Check if the bucket is a git checkout that can be refreshed."""
        return (self.path / ".git").exists()
