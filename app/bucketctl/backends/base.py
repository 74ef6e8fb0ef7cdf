"""Abstract collaborators used by the sync engine.

The engine performs all network, hashing and filesystem work through
these interfaces so it can run against real backends or test fakes.
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

from bucketctl.models.manifest import Artifact, Manifest

# Receives (bytes so far, expected total or 0)
ProgressCallback = Callable[[int, int], None]


class Downloader(ABC):
    """Fetches artifacts over the network."""

    @abstractmethod
    def fetch(
        self,
        url: str,
        dest: Path,
        *,
        cookies: Mapping[str, str] | None = None,
        progress: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
    ) -> int:
        """Download a URL into a file.

        Args:
            url: Artifact URL, possibly carrying a ``#/rename`` fragment.
            dest: File to write; overwritten if present.
            cookies: Cookies to send with the request.
            progress: Called as bytes arrive.
            cancel: Aborts the transfer when set.

        Returns:
            Number of bytes written.

        Raises:
            TransportError: If the transfer fails or is cancelled.
        """

    @abstractmethod
    def content_length(self, url: str, *, cookies: Mapping[str, str] | None = None) -> int | None:
        """Size of the resource in bytes, or None when the server does not say."""

    def close(self) -> None:  # noqa: B027
        """Release network resources."""


class Hasher(ABC):
    """Computes file digests."""

    @abstractmethod
    def digest(self, algorithm: str, path: Path) -> str:
        """Lowercase hex digest of a file.

        Raises:
            ValueError: If the algorithm is not supported.
            OSError: If the file cannot be read.
        """

    def matches(self, algorithm: str, expected: str, path: Path) -> bool:
        """Check a file against an expected digest."""
        return self.digest(algorithm, path) == expected.lower()


class Filesystem(ABC):
    """Install-tree operations.

    Every operation either completes or removes what it created before
    raising FilesystemError.
    """

    @abstractmethod
    def atomic_move(self, src: Path, dst: Path) -> None:
        """Move a file into place atomically."""

    @abstractmethod
    def stage_version_dir(self, name: str, version: str) -> Path:
        """Create an empty staging directory for one version of a package.

        The live version directory, if any, is left untouched until
        commit_version_dir swaps the staged one in.
        """

    @abstractmethod
    def discard_staged_dir(self, name: str, version: str) -> None:
        """Remove a staging directory that will not be committed."""

    @abstractmethod
    def commit_version_dir(self, name: str, version: str) -> Path:
        """Swap the staged directory into place and return the live path.

        A version directory that was already live is kept as a backup until
        finalize_version_dir or rollback_version_dir is called.
        """

    @abstractmethod
    def rollback_version_dir(self, name: str, version: str) -> None:
        """Undo commit_version_dir: restore the backup, or remove the new directory."""

    @abstractmethod
    def finalize_version_dir(self, name: str, version: str) -> None:
        """Drop the backup kept by commit_version_dir."""

    @abstractmethod
    def current_target(self, name: str) -> Path | None:
        """Version directory a package's ``current`` entry points at, if any."""

    @abstractmethod
    def prune_versions(self, name: str) -> list[str]:
        """Remove every version directory except the current one.

        Returns:
            Names of the removed directories.
        """

    @abstractmethod
    def extract(self, archive: Path, dest: Path, artifact: Artifact) -> None:
        """Unpack (or copy) a downloaded artifact into a version directory."""

    @abstractmethod
    def link_persist(
        self, name: str, version_dir: Path, entries: Sequence[tuple[str, str]]
    ) -> None:
        """Link persisted user data into a version directory."""

    @abstractmethod
    def write_shims(self, name: str, shims: Sequence[tuple[str, str]]) -> list[str]:
        """Create shims for a package's executables; returns the aliases."""

    @abstractmethod
    def remove_shims(self, aliases: Sequence[str]) -> None:
        """Remove shims by alias."""

    @abstractmethod
    def update_current(self, name: str, version_dir: Path) -> None:
        """Point a package's ``current`` entry at a version directory."""

    @abstractmethod
    def remove_current(self, name: str) -> None:
        """Remove a package's ``current`` entry."""

    @abstractmethod
    def remove_app(self, name: str) -> None:
        """Remove every version directory of a package."""

    @abstractmethod
    def remove_persist(self, name: str) -> None:
        """Remove a package's persisted user data."""

    @abstractmethod
    def write_manifest(self, version_dir: Path, manifest: Manifest) -> None:
        """Store the installed manifest inside its version directory."""
