"""Error taxonomy for bucketctl.

Resolution errors (NotFoundError, AmbiguousError) are collected as plan
diagnostics; CycleError aborts resolution before any I/O; step errors
(IntegrityError, TransportError, FilesystemError) fail one plan step;
LockContentionError is fatal to the whole invocation.
"""

from collections.abc import Sequence
from pathlib import Path


class BucketctlError(Exception):
    """Base exception for all bucketctl errors."""


class NotFoundError(BucketctlError):
    """Raised when a name matches no manifest."""

    def __init__(self, name: str, detail: str | None = None) -> None:
        self.name = name
        super().__init__(detail or f"Could not find package: {name}")


class AmbiguousError(BucketctlError):
    """Raised when a name matches manifests in several equal-priority buckets."""

    def __init__(self, name: str, buckets: Sequence[str]) -> None:
        self.name = name
        self.buckets = tuple(buckets)
        listing = ", ".join(f"{b}/{name}" for b in self.buckets)
        super().__init__(f"Multiple candidates for '{name}': {listing}")


class CycleError(BucketctlError):
    """Raised when manifests depend on each other in a cycle.

    Attributes:
        path: Package names along the cycle, first name repeated at the end.
    """

    def __init__(self, path: Sequence[str]) -> None:
        self.path = list(path)
        super().__init__(f"Cyclic dependency: {' -> '.join(self.path)}")


class DependentExistsError(BucketctlError):
    """Raised when uninstalling a package that installed packages depend on."""

    def __init__(self, name: str, dependents: Sequence[str]) -> None:
        self.name = name
        self.dependents = tuple(dependents)
        super().__init__(f"'{name}' is required by: {', '.join(self.dependents)}")


class IntegrityError(BucketctlError):
    """Raised when a downloaded artifact does not match its declared digest."""

    def __init__(self, url: str, algorithm: str, expected: str, actual: str) -> None:
        self.url = url
        self.algorithm = algorithm
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{algorithm} mismatch for {url}: expected {expected}, got {actual}"
        )


class TransportError(BucketctlError):
    """Raised when downloading an artifact fails."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class FilesystemError(BucketctlError):
    """Raised when an extraction, move or removal fails."""


class LockContentionError(BucketctlError):
    """Raised when another operation holds the install-state lock."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Another bucketctl operation is in progress (lock: {path})")


class PackageNotInstalledError(BucketctlError):
    """Raised when an operation needs an installed package that is not installed."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Package '{name}' is not installed")


class ManifestError(BucketctlError):
    """Base exception for manifest-related errors."""


class ManifestParseError(ManifestError):
    """Raised when a manifest file cannot be parsed or validated."""


class ConfigError(BucketctlError):
    """Raised when the configuration cannot be read, validated or written."""


class StateError(BucketctlError):
    """Raised when the install-state store cannot be read or written."""
