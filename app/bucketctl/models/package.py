"""Package models for resolution and install state.

This module defines the resolved Package entity together with the
install-state records that outlive a single invocation.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from bucketctl.models.manifest import ArchitectureType, Manifest
from bucketctl.models.query import split_qualified


def dependency_name(dep: str) -> str:
    """Strip an optional bucket qualifier from a dependency entry."""
    return split_qualified(dep)[1]


@dataclass(frozen=True, slots=True)
class InstalledRecord:
    """Install state of one installed package.

    Attributes:
        name: Package name.
        version: Installed version.
        bucket: Bucket the package was installed from.
        architecture: Architecture the artifacts were chosen for.
        held: Whether the package is excluded from upgrades.
        dependencies: Dependency entries of the installed manifest.
        shims: Shim aliases created for the package.
        installed_at: ISO 8601 timestamp of the install.
    """

    name: str
    version: str
    bucket: str
    architecture: str = "64bit"
    held: bool = False
    dependencies: tuple[str, ...] = ()
    shims: tuple[str, ...] = ()
    installed_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def __post_init__(self) -> None:
        """Validate record data after initialization."""
        if not self.name:
            msg = "Package name cannot be empty"
            raise ValueError(msg)
        if not self.version:
            msg = "Package version cannot be empty"
            raise ValueError(msg)

    @property
    def dependency_names(self) -> tuple[str, ...]:
        """Dependency names without bucket qualifiers."""
        return tuple(dependency_name(d) for d in self.dependencies)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage.

        Returns:
            Dictionary representation of the record.
        """
        return {
            "name": self.name,
            "version": self.version,
            "bucket": self.bucket,
            "architecture": self.architecture,
            "held": self.held,
            "dependencies": list(self.dependencies),
            "shims": list(self.shims),
            "installed_at": self.installed_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InstalledRecord":
        """Deserialize from dictionary.

        Args:
            data: Dictionary containing record data.

        Returns:
            InstalledRecord instance.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If field values are invalid.
        """
        return cls(
            name=data["name"],
            version=data["version"],
            bucket=data["bucket"],
            architecture=data.get("architecture", "64bit"),
            held=bool(data.get("held", False)),
            dependencies=tuple(data.get("dependencies", ())),
            shims=tuple(data.get("shims", ())),
            installed_at=data.get("installed_at") or datetime.now(UTC).isoformat(),
        )


class InstalledSet(Mapping[str, InstalledRecord]):
    """Immutable mapping of package name to install record.

    Updates return new sets, so a loaded set can be shared by the
    resolver without copying.
    """

    __slots__ = ("_records",)

    def __init__(self, records: Mapping[str, InstalledRecord] | None = None) -> None:
        self._records: dict[str, InstalledRecord] = dict(sorted((records or {}).items()))

    @classmethod
    def of(cls, *records: InstalledRecord) -> "InstalledSet":
        """Build a set from records."""
        return cls({r.name: r for r in records})

    def __getitem__(self, name: str) -> InstalledRecord:
        return self._records[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"InstalledSet({list(self._records)})"

    def names(self) -> list[str]:
        """Installed package names, sorted."""
        return list(self._records)

    def with_record(self, record: InstalledRecord) -> "InstalledSet":
        """Return a new set with the record added or replaced."""
        return InstalledSet({**self._records, record.name: record})

    def without(self, name: str) -> "InstalledSet":
        """Return a new set with the named record removed."""
        return InstalledSet({k: v for k, v in self._records.items() if k != name})

    def dependents_of(self, name: str) -> list[InstalledRecord]:
        """Installed records whose dependencies include the given name."""
        return [r for r in self._records.values() if name in r.dependency_names]


@dataclass(frozen=True, slots=True, eq=False)
class Package:
    """A manifest bound to a bucket and architecture, with install state.

    Identity is ``bucket/name``; two packages with the same name from
    different buckets are different packages.

    Attributes:
        name: Package name.
        bucket: Bucket providing the manifest.
        manifest: Candidate manifest. None only for an installed package
            whose manifest is no longer available in any bucket.
        architecture: Architecture used to pick artifacts.
        installed: Install record if the package is installed.
    """

    name: str
    bucket: str
    manifest: Manifest | None
    architecture: ArchitectureType = "64bit"
    installed: InstalledRecord | None = None

    def __post_init__(self) -> None:
        """Validate package data after initialization."""
        if not self.name:
            msg = "Package name cannot be empty"
            raise ValueError(msg)
        if self.manifest is None and self.installed is None:
            msg = f"Package {self.name} needs a manifest or an install record"
            raise ValueError(msg)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Package):
            return NotImplemented
        return self.ident == other.ident

    def __hash__(self) -> int:
        return hash(self.ident)

    @property
    def ident(self) -> str:
        """Unique identity in the form ``bucket/name``."""
        return f"{self.bucket}/{self.name}"

    @property
    def version(self) -> str:
        """Candidate version, or the installed one when no manifest is known."""
        if self.manifest is not None:
            return self.manifest.version
        return self._record().version

    @property
    def is_installed(self) -> bool:
        """Check if the package is installed."""
        return self.installed is not None

    @property
    def installed_version(self) -> str | None:
        """Installed version, if any."""
        return self.installed.version if self.installed is not None else None

    @property
    def is_held(self) -> bool:
        """Check if the package is installed and held."""
        return self.installed is not None and self.installed.held

    @property
    def is_up_to_date(self) -> bool:
        """Check if installed at the candidate version from the same bucket."""
        return (
            self.installed is not None
            and self.installed.version == self.version
            and self.installed.bucket == self.bucket
        )

    @property
    def dependencies(self) -> list[str]:
        """Dependency entries, from the manifest when available."""
        if self.manifest is not None:
            return self.manifest.dependencies()
        return list(self._record().dependencies)

    def _record(self) -> InstalledRecord:
        if self.installed is None:
            msg = f"Package {self.name} has no install record"
            raise ValueError(msg)
        return self.installed

    def with_installed(self, record: InstalledRecord | None) -> "Package":
        """Return a copy bound to a different install record."""
        return replace(self, installed=record)
