"""Query models describing a user request.

A QuerySpec captures one request: the operation kind, the name patterns
given by the user, and the option flags that tweak resolution and sync.
"""

from dataclasses import dataclass, field
from enum import Enum


class OperationKind(str, Enum):
    """Kind of operation requested by the user.

    Attributes:
        INSTALL: Install packages (and upgrade outdated ones on the way).
        UPGRADE: Upgrade installed packages.
        UNINSTALL: Remove installed packages.
    """

    INSTALL = "install"
    UPGRADE = "upgrade"
    UNINSTALL = "uninstall"


@dataclass(frozen=True, slots=True)
class QueryOptions:
    """Option flags for a request.

    Attributes:
        assume_yes: Do not ask for confirmation.
        offline: Skip the download size probe.
        escape_hold: Operate on held packages as well.
        cascade: Uninstall dependents of removed packages too.
        force: Reinstall packages already at the candidate version.
        purge: Remove persisted user data on uninstall.
        download_only: Stop after artifacts are cached.
        ignore_cache: Download even when a valid cache file exists.
        no_hash_check: Skip digest verification of downloads.
        no_dependencies: Do not expand dependencies.
    """

    assume_yes: bool = False
    offline: bool = False
    escape_hold: bool = False
    cascade: bool = False
    force: bool = False
    purge: bool = False
    download_only: bool = False
    ignore_cache: bool = False
    no_hash_check: bool = False
    no_dependencies: bool = False


@dataclass(frozen=True, slots=True)
class QuerySpec:
    """One user request.

    Attributes:
        kind: Operation to perform.
        patterns: Name patterns; exact (``foo``), qualified (``main/foo``)
            or wildcard (``py*``, ``*``).
        options: Option flags.
    """

    kind: OperationKind
    patterns: tuple[str, ...]
    options: QueryOptions = field(default_factory=QueryOptions)

    def __post_init__(self) -> None:
        """Validate query data after initialization."""
        if not self.patterns:
            msg = "At least one package pattern is required"
            raise ValueError(msg)
        for pattern in self.patterns:
            if not pattern or pattern.endswith("/"):
                msg = f"Invalid package pattern: {pattern!r}"
                raise ValueError(msg)


def split_qualified(name: str) -> tuple[str | None, str]:
    """Split ``bucket/name`` into its parts.

    Args:
        name: Plain or bucket-qualified package name.

    Returns:
        Tuple of (bucket or None, name).
    """
    bucket, sep, bare = name.partition("/")
    if not sep:
        return None, name
    return bucket, bare


def is_wildcard(pattern: str) -> bool:
    """Check if a pattern contains fnmatch wildcards."""
    return any(c in pattern for c in "*?[")
