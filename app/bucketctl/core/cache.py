"""Download cache naming and housekeeping.

Cached artifacts live flat in the cache directory under the name
``<name>#<version>#<filenamified url>``. A download in progress uses the
same name with a ``.download`` suffix and is never listed.
"""

import fnmatch
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from bucketctl.core.errors import FilesystemError

logger = logging.getLogger(__name__)

_CACHE_NAME_RE = re.compile(r"^(?P<name>[\w.-]+)#(?P<version>[\w.-]+)#(?P<url>.+)$")
_UNSAFE_RE = re.compile(r"[^\w.-]+")

DOWNLOAD_SUFFIX = ".download"


def filenamify(value: str) -> str:
    """Replace every run of unsafe characters with an underscore."""
    return _UNSAFE_RE.sub("_", value)


def cache_path_for(cache_dir: Path, name: str, version: str, url: str) -> Path:
    """Cache slot of one artifact of one package version."""
    return cache_dir / f"{name}#{filenamify(version)}#{filenamify(url)}"


def tmp_path_for(cache_path: Path) -> Path:
    """In-progress download path of a cache slot."""
    return cache_path.with_name(cache_path.name + DOWNLOAD_SUFFIX)


@dataclass(frozen=True, slots=True)
class CacheFile:
    """A file in the download cache.

    Attributes:
        path: Location of the file.
        name: Package name.
        version: Package version.
        url: Filenamified download URL.
    """

    path: Path
    name: str
    version: str
    url: str

    @classmethod
    def from_path(cls, path: Path) -> "CacheFile | None":
        """Parse a cache file name; None when the name is not a cache slot."""
        if path.name.endswith(DOWNLOAD_SUFFIX):
            return None
        match = _CACHE_NAME_RE.match(path.name)
        if match is None:
            return None
        return cls(path=path, name=match["name"], version=match["version"], url=match["url"])

    @property
    def size(self) -> int:
        """File size in bytes, 0 if the file vanished."""
        try:
            return self.path.stat().st_size
        except OSError:
            return 0


def list_cache(cache_dir: Path, query: str = "*") -> list[CacheFile]:
    """List cache files whose package name matches a query.

    Args:
        cache_dir: Download cache directory.
        query: Package name or fnmatch pattern; ``*`` lists everything.

    Returns:
        Cache files sorted by package name then version.
    """
    if not cache_dir.is_dir():
        return []

    files: list[CacheFile] = []
    for path in cache_dir.iterdir():
        if not path.is_file():
            continue
        entry = CacheFile.from_path(path)
        if entry is not None and fnmatch.fnmatchcase(entry.name, query):
            files.append(entry)
    return sorted(files, key=lambda f: (f.name, f.version, f.url))


def remove_cache(cache_dir: Path, query: str = "*") -> list[CacheFile]:
    """Delete cache files whose package name matches a query.

    ``*`` also removes stale in-progress downloads.

    Returns:
        The removed cache files.

    Raises:
        FilesystemError: If a file cannot be removed.
    """
    removed = list_cache(cache_dir, query)
    try:
        for entry in removed:
            entry.path.unlink(missing_ok=True)
        if query == "*" and cache_dir.is_dir():
            for stale in cache_dir.glob(f"*{DOWNLOAD_SUFFIX}"):
                stale.unlink(missing_ok=True)
    except OSError as e:
        raise FilesystemError(f"Failed to clean cache: {e}") from e

    logger.debug("Removed %d cache file(s) matching %s", len(removed), query)
    return removed


def prune_cache(cache_dir: Path, name: str, keep_version: str) -> list[CacheFile]:
    """Delete a package's cache files except those of one version.

    Returns:
        The removed cache files.

    Raises:
        FilesystemError: If a file cannot be removed.
    """
    keep = filenamify(keep_version)
    removed = [f for f in list_cache(cache_dir, name) if f.name == name and f.version != keep]
    try:
        for entry in removed:
            entry.path.unlink(missing_ok=True)
    except OSError as e:
        raise FilesystemError(f"Failed to clean cache of {name}: {e}") from e
    return removed
