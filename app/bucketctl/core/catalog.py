"""Manifest catalog: candidate lookup across buckets.

The catalog is an in-memory snapshot of every bucket's manifests plus the
install state. It answers "which manifest does this name mean" for the
resolver and never touches the network.
"""

import fnmatch
import logging
from collections.abc import Mapping, Sequence

from bucketctl.core.buckets import BucketSource
from bucketctl.core.errors import AmbiguousError, NotFoundError
from bucketctl.models.bucket import Bucket
from bucketctl.models.manifest import ArchitectureType, Manifest
from bucketctl.models.package import InstalledRecord, InstalledSet, Package
from bucketctl.models.query import split_qualified

logger = logging.getLogger(__name__)


class ManifestCatalog:
    """Snapshot of bucket manifests and install state.

    Attributes:
        installed: Install state the catalog was built with.
        architecture: Architecture packages are bound to.
    """

    def __init__(
        self,
        buckets: Sequence[Bucket],
        manifests: Mapping[str, Mapping[str, Manifest]],
        installed: InstalledSet | None = None,
        architecture: ArchitectureType = "64bit",
        source: BucketSource | None = None,
    ) -> None:
        self._buckets = sorted(buckets, key=lambda b: (b.priority, b.order))
        self._manifests = {name: dict(m) for name, m in manifests.items()}
        self._source = source
        self.installed = installed if installed is not None else InstalledSet()
        self.architecture: ArchitectureType = architecture

    @classmethod
    def load(
        cls,
        source: BucketSource,
        installed: InstalledSet,
        architecture: ArchitectureType,
    ) -> "ManifestCatalog":
        """Build a catalog by reading every bucket through a bucket source."""
        buckets = source.list_buckets()
        manifests = {bucket.name: source.manifests(bucket) for bucket in buckets}
        logger.debug(
            "Loaded %d manifest(s) from %d bucket(s)",
            sum(len(m) for m in manifests.values()),
            len(buckets),
        )
        return cls(buckets, manifests, installed, architecture, source)

    @property
    def buckets(self) -> list[Bucket]:
        """Buckets in candidate order (priority, then subscription order)."""
        return list(self._buckets)

    def get_bucket(self, name: str) -> Bucket | None:
        """Find a bucket by name."""
        for bucket in self._buckets:
            if bucket.name == name:
                return bucket
        return None

    def manifest_in(self, bucket: str, name: str) -> Manifest | None:
        """The live manifest of a name in one bucket, if declared."""
        return self._manifests.get(bucket, {}).get(name)

    def find_candidates(self, name: str) -> list[tuple[Bucket, Manifest]]:
        """All buckets declaring a name, in candidate order."""
        candidates: list[tuple[Bucket, Manifest]] = []
        for bucket in self._buckets:
            manifest = self.manifest_in(bucket.name, name)
            if manifest is not None:
                candidates.append((bucket, manifest))
        return candidates

    def _package(self, bucket: Bucket, manifest: Manifest) -> Package:
        return Package(
            name=manifest.name,
            bucket=bucket.name,
            manifest=manifest,
            architecture=self.architecture,
            installed=self.installed.get(manifest.name),
        )

    def resolve_one(self, query: str, preferred_bucket: str | None = None) -> Package:
        """Select the manifest a name refers to.

        Rules, first match wins:

        1. A bucket-qualified name (``bucket/name``) searches only that bucket.
        2. A preferred bucket declaring the name is chosen.
        3. An installed package's recorded bucket is chosen while it still
           declares the name.
        4. The highest-priority bucket is chosen; several buckets sharing
           that priority make the name ambiguous.

        Args:
            query: Plain or bucket-qualified package name.
            preferred_bucket: Bucket to prefer over the default order.

        Returns:
            Package bound to the chosen manifest and its install record.

        Raises:
            NotFoundError: If no bucket declares the name.
            AmbiguousError: If the top-priority group holds several buckets.
        """
        bucket_name, name = split_qualified(query)

        if bucket_name is not None:
            bucket = self.get_bucket(bucket_name)
            manifest = self.manifest_in(bucket_name, name) if bucket is not None else None
            if bucket is None or manifest is None:
                raise NotFoundError(query)
            return self._package(bucket, manifest)

        candidates = self.find_candidates(name)
        if not candidates:
            raise NotFoundError(name)

        if preferred_bucket is not None:
            for bucket, manifest in candidates:
                if bucket.name == preferred_bucket:
                    return self._package(bucket, manifest)

        record = self.installed.get(name)
        if record is not None:
            for bucket, manifest in candidates:
                if bucket.name == record.bucket:
                    return self._package(bucket, manifest)

        top_priority = candidates[0][0].priority
        top_group = [c for c in candidates if c[0].priority == top_priority]
        if len(top_group) > 1:
            raise AmbiguousError(name, [bucket.name for bucket, _ in candidates])

        bucket, manifest = candidates[0]
        return self._package(bucket, manifest)

    def match(self, pattern: str) -> list[str]:
        """Names in the catalog matching an fnmatch pattern.

        A qualified pattern (``bucket/py*``) yields qualified names from
        that bucket only.

        Returns:
            Matching names, sorted and without duplicates.
        """
        bucket_name, name_pattern = split_qualified(pattern)
        if bucket_name is not None:
            names = self._manifests.get(bucket_name, {})
            return sorted(
                f"{bucket_name}/{n}" for n in names if fnmatch.fnmatchcase(n, name_pattern)
            )

        found: set[str] = set()
        for names in self._manifests.values():
            found.update(n for n in names if fnmatch.fnmatchcase(n, name_pattern))
        return sorted(found)

    def installed_manifest(self, record: InstalledRecord) -> Manifest | None:
        """The manifest matching an installed version.

        Falls back to the bucket's old-versions area when the live manifest
        has moved on.

        Returns:
            The manifest, or None when no bucket still describes that version.
        """
        live = self.manifest_in(record.bucket, record.name)
        if live is not None and live.version == record.version:
            return live

        bucket = self.get_bucket(record.bucket)
        if bucket is None or self._source is None:
            return None
        return self._source.old_manifest(bucket, record.name, record.version)

    def is_installed(self, name: str) -> bool:
        """Check if a package name is installed."""
        return name in self.installed

    def package_for_record(self, record: InstalledRecord) -> Package:
        """Installed package bound to the live manifest of its recorded bucket.

        The manifest is the installed version's one when the live manifest
        is gone, and None when neither exists.
        """
        manifest = self.manifest_in(record.bucket, record.name)
        if manifest is None:
            manifest = self.installed_manifest(record)
        return Package(
            name=record.name,
            bucket=record.bucket,
            manifest=manifest,
            architecture=self.architecture,
            installed=record,
        )
