"""Install-state persistence.

This module provides the InstallStateStore class which keeps the set of
installed packages in a single JSON document under the data root.
"""

import json
import logging
import os
from dataclasses import replace
from pathlib import Path
from tempfile import NamedTemporaryFile

from bucketctl.core.errors import PackageNotInstalledError, StateError
from bucketctl.core.paths import installed_state_path
from bucketctl.models.package import InstalledRecord, InstalledSet

logger = logging.getLogger(__name__)


class InstallStateStore:
    """Manages the install state in ``<root>/installed.json``.

    The document has the shape ``{"packages": [record, ...]}``. Writes go
    through a temporary file and ``os.replace`` so readers never observe
    a partial document.

    Callers that mutate the state are expected to hold the install lock.
    """

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        """Data root the store lives in."""
        return self._root

    @property
    def path(self) -> Path:
        """Path to the state document."""
        return installed_state_path(self._root)

    def load(self) -> InstalledSet:
        """Read the installed set.

        Corrupt records are logged and skipped.

        Returns:
            InstalledSet; empty if the document does not exist.

        Raises:
            StateError: If the document cannot be read or is not valid JSON.
        """
        if not self.path.exists():
            return InstalledSet()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise StateError(f"Corrupt install state {self.path}: {e}") from e
        except OSError as e:
            raise StateError(f"Failed to read install state: {e}") from e

        raw_records = data.get("packages", []) if isinstance(data, dict) else []
        records: list[InstalledRecord] = []
        for index, raw in enumerate(raw_records):
            try:
                records.append(InstalledRecord.from_dict(raw))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning("Skipping corrupt install record %d: %s", index, str(e))
        return InstalledSet.of(*records)

    def save(self, installed: InstalledSet) -> None:
        """Write the installed set atomically.

        Raises:
            StateError: If the document cannot be written.
        """
        document = {"packages": [record.to_dict() for record in installed.values()]}

        tmp_path: Path | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self.path.parent,
                delete=False,
                suffix=".tmp",
            ) as f:
                tmp_path = Path(f.name)
                json.dump(document, f, indent=2)
                f.write("\n")
            os.replace(str(tmp_path), str(self.path))
        except OSError as e:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise StateError(f"Failed to write install state: {e}") from e

    def upsert(self, record: InstalledRecord) -> InstalledSet:
        """Add or replace one record and persist the result."""
        installed = self.load().with_record(record)
        self.save(installed)
        return installed

    def remove(self, name: str) -> InstalledSet:
        """Drop one record, if present, and persist the result."""
        installed = self.load().without(name)
        self.save(installed)
        return installed

    def set_held(self, name: str, held: bool) -> InstalledRecord:
        """Set or clear the hold flag of an installed package.

        Returns:
            The updated record.

        Raises:
            PackageNotInstalledError: If the package is not installed.
        """
        installed = self.load()
        current = installed.get(name)
        if current is None:
            raise PackageNotInstalledError(name)

        record = replace(current, held=held)
        self.save(installed.with_record(record))
        return record
