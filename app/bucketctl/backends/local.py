"""Install-tree operations on the local filesystem.

Layout under the data root:

- ``apps/<name>/<version>/``: one directory per installed version
- ``apps/<name>/.<version>.new``: a version being installed, swapped in
  once complete; the directory it replaces waits as ``.<version>.old``
- ``apps/<name>/current``: symlink to the active version
- ``shims/<alias>.shim``: shim pointing at an executable in ``current``
- ``persist/<name>/``: user data linked into every version
"""

import json
import logging
import os
import shutil
import tarfile
import zipfile
from collections.abc import Sequence
from pathlib import Path

from bucketctl.backends.base import Filesystem
from bucketctl.core.errors import FilesystemError
from bucketctl.core.paths import apps_dir, persist_dir, shims_dir
from bucketctl.models.manifest import Artifact, Manifest

logger = logging.getLogger(__name__)

_TAR_SUFFIXES = (".tar", ".tar.gz", ".tgz", ".tar.bz2", ".tbz2", ".tar.xz", ".txz")

MANIFEST_FILENAME = "manifest.json"
SHIM_SUFFIX = ".shim"
STAGED_SUFFIX = ".new"
BACKUP_SUFFIX = ".old"


def _remove_path(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


def archive_kind(filename: str) -> str:
    """Classify an artifact by file name: ``zip``, ``tar`` or ``file``."""
    lowered = filename.lower()
    if lowered.endswith(".zip"):
        return "zip"
    if lowered.endswith(_TAR_SUFFIXES):
        return "tar"
    return "file"


class LocalFilesystem(Filesystem):
    """Filesystem backend rooted at the data root."""

    def __init__(self, root: Path) -> None:
        self.root = root

    @property
    def apps_dir(self) -> Path:
        return apps_dir(self.root)

    @property
    def shims_dir(self) -> Path:
        return shims_dir(self.root)

    @property
    def persist_dir(self) -> Path:
        return persist_dir(self.root)

    def app_dir(self, name: str) -> Path:
        """Directory holding every version of a package."""
        return self.apps_dir / name

    def current_path(self, name: str) -> Path:
        """The ``current`` pointer of a package."""
        return self.app_dir(name) / "current"

    def atomic_move(self, src: Path, dst: Path) -> None:
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            os.replace(src, dst)
        except OSError as e:
            raise FilesystemError(f"Failed to move {src} to {dst}: {e}") from e

    def version_dir(self, name: str, version: str) -> Path:
        """Live directory of one version."""
        return self.app_dir(name) / version

    def _staged_dir(self, name: str, version: str) -> Path:
        return self.app_dir(name) / f".{version}{STAGED_SUFFIX}"

    def _backup_dir(self, name: str, version: str) -> Path:
        return self.app_dir(name) / f".{version}{BACKUP_SUFFIX}"

    def stage_version_dir(self, name: str, version: str) -> Path:
        staged = self._staged_dir(name, version)
        try:
            if staged.exists() or staged.is_symlink():
                _remove_path(staged)
            staged.mkdir(parents=True)
        except OSError as e:
            raise FilesystemError(f"Failed to create {staged}: {e}") from e
        return staged

    def discard_staged_dir(self, name: str, version: str) -> None:
        staged = self._staged_dir(name, version)
        try:
            _remove_path(staged)
        except OSError as e:
            raise FilesystemError(f"Failed to remove {staged}: {e}") from e

    def commit_version_dir(self, name: str, version: str) -> Path:
        live = self.version_dir(name, version)
        staged = self._staged_dir(name, version)
        backup = self._backup_dir(name, version)
        try:
            _remove_path(backup)
            if live.exists() or live.is_symlink():
                os.replace(live, backup)
            try:
                os.replace(staged, live)
            except OSError:
                if backup.exists():
                    os.replace(backup, live)
                raise
        except OSError as e:
            raise FilesystemError(f"Failed to move {staged.name} into place: {e}") from e
        return live

    def rollback_version_dir(self, name: str, version: str) -> None:
        live = self.version_dir(name, version)
        backup = self._backup_dir(name, version)
        try:
            _remove_path(live)
            if backup.exists():
                os.replace(backup, live)
        except OSError as e:
            raise FilesystemError(f"Failed to restore {live}: {e}") from e

    def finalize_version_dir(self, name: str, version: str) -> None:
        backup = self._backup_dir(name, version)
        try:
            _remove_path(backup)
        except OSError as e:
            raise FilesystemError(f"Failed to remove {backup}: {e}") from e

    def current_target(self, name: str) -> Path | None:
        current = self.current_path(name)
        if not current.is_symlink():
            return None
        target = Path(os.readlink(current))
        return target if target.is_absolute() else current.parent / target

    def prune_versions(self, name: str) -> list[str]:
        """Remove old versions and leftover staging directories.

        Nothing is removed while the package has no ``current`` entry.
        """
        target = self.current_target(name)
        if target is None:
            return []
        removed: list[str] = []
        try:
            for child in sorted(self.app_dir(name).iterdir()):
                if child.name == "current" or child.name == target.name:
                    continue
                _remove_path(child)
                removed.append(child.name)
        except OSError as e:
            raise FilesystemError(f"Failed to clean up {name}: {e}") from e
        if removed:
            logger.debug("Removed %s from %s", ", ".join(removed), self.app_dir(name))
        return removed

    def extract(self, archive: Path, dest: Path, artifact: Artifact) -> None:
        """Unpack an artifact into a version directory.

        Archives are unpacked into a staging directory first; the
        ``extract_dir`` subtree (or everything) is then moved under
        ``extract_to`` (or the version directory itself). Plain files are
        copied under their artifact file name.

        Raises:
            FilesystemError: If unpacking fails; the staging directory and
                anything moved so far are removed.
        """
        target = dest / artifact.extract_to if artifact.extract_to else dest
        staging = dest / f".staging-{artifact.filename}"
        moved: list[Path] = []

        try:
            target.mkdir(parents=True, exist_ok=True)
            kind = archive_kind(artifact.filename)
            if kind == "file":
                shutil.copy2(archive, target / artifact.filename)
                return

            staging.mkdir(parents=True)
            if kind == "zip":
                with zipfile.ZipFile(archive) as zf:
                    zf.extractall(staging)
            else:
                with tarfile.open(archive) as tf:
                    tf.extractall(staging, filter="data")

            source = staging / artifact.extract_dir if artifact.extract_dir else staging
            if not source.is_dir():
                raise FilesystemError(
                    f"Directory '{artifact.extract_dir}' not found in {artifact.filename}"
                )
            for child in sorted(source.iterdir()):
                destination = target / child.name
                if destination.exists() or destination.is_symlink():
                    _remove_path(destination)
                shutil.move(str(child), str(destination))
                moved.append(destination)
        except FilesystemError:
            for path in moved:
                _remove_path(path)
            raise
        except (OSError, zipfile.BadZipFile, tarfile.TarError) as e:
            for path in moved:
                _remove_path(path)
            raise FilesystemError(f"Failed to extract {artifact.filename}: {e}") from e
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)

        logger.debug("Extracted %s into %s", artifact.filename, target)

    def link_persist(
        self, name: str, version_dir: Path, entries: Sequence[tuple[str, str]]
    ) -> None:
        """Link persisted data into a version directory.

        Data first seen in the version directory seeds the persist store;
        entries missing from both places start as empty directories.
        """
        store = self.persist_dir / name
        linked: list[Path] = []
        try:
            for source, target in entries:
                persisted = store / target
                local = version_dir / source
                if not persisted.exists():
                    persisted.parent.mkdir(parents=True, exist_ok=True)
                    if local.exists() and not local.is_symlink():
                        shutil.move(str(local), str(persisted))
                    else:
                        persisted.mkdir(parents=True)
                elif local.exists() or local.is_symlink():
                    _remove_path(local)
                local.parent.mkdir(parents=True, exist_ok=True)
                local.symlink_to(persisted, target_is_directory=persisted.is_dir())
                linked.append(local)
        except OSError as e:
            for path in linked:
                path.unlink(missing_ok=True)
            raise FilesystemError(f"Failed to link persisted data of {name}: {e}") from e

    def write_shims(self, name: str, shims: Sequence[tuple[str, str]]) -> list[str]:
        """Write one shim per alias.

        On failure, shims that existed before get their old content back
        and new ones are removed.
        """
        written: list[str] = []
        # Shim path -> previous content, None when the shim is new
        touched: dict[Path, str | None] = {}
        try:
            self.shims_dir.mkdir(parents=True, exist_ok=True)
            for target, alias in shims:
                executable = self.current_path(name) / target.replace("\\", "/")
                shim = self.shims_dir / f"{alias}{SHIM_SUFFIX}"
                if shim not in touched:
                    touched[shim] = shim.read_text(encoding="utf-8") if shim.is_file() else None
                shim.write_text(f'path = "{executable}"\n', encoding="utf-8")
                written.append(alias)
        except OSError as e:
            for shim, content in touched.items():
                if content is not None:
                    shim.write_text(content, encoding="utf-8")
                elif shim.is_file():
                    shim.unlink()
            raise FilesystemError(f"Failed to write shims of {name}: {e}") from e
        return written

    def remove_shims(self, aliases: Sequence[str]) -> None:
        try:
            for alias in aliases:
                (self.shims_dir / f"{alias}{SHIM_SUFFIX}").unlink(missing_ok=True)
        except OSError as e:
            raise FilesystemError(f"Failed to remove shims: {e}") from e

    def update_current(self, name: str, version_dir: Path) -> None:
        current = self.current_path(name)
        staged = current.with_name("current.tmp")
        try:
            if staged.is_symlink() or staged.exists():
                _remove_path(staged)
            staged.symlink_to(version_dir, target_is_directory=True)
            os.replace(staged, current)
        except OSError as e:
            staged.unlink(missing_ok=True)
            raise FilesystemError(f"Failed to switch {name} to {version_dir.name}: {e}") from e

    def remove_current(self, name: str) -> None:
        try:
            self.current_path(name).unlink(missing_ok=True)
        except OSError as e:
            raise FilesystemError(f"Failed to remove current version of {name}: {e}") from e

    def remove_app(self, name: str) -> None:
        app_dir = self.app_dir(name)
        try:
            if app_dir.is_symlink():
                app_dir.unlink()
            elif app_dir.exists():
                shutil.rmtree(app_dir)
        except OSError as e:
            raise FilesystemError(f"Failed to remove {app_dir}: {e}") from e

    def remove_persist(self, name: str) -> None:
        store = self.persist_dir / name
        try:
            if store.exists():
                shutil.rmtree(store)
        except OSError as e:
            raise FilesystemError(f"Failed to remove persisted data of {name}: {e}") from e

    def write_manifest(self, version_dir: Path, manifest: Manifest) -> None:
        path = version_dir / MANIFEST_FILENAME
        data = manifest.model_dump(mode="json", by_alias=True, exclude_none=True)
        try:
            path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        except OSError as e:
            raise FilesystemError(f"Failed to write {path}: {e}") from e
