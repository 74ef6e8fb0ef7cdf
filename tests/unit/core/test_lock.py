"""Unit tests for the install lock."""

from pathlib import Path

import pytest
from bucketctl.core.errors import LockContentionError
from bucketctl.core.lock import InstallLock


class TestInstallLock:
    """Tests for InstallLock."""

    def test_acquire_and_release(self, tmp_path: Path) -> None:
        """The lock writes the holder pid and can be released."""
        lock = InstallLock(tmp_path / ".lock")

        with lock:
            assert lock.held
            assert (tmp_path / ".lock").read_text().isdigit()
        assert not lock.held

    def test_contention(self, tmp_path: Path) -> None:
        """A second holder is refused while the first holds the lock."""
        path = tmp_path / ".lock"
        with InstallLock(path), pytest.raises(LockContentionError, match="in progress"):
            InstallLock(path).acquire()

    def test_reacquire_after_release(self, tmp_path: Path) -> None:
        """The lock can be taken again once released."""
        path = tmp_path / ".lock"
        with InstallLock(path):
            pass
        with InstallLock(path) as lock:
            assert lock.held

    def test_creates_parent(self, tmp_path: Path) -> None:
        """The lock file's directory is created on demand."""
        with InstallLock(tmp_path / "new" / ".lock"):
            assert (tmp_path / "new").is_dir()
