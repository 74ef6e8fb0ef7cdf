"""Process-level lock guarding the install state.

Only one mutating operation may run against a data root at a time. The
lock is an advisory ``flock`` on ``<root>/.lock`` and is released when
the holding process exits, even on a crash.
"""

import fcntl
import logging
import os
from pathlib import Path
from types import TracebackType

from bucketctl.core.errors import FilesystemError, LockContentionError

logger = logging.getLogger(__name__)


class InstallLock:
    """Non-blocking exclusive lock on a lock file.

    Use as a context manager::

        with InstallLock(lock_path):
            ...

    Raises:
        LockContentionError: On enter, if another process holds the lock.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._fd: int | None = None

    @property
    def held(self) -> bool:
        """Check if this instance currently holds the lock."""
        return self._fd is not None

    def acquire(self) -> None:
        """Acquire the lock without waiting."""
        if self._fd is not None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            raise FilesystemError(f"Cannot open lock file {self.path}: {e}") from e

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as e:
            os.close(fd)
            raise LockContentionError(self.path) from e
        except OSError as e:
            os.close(fd)
            raise FilesystemError(f"Cannot lock {self.path}: {e}") from e

        os.ftruncate(fd, 0)
        os.write(fd, str(os.getpid()).encode())
        self._fd = fd
        logger.debug("Acquired install lock %s", self.path)

    def release(self) -> None:
        """Release the lock if held."""
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None
        logger.debug("Released install lock %s", self.path)

    def __enter__(self) -> "InstallLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
