"""Event records emitted during sync.

Events are tagged, append-only records carried from the sync workers to
a single consumer (usually a progress reporter). The core never reads
them back.
"""

from dataclasses import dataclass
from enum import Enum


class EventKind(str, Enum):
    """Tag of an event record."""

    BUCKET_REFRESH_START = "bucket_refresh_start"
    BUCKET_REFRESH_DONE = "bucket_refresh_done"
    BUCKET_REFRESH_FAILED = "bucket_refresh_failed"
    DOWNLOAD_START = "download_start"
    DOWNLOAD_PROGRESS = "download_progress"
    DOWNLOAD_DONE = "download_done"
    INTEGRITY_FAILURE = "integrity_failure"
    INSTALL_START = "install_start"
    INSTALL_DONE = "install_done"
    UNINSTALL_START = "uninstall_start"
    UNINSTALL_DONE = "uninstall_done"
    STEP_FAILED = "step_failed"
    STEP_SKIPPED = "step_skipped"
    SYNC_DONE = "sync_done"


@dataclass(frozen=True, slots=True)
class Event:
    """A single progress or diagnostics record.

    Attributes:
        kind: Event tag.
        package: Package (or bucket, for refresh events) the event is about.
        bucket: Bucket of the package, if relevant.
        position: Bytes transferred so far (download events).
        total: Expected total bytes, 0 when unknown.
        message: Extra detail: file name, error text or skip cause.
    """

    kind: EventKind
    package: str = ""
    bucket: str = ""
    position: int = 0
    total: int = 0
    message: str = ""

    @property
    def ident(self) -> str:
        """``bucket/name`` identity of the package, or the bare name."""
        if self.bucket:
            return f"{self.bucket}/{self.package}"
        return self.package

    @property
    def is_terminal(self) -> bool:
        """Check if this event closes a plan step."""
        return self.kind in (
            EventKind.INSTALL_DONE,
            EventKind.UNINSTALL_DONE,
            EventKind.STEP_FAILED,
            EventKind.STEP_SKIPPED,
        )
