"""Plan execution: download, verify, install and uninstall.

The SyncEngine runs the steps of a ResolutionPlan on a bounded worker
pool. A step is dispatched only once every predecessor step has reached
a terminal state. A failed or skipped step skips its dependents (with the
original failure as cause) while independent branches keep running.
"""

import logging
import threading
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path

from bucketctl.backends.base import Downloader, Filesystem, Hasher
from bucketctl.core.cache import cache_path_for, tmp_path_for
from bucketctl.core.errors import (
    BucketctlError,
    FilesystemError,
    IntegrityError,
    NotFoundError,
    PackageNotInstalledError,
    StateError,
)
from bucketctl.core.events import EventBus
from bucketctl.core.lock import InstallLock
from bucketctl.core.paths import lock_path
from bucketctl.core.state import InstallStateStore
from bucketctl.models.event import Event, EventKind
from bucketctl.models.manifest import Artifact, Manifest
from bucketctl.models.package import InstalledRecord, Package
from bucketctl.models.plan import PlanStep, ResolutionPlan, StepAction
from bucketctl.models.query import QueryOptions
from bucketctl.models.report import StepOutcome, StepStatus, SyncReport

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class DownloadEstimate:
    """Download volume of a plan.

    Attributes:
        to_fetch: Bytes still to download, for artifacts of known size.
        cached: Bytes already present in the cache.
        unknown: Number of artifacts whose size could not be determined.
    """

    to_fetch: int = 0
    cached: int = 0
    unknown: int = 0


class SyncEngine:
    """Executes resolution plans against the install tree.

    Attributes:
        cache_dir: Download cache directory.
        parallelism: Maximum number of steps running at once.
        options: Request options (cache, hash and purge behaviour).
    """

    def __init__(
        self,
        downloader: Downloader,
        hasher: Hasher,
        fs: Filesystem,
        store: InstallStateStore,
        bus: EventBus,
        cache_dir: Path,
        parallelism: int = 4,
        options: QueryOptions | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        self._downloader = downloader
        self._hasher = hasher
        self._fs = fs
        self._store = store
        self._bus = bus
        self.cache_dir = cache_dir
        self.parallelism = max(1, parallelism)
        self.options = options or QueryOptions()
        self._cancel = cancel or threading.Event()
        self._state_lock = threading.Lock()

    def close(self) -> None:
        """Release the downloader's network resources."""
        self._downloader.close()

    @property
    def cancel_event(self) -> threading.Event:
        """Event that stops dispatching new steps when set."""
        return self._cancel

    def execute(self, plan: ResolutionPlan) -> SyncReport:
        """Run every step of a plan.

        The install lock is held for the whole run.

        Returns:
            Report with one outcome per step, in plan order.

        Raises:
            LockContentionError: If another operation holds the lock.
        """
        with InstallLock(lock_path(self._store.root)):
            outcomes = self._run(list(plan.steps))

        report = SyncReport(
            outcomes=tuple(outcomes),
            diagnostics=plan.diagnostics,
            cancelled=self._cancel.is_set(),
        )
        self._bus.emit(
            Event(
                EventKind.SYNC_DONE,
                message=(
                    f"{len(report.succeeded)} succeeded, {len(report.failed)} failed, "
                    f"{len(report.skipped)} skipped"
                ),
            )
        )
        logger.debug("Sync finished: %s", report)
        return report

    def _run(self, steps: list[PlanStep]) -> list[StepOutcome]:
        outcomes: list[StepOutcome | None] = [None] * len(steps)
        remaining = [len(set(step.predecessors)) for step in steps]
        dependents: list[list[int]] = [[] for _ in steps]
        for index, step in enumerate(steps):
            for pred in set(step.predecessors):
                dependents[pred].append(index)

        ready: deque[int] = deque(i for i, count in enumerate(remaining) if count == 0)

        def settle(index: int, outcome: StepOutcome) -> None:
            # Iterative so long chains of skips do not recurse.
            pending = [(index, outcome)]
            while pending:
                current, result = pending.pop()
                outcomes[current] = result
                cause = None
                if result.status == StepStatus.SKIPPED:
                    cause = result.cause
                elif result.status == StepStatus.FAILED:
                    cause = f"dependency {steps[current].ident} failed"
                for dep in dependents[current]:
                    remaining[dep] -= 1
                    if outcomes[dep] is not None:
                        continue
                    if cause is not None:
                        pending.append((dep, self._skip(steps[dep], cause)))
                    elif remaining[dep] == 0:
                        ready.append(dep)

        with ThreadPoolExecutor(
            max_workers=self.parallelism, thread_name_prefix="bucketctl-sync"
        ) as pool:
            running: dict[Future[StepOutcome], int] = {}
            while running or (ready and not self._cancel.is_set()):
                while ready and len(running) < self.parallelism and not self._cancel.is_set():
                    index = ready.popleft()
                    if outcomes[index] is None:
                        running[pool.submit(self._run_step, steps[index])] = index
                if not running:
                    continue
                done, _ = wait(running, return_when=FIRST_COMPLETED)
                for future in done:
                    settle(running.pop(future), future.result())

        for index, outcome in enumerate(outcomes):
            if outcome is None:
                outcomes[index] = self._skip(steps[index], CANCELLED)

        return [o for o in outcomes if o is not None]

    def _skip(self, step: PlanStep, cause: str) -> StepOutcome:
        self._bus.emit(
            Event(
                EventKind.STEP_SKIPPED,
                package=step.package.name,
                bucket=step.package.bucket,
                message=cause,
            )
        )
        logger.debug("Skipped %s: %s", step.ident, cause)
        return StepOutcome(step=step, status=StepStatus.SKIPPED, cause=cause)

    def _run_step(self, step: PlanStep) -> StepOutcome:
        try:
            if step.action == StepAction.REMOVE:
                self._remove(step.package)
            else:
                self._install(step.package)
        except (BucketctlError, OSError) as e:
            logger.info("Step %s %s failed: %s", step.action.value, step.ident, e)
            self._bus.emit(
                Event(
                    EventKind.STEP_FAILED,
                    package=step.package.name,
                    bucket=step.package.bucket,
                    message=str(e),
                )
            )
            return StepOutcome(step=step, status=StepStatus.FAILED, cause=str(e))
        return StepOutcome(step=step, status=StepStatus.SUCCEEDED)

    def _emit(
        self,
        kind: EventKind,
        package: Package,
        message: str = "",
        position: int = 0,
        total: int = 0,
    ) -> None:
        self._bus.emit(
            Event(
                kind,
                package=package.name,
                bucket=package.bucket,
                position=position,
                total=total,
                message=message,
            )
        )

    def _install(self, package: Package) -> None:
        manifest = package.manifest
        if manifest is None:
            raise NotFoundError(package.name, f"No manifest available for {package.ident}")

        self._emit(EventKind.INSTALL_START, package, message=manifest.version)
        artifacts = manifest.artifacts(package.architecture)
        archives = [self._fetch(package, manifest, artifact) for artifact in artifacts]

        if self.options.download_only:
            self._emit(EventKind.INSTALL_DONE, package, message="downloaded")
            return

        name, version = package.name, manifest.version
        with self._state_lock:
            previous = self._store.load().get(name)
        previous_shims = previous.shims if previous is not None else ()
        previous_current = self._fs.current_target(name)

        # Assembled beside the live version and swapped in once complete
        staged = self._fs.stage_version_dir(name, version)
        try:
            for archive, artifact in zip(archives, artifacts, strict=True):
                self._fs.extract(archive, staged, artifact)
            self._fs.link_persist(name, staged, manifest.persist_entries())
            self._fs.write_manifest(staged, manifest)
        except FilesystemError:
            self._fs.discard_staged_dir(name, version)
            raise

        version_dir = self._fs.commit_version_dir(name, version)
        aliases: list[str] = []
        try:
            aliases = self._fs.write_shims(name, manifest.shims(package.architecture))
            self._fs.update_current(name, version_dir)
            record = InstalledRecord(
                name=name,
                version=version,
                bucket=package.bucket,
                architecture=package.architecture,
                held=previous.held if previous is not None else package.is_held,
                dependencies=tuple(manifest.dependencies()),
                shims=tuple(aliases),
            )
            with self._state_lock:
                self._store.upsert(record)
        except (FilesystemError, StateError):
            added = [a for a in aliases if a not in previous_shims]
            self._roll_back(name, version, added, previous_current)
            raise

        self._fs.finalize_version_dir(name, version)
        self._fs.remove_shims([a for a in previous_shims if a not in aliases])
        logger.info("Installed %s %s", package.ident, version)
        self._emit(EventKind.INSTALL_DONE, package, message=version)

    def _roll_back(
        self, name: str, version: str, added_shims: list[str], previous_current: Path | None
    ) -> None:
        """Undo a committed install, back to the previous version if any.

        Failures are logged; the error that triggered the rollback is the
        one reported for the step.
        """
        try:
            self._fs.remove_shims(added_shims)
            self._fs.rollback_version_dir(name, version)
            if previous_current is None:
                self._fs.remove_current(name)
            else:
                self._fs.update_current(name, previous_current)
        except FilesystemError as e:
            logger.error("Failed to roll back %s %s: %s", name, version, e)
        else:
            logger.debug("Rolled back %s %s", name, version)

    def _verify(self, package: Package, artifact: Artifact, path: Path) -> None:
        if artifact.digest is None or self.options.no_hash_check:
            return
        try:
            actual = self._hasher.digest(artifact.algorithm, path)
        except OSError as e:
            raise FilesystemError(f"Cannot hash {path}: {e}") from e
        if actual != artifact.digest:
            self._emit(EventKind.INTEGRITY_FAILURE, package, message=artifact.filename)
            raise IntegrityError(artifact.url, artifact.algorithm, artifact.digest, actual)

    def _fetch(self, package: Package, manifest: Manifest, artifact: Artifact) -> Path:
        """Return a verified cache file for an artifact, downloading if needed."""
        cached = cache_path_for(self.cache_dir, package.name, manifest.version, artifact.url)

        if cached.is_file() and not self.options.ignore_cache:
            try:
                self._verify(package, artifact, cached)
            except IntegrityError:
                logger.info("Discarding stale cache file %s", cached.name)
                cached.unlink(missing_ok=True)
            else:
                self._emit(
                    EventKind.DOWNLOAD_DONE, package, message=f"{artifact.filename} (cached)"
                )
                return cached

        tmp = tmp_path_for(cached)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._emit(EventKind.DOWNLOAD_START, package, message=artifact.filename)

        def progress(position: int, total: int) -> None:
            self._emit(
                EventKind.DOWNLOAD_PROGRESS,
                package,
                position=position,
                total=total,
                message=artifact.filename,
            )

        try:
            self._downloader.fetch(
                artifact.url,
                tmp,
                cookies=manifest.cookie,
                progress=progress,
                cancel=self._cancel,
            )
            self._verify(package, artifact, tmp)
            self._fs.atomic_move(tmp, cached)
        finally:
            tmp.unlink(missing_ok=True)

        self._emit(EventKind.DOWNLOAD_DONE, package, message=artifact.filename)
        return cached

    def _remove(self, package: Package) -> None:
        record = package.installed
        if record is None:
            raise PackageNotInstalledError(package.name)

        self._emit(EventKind.UNINSTALL_START, package, message=record.version)
        self._fs.remove_shims(record.shims)
        self._fs.remove_current(package.name)
        self._fs.remove_app(package.name)
        if self.options.purge:
            self._fs.remove_persist(package.name)

        with self._state_lock:
            self._store.remove(package.name)

        logger.info("Uninstalled %s", package.ident)
        self._emit(EventKind.UNINSTALL_DONE, package, message=record.version)

    def estimate_download_size(self, plan: ResolutionPlan) -> DownloadEstimate:
        """Estimate how much a plan still needs to download.

        Sizes come from the cache and, unless the ``offline`` option is
        set, from the downloader's size probe.
        """
        to_fetch = cached = unknown = 0
        for step in plan.steps:
            manifest = step.package.manifest
            if step.is_removal or manifest is None:
                continue
            for artifact in manifest.artifacts(step.package.architecture):
                path = cache_path_for(
                    self.cache_dir, step.package.name, manifest.version, artifact.url
                )
                if path.is_file() and not self.options.ignore_cache:
                    cached += path.stat().st_size
                    continue
                size = None
                if not self.options.offline:
                    size = self._downloader.content_length(artifact.url, cookies=manifest.cookie)
                if size is None:
                    unknown += 1
                else:
                    to_fetch += size
        return DownloadEstimate(to_fetch=to_fetch, cached=cached, unknown=unknown)
