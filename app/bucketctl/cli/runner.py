"""Resolve, confirm and execute a request from the command line.

install, upgrade and uninstall share one flow: resolve the request, show
the plan, ask for confirmation, then run the sync engine in a worker
thread while this thread renders its events.
"""

import threading

import typer
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TransferSpeedColumn,
)

from bucketctl.cli.display import (
    create_plan_table,
    create_report_table,
    print_diagnostics,
    print_plan_summary,
    print_report_summary,
)
from bucketctl.cli.session import create_engine, open_session
from bucketctl.core.errors import CycleError, LockContentionError
from bucketctl.core.events import EventBus
from bucketctl.core.resolver import resolve
from bucketctl.core.sync import SyncEngine
from bucketctl.models.event import Event, EventKind
from bucketctl.models.plan import ResolutionPlan
from bucketctl.models.query import OperationKind, QuerySpec
from bucketctl.models.report import SyncReport
from bucketctl.utils.formatting import console, print_error, print_info, print_success


def _confirm_steps(step_count: int) -> bool:
    """Prompt user to confirm plan execution."""
    return typer.confirm(f"\nProceed with {step_count} step(s)?", default=False)


def _has_errors(plan: ResolutionPlan) -> bool:
    return any(d.is_error for d in plan.diagnostics)


def run_request(spec: QuerySpec, *, dry_run: bool = False, quiet: bool = False) -> None:
    """Run one install, upgrade or uninstall request end to end.

    Raises:
        typer.Exit: With code 1 if resolution aborted, a name could not be
            resolved, or any step did not succeed.
    """
    session = open_session()

    try:
        plan = resolve(spec, session.catalog)
    except CycleError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_diagnostics(plan.diagnostics)
    if plan.is_empty:
        if not _has_errors(plan):
            print_success("Nothing to do.")
        raise typer.Exit(code=1 if _has_errors(plan) else 0)

    bus = EventBus()
    engine = create_engine(session, bus, spec.options)
    try:
        report = _confirm_and_run(spec, plan, engine, bus, dry_run=dry_run, quiet=quiet)
    finally:
        engine.close()

    console.print(create_report_table(report))
    print_report_summary(report)

    if not report.ok or _has_errors(plan):
        raise typer.Exit(code=1)


def _confirm_and_run(
    spec: QuerySpec,
    plan: ResolutionPlan,
    engine: SyncEngine,
    bus: EventBus,
    *,
    dry_run: bool,
    quiet: bool,
) -> SyncReport:
    console.print(create_plan_table(plan, dry_run))
    estimate = None
    if spec.kind != OperationKind.UNINSTALL:
        estimate = engine.estimate_download_size(plan)
    print_plan_summary(plan, estimate)

    if dry_run:
        print_info("\nDry-run mode: No changes were made.")
        raise typer.Exit(code=1 if _has_errors(plan) else 0)

    if not spec.options.assume_yes and not _confirm_steps(len(plan.steps)):
        print_info("Aborted.")
        raise typer.Exit(code=0)

    try:
        return run_plan(engine, plan, bus, quiet=quiet)
    except LockContentionError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def run_plan(
    engine: SyncEngine, plan: ResolutionPlan, bus: EventBus, quiet: bool = False
) -> SyncReport:
    """Execute a plan in a worker thread and render its events here.

    Ctrl-C cancels the run: steps not yet started are skipped and running
    ones finish.
    """
    reports: list[SyncReport] = []
    errors: list[Exception] = []

    def work() -> None:
        try:
            reports.append(engine.execute(plan))
        except Exception as e:  # re-raised on the calling thread
            errors.append(e)
        finally:
            bus.close()

    worker = threading.Thread(target=work, name="bucketctl-engine", daemon=True)
    worker.start()

    renderer = _EventRenderer(quiet=quiet)
    with renderer.progress:
        try:
            bus.pump(renderer.handle)
        except KeyboardInterrupt:
            engine.cancel_event.set()
            console.print("[warning]Cancelling: waiting for running steps...[/warning]")
            bus.pump(renderer.handle)
    worker.join()

    if errors:
        raise errors[0]
    return reports[0]


class _EventRenderer:
    """Turns sync events into progress bars and status lines."""

    def __init__(self, quiet: bool = False) -> None:
        self.quiet = quiet
        self.progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=None),
            DownloadColumn(),
            TransferSpeedColumn(),
            console=console,
            transient=True,
            disable=quiet,
        )
        self._tasks: dict[tuple[str, str], TaskID] = {}

    def _line(self, text: str) -> None:
        if not self.quiet:
            self.progress.console.print(text)

    def handle(self, event: Event) -> None:
        key = (event.ident, event.message)
        if event.kind == EventKind.DOWNLOAD_START:
            self._tasks[key] = self.progress.add_task(f"{event.ident} {event.message}", total=None)
        elif event.kind == EventKind.DOWNLOAD_PROGRESS:
            task = self._tasks.get(key)
            if task is not None:
                self.progress.update(task, completed=event.position, total=event.total or None)
        elif event.kind == EventKind.DOWNLOAD_DONE:
            task = self._tasks.pop(key, None)
            if task is not None:
                self.progress.remove_task(task)
            self._line(f"[muted]Downloaded {event.ident}: {event.message}[/muted]")
        elif event.kind == EventKind.INTEGRITY_FAILURE:
            self._line(f"[error]Hash mismatch[/error] for {event.ident}: {event.message}")
        elif event.kind == EventKind.INSTALL_DONE:
            self._line(f"[success]Installed[/success] {event.ident} ({event.message})")
        elif event.kind == EventKind.UNINSTALL_DONE:
            self._line(f"[success]Uninstalled[/success] {event.ident} ({event.message})")
        elif event.kind == EventKind.STEP_FAILED:
            self._line(f"[error]Failed[/error] {event.ident}: {event.message}")
        elif event.kind == EventKind.STEP_SKIPPED:
            self._line(f"[warning]Skipped[/warning] {event.ident}: {event.message}")
