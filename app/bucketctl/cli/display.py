"""Shared Rich display functions for plans and sync reports.

Provides the table builders and summary printers used by the install,
upgrade and uninstall commands.
"""

from collections.abc import Sequence

from rich.table import Table

from bucketctl.core.sync import DownloadEstimate
from bucketctl.models.plan import Diagnostic, ResolutionPlan, StepAction
from bucketctl.models.report import StepStatus, SyncReport
from bucketctl.utils.formatting import (
    console,
    format_size,
    print_success,
    print_warning,
)

_ACTION_STYLES: dict[StepAction, tuple[str, str]] = {
    StepAction.INSTALL: ("[added]+install[/added]", "added"),
    StepAction.UPGRADE: ("[changed]~upgrade[/changed]", "changed"),
    StepAction.REMOVE: ("[removed]-remove[/removed]", "removed"),
}


def create_plan_table(plan: ResolutionPlan, dry_run: bool = False) -> Table:
    """Create a Rich table listing the steps of a plan in execution order.

    Args:
        plan: Plan to display.
        dry_run: Whether this is a dry-run (changes table title).

    Returns:
        Rich Table with Action, Package, Bucket and Version columns.
    """
    title = "Planned Steps (Dry Run)" if dry_run else "Planned Steps"

    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Action", width=10, justify="center")
    table.add_column("Package", no_wrap=True)
    table.add_column("Bucket", style="package.bucket")
    table.add_column("Version")

    for step in plan.steps:
        action_text, pkg_style = _ACTION_STYLES[step.action]
        package = step.package
        if step.action == StepAction.UPGRADE and package.installed_version != package.version:
            version = f"[muted]{package.installed_version}[/muted] -> {package.version}"
        elif step.action == StepAction.REMOVE:
            version = f"[muted]{package.installed_version}[/muted]"
        else:
            version = package.version
        table.add_row(
            action_text,
            f"[{pkg_style}]{package.name}[/{pkg_style}]",
            package.bucket,
            version,
        )

    return table


def print_plan_summary(plan: ResolutionPlan, estimate: DownloadEstimate | None = None) -> None:
    """Print step counts and, if known, the download volume of a plan."""
    parts: list[str] = []
    if plan.installs:
        parts.append(f"[added]{len(plan.installs)} to install[/added]")
    if plan.upgrades:
        parts.append(f"[changed]{len(plan.upgrades)} to upgrade[/changed]")
    if plan.removals:
        parts.append(f"[removed]{len(plan.removals)} to remove[/removed]")
    if parts:
        console.print(f"\nSummary: {', '.join(parts)}")

    if estimate is not None and (estimate.to_fetch or estimate.cached or estimate.unknown):
        line = f"Download size: [info]{format_size(estimate.to_fetch)}[/info]"
        if estimate.cached:
            line += f" [muted]({format_size(estimate.cached)} cached)[/muted]"
        if estimate.unknown:
            line += f" [muted](+{estimate.unknown} of unknown size)[/muted]"
        console.print(line)


def print_diagnostics(diagnostics: Sequence[Diagnostic]) -> None:
    """Print resolution diagnostics, problems as warnings and skips muted."""
    for diagnostic in diagnostics:
        if diagnostic.is_error:
            print_warning(diagnostic.message)
        else:
            console.print(f"[muted]{diagnostic.message}[/muted]")


def create_report_table(report: SyncReport) -> Table:
    """Create a Rich table with the outcome of every plan step.

    Failed steps show their error, skipped steps the cause of the skip.
    """
    table = Table(
        title="Results",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Status", width=8, justify="center")
    table.add_column("Action", width=8)
    table.add_column("Package", no_wrap=True)
    table.add_column("Message")

    for outcome in report.outcomes:
        if outcome.status == StepStatus.SUCCEEDED:
            status = "[success]OK[/success]"
            message = outcome.step.package.version
        elif outcome.status == StepStatus.FAILED:
            status = "[error]FAIL[/error]"
            message = outcome.cause or "Unknown error"
        else:
            status = "[warning]SKIP[/warning]"
            message = outcome.cause or ""

        table.add_row(
            status,
            outcome.step.action.value,
            outcome.step.ident,
            f"[muted]{message}[/muted]",
        )

    return table


def print_report_summary(report: SyncReport) -> None:
    """Print a one-line summary of a sync report."""
    if report.ok:
        print_success(f"All {len(report.succeeded)} step(s) completed successfully.")
        return
    line = (
        f"\n[success]{len(report.succeeded)} succeeded[/success], "
        f"[error]{len(report.failed)} failed[/error], "
        f"[warning]{len(report.skipped)} skipped[/warning]"
    )
    if report.cancelled:
        line += " [muted](cancelled)[/muted]"
    console.print(line)
