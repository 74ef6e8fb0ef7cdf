"""Unit tests for cli/display.py.

Tests for the plan and report tables and summaries shown by install,
upgrade and uninstall.
"""

import io
from collections.abc import Callable
from unittest.mock import patch

import pytest
from bucketctl.cli.display import (
    create_plan_table,
    create_report_table,
    print_diagnostics,
    print_plan_summary,
    print_report_summary,
)
from bucketctl.core.sync import DownloadEstimate
from bucketctl.core.theme import get_theme
from bucketctl.models.package import Package
from bucketctl.models.plan import (
    Diagnostic,
    DiagnosticKind,
    PlanStep,
    ResolutionPlan,
    StepAction,
)
from bucketctl.models.query import OperationKind
from bucketctl.models.report import StepOutcome, StepStatus, SyncReport
from fakes import make_manifest, make_record
from rich.console import Console


def _capture_console_output(func: Callable[..., object], *args: object) -> str:
    """Capture Rich output of a display function.

    Both the stdout and the stderr console are redirected to one buffer.
    """
    buf = io.StringIO()
    test_console = Console(theme=get_theme(), file=buf, color_system=None, width=120)
    with (
        patch("bucketctl.cli.display.console", test_console),
        patch("bucketctl.utils.formatting.console", test_console),
        patch("bucketctl.utils.formatting.err_console", test_console),
    ):
        func(*args)
    return buf.getvalue()


def _render(table: object) -> str:
    buf = io.StringIO()
    Console(theme=get_theme(), file=buf, color_system=None, width=120).print(table)
    return buf.getvalue()


@pytest.fixture
def install_step() -> PlanStep:
    """Install of a package that is not installed."""
    package = Package(name="jq", bucket="main", manifest=make_manifest("jq", "1.7"))
    return PlanStep(package=package, action=StepAction.INSTALL)


@pytest.fixture
def upgrade_step() -> PlanStep:
    """Upgrade of an outdated package."""
    package = Package(
        name="git",
        bucket="main",
        manifest=make_manifest("git", "2.46"),
        installed=make_record("git", "2.45"),
    )
    return PlanStep(package=package, action=StepAction.UPGRADE)


@pytest.fixture
def remove_step() -> PlanStep:
    """Removal of an installed package."""
    package = Package(
        name="vim",
        bucket="extras",
        manifest=make_manifest("vim", "9.1"),
        installed=make_record("vim", "9.0", bucket="extras"),
    )
    return PlanStep(package=package, action=StepAction.REMOVE)


class TestPlanTable:
    """Tests for create_plan_table function."""

    def test_columns_and_title(self, install_step: PlanStep) -> None:
        """The plan table lists action, package, bucket and version."""
        plan = ResolutionPlan(kind=OperationKind.INSTALL, steps=(install_step,))

        table = create_plan_table(plan)

        assert [c.header for c in table.columns] == ["Action", "Package", "Bucket", "Version"]
        assert table.title == "Planned Steps"
        assert table.row_count == 1

    def test_dry_run_title(self, install_step: PlanStep) -> None:
        """Dry runs are marked in the title."""
        plan = ResolutionPlan(kind=OperationKind.INSTALL, steps=(install_step,))

        assert create_plan_table(plan, dry_run=True).title == "Planned Steps (Dry Run)"

    def test_rows(
        self, install_step: PlanStep, upgrade_step: PlanStep, remove_step: PlanStep
    ) -> None:
        """Each action shows the versions it moves between."""
        plan = ResolutionPlan(
            kind=OperationKind.INSTALL, steps=(install_step, upgrade_step, remove_step)
        )

        output = _render(create_plan_table(plan))

        assert "+install" in output
        assert "2.45 -> 2.46" in output
        assert "-remove" in output
        assert "9.0" in output
        assert "9.1" not in output


class TestPlanSummary:
    """Tests for print_plan_summary function."""

    def test_counts(self, install_step: PlanStep, upgrade_step: PlanStep) -> None:
        """The summary counts steps per action."""
        plan = ResolutionPlan(kind=OperationKind.INSTALL, steps=(install_step, upgrade_step))

        output = _capture_console_output(print_plan_summary, plan)

        assert "1 to install" in output
        assert "1 to upgrade" in output
        assert "to remove" not in output

    def test_download_estimate(self, install_step: PlanStep) -> None:
        """A download estimate adds the size line."""
        plan = ResolutionPlan(kind=OperationKind.INSTALL, steps=(install_step,))
        estimate = DownloadEstimate(to_fetch=2048, cached=1024, unknown=1)

        output = _capture_console_output(print_plan_summary, plan, estimate)

        assert "Download size: 2.0 KB (1.0 KB cached) (+1 of unknown size)" in output

    def test_empty_estimate_hidden(self, install_step: PlanStep) -> None:
        """An estimate with nothing to report prints no size line."""
        plan = ResolutionPlan(kind=OperationKind.INSTALL, steps=(install_step,))

        output = _capture_console_output(print_plan_summary, plan, DownloadEstimate())

        assert "Download size" not in output


class TestDiagnostics:
    """Tests for print_diagnostics function."""

    def test_errors_are_warnings(self) -> None:
        """Problems print as warnings, skips as plain lines."""
        diagnostics = [
            Diagnostic(DiagnosticKind.UNRESOLVED_NAME, "nope", "Could not find package: nope"),
            Diagnostic(DiagnosticKind.SKIPPED_HELD, "git", "'git' is held at 2.45"),
        ]

        output = _capture_console_output(print_diagnostics, diagnostics)

        assert "Warning: Could not find package: nope" in output
        assert "Warning: 'git'" not in output
        assert "'git' is held at 2.45" in output


class TestReportTable:
    """Tests for create_report_table and print_report_summary."""

    def test_statuses(
        self, install_step: PlanStep, upgrade_step: PlanStep, remove_step: PlanStep
    ) -> None:
        """Every outcome shows its status and cause."""
        report = SyncReport(
            outcomes=(
                StepOutcome(install_step, StepStatus.SUCCEEDED),
                StepOutcome(upgrade_step, StepStatus.FAILED, "HTTP 404"),
                StepOutcome(remove_step, StepStatus.SKIPPED, "dependency main/git failed"),
            )
        )

        table = create_report_table(report)
        output = _render(table)

        assert table.title == "Results"
        assert [c.header for c in table.columns] == ["Status", "Action", "Package", "Message"]
        assert "OK" in output
        assert "FAIL" in output
        assert "HTTP 404" in output
        assert "SKIP" in output
        assert "dependency main/git failed" in output

    def test_summary_success(self, install_step: PlanStep) -> None:
        """A clean run prints one success line."""
        report = SyncReport(outcomes=(StepOutcome(install_step, StepStatus.SUCCEEDED),))

        output = _capture_console_output(print_report_summary, report)

        assert "All 1 step(s) completed successfully." in output

    def test_summary_failure(self, install_step: PlanStep, upgrade_step: PlanStep) -> None:
        """A failed run counts each status and notes cancellation."""
        report = SyncReport(
            outcomes=(
                StepOutcome(install_step, StepStatus.FAILED, "boom"),
                StepOutcome(upgrade_step, StepStatus.SKIPPED, "cancelled"),
            ),
            cancelled=True,
        )

        output = _capture_console_output(print_report_summary, report)

        assert "0 succeeded, 1 failed, 1 skipped (cancelled)" in output
