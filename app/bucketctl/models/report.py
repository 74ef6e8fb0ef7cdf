"""Sync report models.

The SyncReport summarises the outcome of every plan step, with the cause
of each failure or skip, alongside the diagnostics of the plan.
"""

from dataclasses import dataclass
from enum import Enum

from bucketctl.models.plan import Diagnostic, PlanStep


class StepStatus(str, Enum):
    """Terminal status of a plan step."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class StepOutcome:
    """Outcome of one plan step.

    Attributes:
        step: The plan step.
        status: Terminal status.
        cause: Error text for failures, triggering cause for skips.
    """

    step: PlanStep
    status: StepStatus
    cause: str | None = None

    @property
    def succeeded(self) -> bool:
        """Check if the step succeeded."""
        return self.status == StepStatus.SUCCEEDED


@dataclass(frozen=True, slots=True)
class SyncReport:
    """Summary of a sync run.

    Attributes:
        outcomes: One outcome per plan step, in plan order.
        diagnostics: Diagnostics carried over from the plan.
        cancelled: Whether the run was cancelled.
    """

    outcomes: tuple[StepOutcome, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()
    cancelled: bool = False

    def _with_status(self, status: StepStatus) -> list[StepOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def succeeded(self) -> list[StepOutcome]:
        """Outcomes of steps that succeeded."""
        return self._with_status(StepStatus.SUCCEEDED)

    @property
    def failed(self) -> list[StepOutcome]:
        """Outcomes of steps that failed."""
        return self._with_status(StepStatus.FAILED)

    @property
    def skipped(self) -> list[StepOutcome]:
        """Outcomes of steps that were skipped."""
        return self._with_status(StepStatus.SKIPPED)

    @property
    def ok(self) -> bool:
        """Check if every step succeeded."""
        return all(o.succeeded for o in self.outcomes) and not self.cancelled

    def outcome_of(self, name: str) -> StepOutcome | None:
        """Find the outcome for a package name or ``bucket/name`` identity."""
        for outcome in self.outcomes:
            if name in (outcome.step.package.name, outcome.step.ident):
                return outcome
        return None
