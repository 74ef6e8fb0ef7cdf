"""Resolution plan models.

A ResolutionPlan is the inspectable result of resolving a request: an
ordered list of steps plus the diagnostics gathered on the way. It is
built once per operation and discarded after sync completes.
"""

from dataclasses import dataclass
from enum import Enum

from bucketctl.models.package import Package
from bucketctl.models.query import OperationKind


class StepAction(str, Enum):
    """Action performed by a plan step.

    Attributes:
        INSTALL: Install a package that is not installed.
        UPGRADE: Replace an installed version with the candidate.
        REMOVE: Uninstall a package.
    """

    INSTALL = "install"
    UPGRADE = "upgrade"
    REMOVE = "remove"


class DiagnosticKind(str, Enum):
    """Kind of a resolution diagnostic."""

    SKIPPED_HELD = "skipped_held"
    SKIPPED_UP_TO_DATE = "skipped_up_to_date"
    AMBIGUOUS_NAME = "ambiguous_name"
    UNRESOLVED_NAME = "unresolved_name"
    UNRESOLVED_DEPENDENCY = "unresolved_dependency"
    DEPENDENT_EXISTS = "dependent_exists"


@dataclass(frozen=True, slots=True)
class PlanStep:
    """One unit of work for one resolved package.

    Attributes:
        package: The package to operate on.
        action: What to do with it.
        predecessors: Indices of steps that must reach a terminal state
            before this step may start.
    """

    package: Package
    action: StepAction
    predecessors: tuple[int, ...] = ()

    @property
    def ident(self) -> str:
        """Identity of the step's package."""
        return self.package.ident

    @property
    def is_removal(self) -> bool:
        """Check if this step uninstalls a package."""
        return self.action == StepAction.REMOVE


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A non-fatal resolution finding reported to the user.

    Attributes:
        kind: Diagnostic category.
        name: Package name or pattern the diagnostic is about.
        message: Human-readable explanation.
        buckets: Buckets involved (ambiguity, origin), if any.
    """

    kind: DiagnosticKind
    name: str
    message: str
    buckets: tuple[str, ...] = ()

    @property
    def is_error(self) -> bool:
        """Check if the diagnostic reports something that was not done."""
        return self.kind not in (DiagnosticKind.SKIPPED_HELD, DiagnosticKind.SKIPPED_UP_TO_DATE)


@dataclass(frozen=True, slots=True)
class ResolutionPlan:
    """Ordered steps plus diagnostics for one request.

    The step order is a valid topological order of the dependency graph
    for the action direction: dependencies first for installs and
    upgrades, dependents first for removals.

    Attributes:
        kind: Operation the plan was resolved for.
        steps: Ordered plan steps.
        diagnostics: Findings collected during resolution.
    """

    kind: OperationKind
    steps: tuple[PlanStep, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def is_empty(self) -> bool:
        """Check if the plan has no steps."""
        return not self.steps

    def _with_action(self, action: StepAction) -> list[PlanStep]:
        return [s for s in self.steps if s.action == action]

    @property
    def installs(self) -> list[PlanStep]:
        """Install steps, in plan order."""
        return self._with_action(StepAction.INSTALL)

    @property
    def upgrades(self) -> list[PlanStep]:
        """Upgrade steps, in plan order."""
        return self._with_action(StepAction.UPGRADE)

    @property
    def removals(self) -> list[PlanStep]:
        """Remove steps, in plan order."""
        return self._with_action(StepAction.REMOVE)

    def names(self) -> list[str]:
        """Package names in plan order."""
        return [s.package.name for s in self.steps]

    def diagnostics_of(self, kind: DiagnosticKind) -> list[Diagnostic]:
        """Diagnostics of one kind, in the order they were found."""
        return [d for d in self.diagnostics if d.kind == kind]
