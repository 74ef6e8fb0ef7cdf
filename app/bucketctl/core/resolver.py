"""Resolution of a user request into an ordered plan.

``resolve`` is a pure function of the catalog, the install state and the
request: identical inputs produce an identical plan, diagnostics included.
Bad names degrade into diagnostics; only a dependency cycle aborts.
"""

import fnmatch
import logging
from collections.abc import Callable, Sequence

from bucketctl.core.catalog import ManifestCatalog
from bucketctl.core.errors import (
    AmbiguousError,
    BucketctlError,
    DependentExistsError,
    NotFoundError,
)
from bucketctl.core.graph import DependencyGraph
from bucketctl.models.package import InstalledSet, Package
from bucketctl.models.plan import (
    Diagnostic,
    DiagnosticKind,
    PlanStep,
    ResolutionPlan,
    StepAction,
)
from bucketctl.models.query import OperationKind, QuerySpec, is_wildcard, split_qualified

logger = logging.getLogger(__name__)


def resolve(
    spec: QuerySpec,
    catalog: ManifestCatalog,
    installed: InstalledSet | None = None,
) -> ResolutionPlan:
    """Resolve a request into a plan.

    Args:
        spec: The user request.
        catalog: Manifest catalog to select candidates from.
        installed: Install state; defaults to the catalog's.

    Returns:
        Plan whose steps are in dependency order for the action direction.

    Raises:
        CycleError: If the requested packages have cyclic dependencies.
    """
    if installed is None:
        installed = catalog.installed
    diagnostics: list[Diagnostic] = []
    names = expand_patterns(spec, catalog, installed)

    if spec.kind == OperationKind.UNINSTALL:
        return _resolve_uninstall(spec, catalog, installed, names, diagnostics)
    return _resolve_install(spec, catalog, installed, names, diagnostics)


def expand_patterns(
    spec: QuerySpec,
    catalog: ManifestCatalog,
    installed: InstalledSet,
) -> list[str]:
    """Expand wildcard patterns into names.

    Wildcards match installed names for upgrade and uninstall, and the
    catalog for install. Exact and qualified names pass through. The
    result keeps first-seen order without duplicates.
    """
    names: list[str] = []
    for pattern in spec.patterns:
        if not is_wildcard(pattern):
            matches = [pattern]
        elif spec.kind == OperationKind.INSTALL:
            matches = catalog.match(pattern)
        else:
            bucket, name_pattern = split_qualified(pattern)
            matches = [
                record.name
                for record in installed.values()
                if fnmatch.fnmatchcase(record.name, name_pattern)
                and (bucket is None or fnmatch.fnmatchcase(record.bucket, bucket))
            ]
        for name in matches:
            if name not in names:
                names.append(name)
    return names


def _unresolved(name: str, error: BucketctlError) -> Diagnostic:
    if isinstance(error, AmbiguousError):
        return Diagnostic(DiagnosticKind.AMBIGUOUS_NAME, name, str(error), error.buckets)
    return Diagnostic(DiagnosticKind.UNRESOLVED_NAME, name, str(error))


def _select_roots(
    spec: QuerySpec,
    catalog: ManifestCatalog,
    installed: InstalledSet,
    names: Sequence[str],
    diagnostics: list[Diagnostic],
) -> list[Package]:
    options = spec.options
    roots: list[Package] = []

    for name in names:
        _, bare = split_qualified(name)
        if spec.kind == OperationKind.UPGRADE and bare not in installed:
            diagnostics.append(
                Diagnostic(DiagnosticKind.UNRESOLVED_NAME, name, f"'{bare}' is not installed")
            )
            continue

        try:
            package = catalog.resolve_one(name)
        except (NotFoundError, AmbiguousError) as e:
            diagnostics.append(_unresolved(name, e))
            continue

        if package.is_up_to_date and not options.force:
            diagnostics.append(
                Diagnostic(
                    DiagnosticKind.SKIPPED_UP_TO_DATE,
                    package.name,
                    f"'{package.name}' ({package.version}) is already up to date",
                    (package.bucket,),
                )
            )
            continue
        if package.is_held and not options.escape_hold:
            diagnostics.append(_held(package))
            continue
        if package not in roots:
            roots.append(package)

    return roots


def _held(package: Package) -> Diagnostic:
    return Diagnostic(
        DiagnosticKind.SKIPPED_HELD,
        package.name,
        f"'{package.name}' is held at {package.installed_version}",
        (package.bucket,),
    )


def _resolve_install(
    spec: QuerySpec,
    catalog: ManifestCatalog,
    installed: InstalledSet,
    names: Sequence[str],
    diagnostics: list[Diagnostic],
) -> ResolutionPlan:
    options = spec.options
    roots = _select_roots(spec, catalog, installed, names, diagnostics)

    graph = DependencyGraph()
    root_idents: set[str] = set()
    for root in roots:
        if options.no_dependencies:
            graph.add_node(root)
        else:
            try:
                graph.expand(root, catalog)
            except (NotFoundError, AmbiguousError) as e:
                diagnostics.append(
                    Diagnostic(
                        DiagnosticKind.UNRESOLVED_DEPENDENCY,
                        root.name,
                        f"Cannot resolve dependencies of '{root.name}': {e}",
                        (root.bucket,),
                    )
                )
                continue
        root_idents.add(root.ident)
    graph.check()

    actions: dict[int, StepAction] = {}
    for index, package in enumerate(graph.nodes):
        is_root = package.ident in root_idents
        if not package.is_installed:
            actions[index] = StepAction.INSTALL
        elif package.is_up_to_date:
            # Only roots get here when forced; up-to-date dependencies stay as they are.
            if is_root:
                actions[index] = StepAction.UPGRADE
        elif package.is_held and not options.escape_hold:
            diagnostics.append(_held(package))
        else:
            actions[index] = StepAction.UPGRADE

    sub = graph.restricted(actions)
    order = sub.topological_order()
    action_of = {graph.node(i).ident: action for i, action in actions.items()}
    steps = _steps(sub, order, lambda i: sub.dependencies_of(i), action_of)

    logger.debug("Resolved %s plan with %d step(s)", spec.kind.value, len(steps))
    return ResolutionPlan(
        kind=spec.kind,
        steps=tuple(steps),
        diagnostics=tuple(dict.fromkeys(diagnostics)),
    )


def _resolve_uninstall(
    spec: QuerySpec,
    catalog: ManifestCatalog,
    installed: InstalledSet,
    names: Sequence[str],
    diagnostics: list[Diagnostic],
) -> ResolutionPlan:
    options = spec.options
    removal: dict[str, Package] = {}

    for name in names:
        bucket, bare = split_qualified(name)
        record = installed.get(bare)
        if record is None or (bucket is not None and record.bucket != bucket):
            diagnostics.append(
                Diagnostic(DiagnosticKind.UNRESOLVED_NAME, name, f"'{name}' is not installed")
            )
            continue
        package = catalog.package_for_record(record)
        if package.is_held and not options.escape_hold:
            diagnostics.append(_held(package))
            continue
        removal.setdefault(package.name, package)

    # Cascade pulls dependents in until nothing outside the set depends on it;
    # without cascade, blocked targets leave the set and may unblock others.
    # A blocked name never re-enters the set and blocks what it depends on.
    blocked: set[str] = set()
    changed = True
    while changed:
        changed = False
        for name in list(removal):
            if name not in removal:
                continue
            outside = [r for r in installed.dependents_of(name) if r.name not in removal]
            if not outside:
                continue
            changed = True
            if not options.cascade:
                _block(removal, name, [r.name for r in outside], diagnostics)
                blocked.add(name)
                continue
            dependents = [catalog.package_for_record(r) for r in outside]
            held = [d for d in dependents if d.is_held and not options.escape_hold]
            kept = [d for d in dependents if d.name in blocked]
            if held or kept:
                diagnostics.extend(_held(d) for d in held)
                _block(removal, name, [d.name for d in held + kept], diagnostics)
                blocked.add(name)
                continue
            for dependent in dependents:
                removal[dependent.name] = dependent

    graph = DependencyGraph.for_removal(list(removal.values()))
    order = graph.removal_order()
    action_of = {package.ident: StepAction.REMOVE for package in removal.values()}
    steps = _steps(graph, order, lambda i: graph.dependents_of(i), action_of)

    logger.debug("Resolved uninstall plan with %d step(s)", len(steps))
    return ResolutionPlan(
        kind=spec.kind,
        steps=tuple(steps),
        diagnostics=tuple(dict.fromkeys(diagnostics)),
    )


def _block(
    removal: dict[str, Package],
    name: str,
    dependents: Sequence[str],
    diagnostics: list[Diagnostic],
) -> None:
    package = removal.pop(name)
    error = DependentExistsError(name, sorted(dependents))
    diagnostics.append(
        Diagnostic(DiagnosticKind.DEPENDENT_EXISTS, name, str(error), (package.bucket,))
    )


def _steps(
    graph: DependencyGraph,
    order: Sequence[int],
    predecessors_of: Callable[[int], list[int]],
    action_of: dict[str, StepAction],
) -> list[PlanStep]:
    position = {index: pos for pos, index in enumerate(order)}
    return [
        PlanStep(
            package=graph.node(index),
            action=action_of[graph.node(index).ident],
            predecessors=tuple(sorted(position[p] for p in predecessors_of(index))),
        )
        for index in order
    ]
