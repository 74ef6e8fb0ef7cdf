"""Dependency graph of resolved packages.

Nodes live in an arena (a list indexed by discovery order) and edges are
integer adjacency lists in both directions. Nodes are keyed by package
identity (``bucket/name``), so shared dependencies collapse into one node.
"""

import heapq
import logging
from collections import deque
from collections.abc import Iterable, Sequence
from typing import Protocol

from bucketctl.core.errors import CycleError
from bucketctl.models.package import Package, dependency_name
from bucketctl.models.query import split_qualified

logger = logging.getLogger(__name__)

_WHITE, _GRAY, _BLACK = 0, 1, 2


class PackageLookup(Protocol):
    """What graph expansion needs from a catalog."""

    def resolve_one(self, query: str, preferred_bucket: str | None = None) -> Package: ...

    def is_installed(self, name: str) -> bool: ...


class DependencyGraph:
    """Arena-backed directed graph of packages.

    ``dependencies_of(i)`` lists the nodes ``i`` depends on and
    ``dependents_of(i)`` the nodes depending on ``i``; both preserve the
    order in which edges were added.
    """

    def __init__(self) -> None:
        self._nodes: list[Package] = []
        self._index: dict[str, int] = {}
        self._deps: list[list[int]] = []
        self._dependents: list[list[int]] = []
        self._expanded: set[int] = set()

    @classmethod
    def build(cls, roots: Iterable[Package], catalog: PackageLookup) -> "DependencyGraph":
        """Expand every root and verify the result is acyclic.

        Raises:
            NotFoundError: If a dependency matches no manifest.
            AmbiguousError: If a dependency is ambiguous.
            CycleError: If the dependencies form a cycle.
        """
        graph = cls()
        for root in roots:
            graph.expand(root, catalog)
        graph.check()
        return graph

    @classmethod
    def for_removal(cls, packages: Sequence[Package]) -> "DependencyGraph":
        """Graph over a removal set, using dependencies among its members.

        Edges come from each package's dependency list (the manifest's, or
        the recorded one when the manifest is gone). Dependencies outside
        the set are ignored.
        """
        graph = cls()
        by_name: dict[str, int] = {}
        for package in packages:
            by_name[package.name] = graph.add_node(package)
        for package in packages:
            for dep in package.dependencies:
                target = by_name.get(dependency_name(dep))
                if target is not None:
                    graph.add_edge(by_name[package.name], target)
        return graph

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, ident: object) -> bool:
        return ident in self._index

    @property
    def nodes(self) -> list[Package]:
        """Packages in discovery order."""
        return list(self._nodes)

    def node(self, index: int) -> Package:
        """Package at an arena index."""
        return self._nodes[index]

    def index_of(self, ident: str) -> int:
        """Arena index of a package identity.

        Raises:
            KeyError: If the identity is not in the graph.
        """
        return self._index[ident]

    def dependencies_of(self, index: int) -> list[int]:
        """Indices of the nodes a node depends on."""
        return list(self._deps[index])

    def dependents_of(self, index: int) -> list[int]:
        """Indices of the nodes depending on a node."""
        return list(self._dependents[index])

    def add_node(self, package: Package) -> int:
        """Add a package, reusing the existing node of the same identity."""
        existing = self._index.get(package.ident)
        if existing is not None:
            return existing
        index = len(self._nodes)
        self._nodes.append(package)
        self._index[package.ident] = index
        self._deps.append([])
        self._dependents.append([])
        return index

    def add_edge(self, dependent: int, dependency: int) -> bool:
        """Record that ``dependent`` needs ``dependency``.

        Returns:
            True if the edge is new.
        """
        if dependency in self._deps[dependent]:
            return False
        self._deps[dependent].append(dependency)
        self._dependents[dependency].append(dependent)
        return True

    def expand(self, root: Package, catalog: PackageLookup) -> int:
        """Breadth-first expansion of one root into the graph.

        A dependency that is already installed is resolved with the
        dependent's bucket as preferred bucket. Expansion is all or
        nothing: if any dependency fails to resolve, every node and edge
        added by this call is removed before the error propagates.

        Returns:
            Arena index of the root.

        Raises:
            NotFoundError: If a dependency matches no manifest.
            AmbiguousError: If a dependency is ambiguous.
        """
        node_mark = len(self._nodes)
        added_edges: list[tuple[int, int]] = []

        try:
            root_index = self.add_node(root)
            queue: deque[int] = deque([root_index])
            while queue:
                current = queue.popleft()
                if current in self._expanded:
                    continue
                self._expanded.add(current)

                package = self._nodes[current]
                for dep in package.dependencies:
                    dep_index = self._resolve_dependency(package, dep, catalog)
                    if self.add_edge(current, dep_index):
                        added_edges.append((current, dep_index))
                    if dep_index not in self._expanded:
                        queue.append(dep_index)
        except Exception:
            self._rollback(node_mark, added_edges)
            raise

        logger.debug("Expanded %s: graph has %d node(s)", root.ident, len(self._nodes))
        return root_index

    def _resolve_dependency(self, package: Package, dep: str, catalog: PackageLookup) -> int:
        bucket, name = split_qualified(dep)
        preferred: str | None = None
        if bucket is None and catalog.is_installed(name):
            preferred = package.bucket
        return self.add_node(catalog.resolve_one(dep, preferred_bucket=preferred))

    def _rollback(self, node_mark: int, added_edges: list[tuple[int, int]]) -> None:
        for dependent, dependency in reversed(added_edges):
            self._deps[dependent].remove(dependency)
            self._dependents[dependency].remove(dependent)
        for package in self._nodes[node_mark:]:
            del self._index[package.ident]
        del self._nodes[node_mark:]
        del self._deps[node_mark:]
        del self._dependents[node_mark:]
        self._expanded = {i for i in self._expanded if i < node_mark}

    def check(self) -> None:
        """Verify the graph is acyclic with a white/gray/black walk.

        Raises:
            CycleError: With the cycle's package names, the first name
                repeated at the end (``[x, x]`` for a self-dependency).
        """
        color = [_WHITE] * len(self._nodes)
        for start in range(len(self._nodes)):
            if color[start] != _WHITE:
                continue
            path: list[int] = [start]
            stack: list[tuple[int, int]] = [(start, 0)]
            color[start] = _GRAY
            while stack:
                current, edge_pos = stack[-1]
                deps = self._deps[current]
                if edge_pos == len(deps):
                    stack.pop()
                    path.pop()
                    color[current] = _BLACK
                    continue
                stack[-1] = (current, edge_pos + 1)
                nxt = deps[edge_pos]
                if color[nxt] == _GRAY:
                    cycle = path[path.index(nxt) :] + [nxt]
                    raise CycleError([self._nodes[i].name for i in cycle])
                if color[nxt] == _WHITE:
                    color[nxt] = _GRAY
                    path.append(nxt)
                    stack.append((nxt, 0))

    def topological_order(self) -> list[int]:
        """Dependency-first order of all nodes (Kahn's algorithm).

        Among nodes whose dependencies are all placed, the one discovered
        first goes first, so the order is deterministic.

        Raises:
            CycleError: If the graph has a cycle.
        """
        pending = [len(deps) for deps in self._deps]
        ready = [i for i, count in enumerate(pending) if count == 0]
        heapq.heapify(ready)

        order: list[int] = []
        while ready:
            current = heapq.heappop(ready)
            order.append(current)
            for dependent in self._dependents[current]:
                pending[dependent] -= 1
                if pending[dependent] == 0:
                    heapq.heappush(ready, dependent)

        if len(order) < len(self._nodes):
            self.check()
        return order

    def removal_order(self) -> list[int]:
        """Dependent-first order of all nodes."""
        return list(reversed(self.topological_order()))

    def restricted(self, keep: Iterable[int]) -> "DependencyGraph":
        """Induced graph on a subset of nodes.

        Kept nodes stay in discovery order. Paths running through dropped
        nodes become direct edges, so ordering constraints between kept
        nodes survive.
        """
        kept = sorted(set(keep))
        kept_set = set(kept)
        graph = DependencyGraph()
        mapping = {old: graph.add_node(self._nodes[old]) for old in kept}

        for old in kept:
            seen: set[int] = set()
            stack = list(reversed(self._deps[old]))
            while stack:
                dep = stack.pop()
                if dep in seen:
                    continue
                seen.add(dep)
                if dep in kept_set:
                    graph.add_edge(mapping[old], mapping[dep])
                else:
                    stack.extend(reversed(self._deps[dep]))

        graph._expanded = {mapping[i] for i in self._expanded if i in kept_set}
        return graph
