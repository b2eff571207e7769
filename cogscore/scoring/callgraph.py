"""Batch-wide call graph for recursion-cycle detection.

Built once per batch, before any unit is scored, from the RecursiveCall
targets of every function scope (unit roots and nested functions). Scopes
in a strongly connected component of size > 1, or with a self edge, are
recursion members and receive a single +1 cognitive increment each.

Unresolvable targets never abort the build: the edge is dropped and a
CycleDetectionFailure diagnostic is recorded and logged.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Set, Tuple

from cogscore.errors import CycleDetectionFailure
from cogscore.models.construct import ConstructKind, ConstructNode, FunctionUnit
from cogscore.utils.logging import get_logger

logger = get_logger("scoring.callgraph")

# Diagnostic target for a RecursiveCall that names no callee
MISSING_TARGET = "<missing>"


class ScopeNamer:
    """Derive stable identifiers for nested function scopes.

    Call once per nested scope node, in preorder, within one parent scope.
    The call graph and the scorer use the same namer so identifiers agree.
    """

    def __init__(self, parent_identifier: str) -> None:
        self.parent_identifier = parent_identifier
        self._ordinal = 0
        self._seen: Dict[str, int] = {}

    def name_for(self, node: ConstructNode) -> str:
        self._ordinal += 1
        if node.name:
            label = node.name
        else:
            prefix = "lambda" if node.kind is ConstructKind.LAMBDA else "function"
            if node.location is not None and node.location.line:
                label = f"<{prefix}@{node.location.line}>"
            else:
                label = f"<{prefix}#{self._ordinal}>"

        count = self._seen.get(label, 0) + 1
        self._seen[label] = count
        if count > 1:
            label = f"{label}#{count}"
        return f"{self.parent_identifier}.{label}"


@dataclass(frozen=True)
class ScopeInfo:
    identifier: str
    node: ConstructNode
    calls: Tuple[str, ...]


def iter_scopes(unit: FunctionUnit) -> Iterator[ScopeInfo]:
    """Yield every function scope of a unit with the call targets it owns.

    Calls inside a nested function belong to that nested scope, not to
    the enclosing one.
    """
    stack: List[Tuple[str, ConstructNode]] = [(unit.identifier, unit.as_scope())]
    while stack:
        identifier, scope = stack.pop()
        namer = ScopeNamer(identifier)
        calls: List[str] = []
        nested: List[Tuple[str, ConstructNode]] = []
        pending = list(reversed(scope.children))
        while pending:
            node = pending.pop()
            if node.kind.is_function_scope:
                nested.append((namer.name_for(node), node))
                continue
            if node.kind is ConstructKind.RECURSIVE_CALL:
                calls.append(node.target or MISSING_TARGET)
            pending.extend(reversed(node.children))
        yield ScopeInfo(identifier, scope, tuple(calls))
        stack.extend(reversed(nested))


def _short_name(identifier: str) -> str:
    return identifier.rsplit(".", 1)[-1]


class CallGraph:
    """Read-only call graph over the scopes of one batch."""

    def __init__(
        self,
        edges: Dict[str, Set[str]],
        diagnostics: Optional[List[CycleDetectionFailure]] = None,
    ) -> None:
        self._edges: Dict[str, FrozenSet[str]] = {
            node: frozenset(targets) for node, targets in edges.items()
        }
        self.diagnostics: List[CycleDetectionFailure] = list(diagnostics or [])
        self._components = self._strongly_connected_components()
        self._members: FrozenSet[str] = frozenset(
            member for component in self.cycles() for member in component
        )

    @classmethod
    def build(cls, units: Iterable[FunctionUnit]) -> "CallGraph":
        scopes = [scope for unit in units for scope in iter_scopes(unit)]
        edges: Dict[str, Set[str]] = {scope.identifier: set() for scope in scopes}
        by_short: Dict[str, Set[str]] = defaultdict(set)
        for identifier in edges:
            by_short[_short_name(identifier)].add(identifier)

        diagnostics: List[CycleDetectionFailure] = []
        reported: Set[Tuple[str, str]] = set()
        for scope in scopes:
            for target in scope.calls:
                resolved, reason = cls._resolve(target, edges, by_short)
                if resolved is not None:
                    edges[scope.identifier].add(resolved)
                    continue
                if (scope.identifier, target) in reported:
                    continue
                reported.add((scope.identifier, target))
                failure = CycleDetectionFailure(scope.identifier, target, reason)
                diagnostics.append(failure)
                logger.warning(f"Treating call as non-recursive: {failure}")

        graph = cls(edges, diagnostics)
        logger.debug(
            f"Call graph: {len(edges)} scopes, "
            f"{sum(len(t) for t in edges.values())} edges, "
            f"{len(graph.recursive_members)} recursion members"
        )
        return graph

    @staticmethod
    def _resolve(
        target: str,
        known: Dict[str, Set[str]],
        by_short: Dict[str, Set[str]],
    ) -> Tuple[Optional[str], str]:
        if target == MISSING_TARGET:
            return None, "call without target"
        if target in known:
            return target, ""
        candidates = by_short.get(_short_name(target), set())
        if len(candidates) == 1:
            return next(iter(candidates)), ""
        if not candidates:
            return None, "unresolved call target"
        return None, f"ambiguous call target ({len(candidates)} candidates)"

    def _strongly_connected_components(self) -> List[List[str]]:
        """Tarjan's algorithm, iterative to avoid recursion limits."""
        index: Dict[str, int] = {}
        lowlink: Dict[str, int] = {}
        on_stack: Set[str] = set()
        stack: List[str] = []
        components: List[List[str]] = []
        counter = 0

        for root in sorted(self._edges):
            if root in index:
                continue
            work: List[Tuple[str, Iterator[str]]] = []
            index[root] = lowlink[root] = counter
            counter += 1
            stack.append(root)
            on_stack.add(root)
            work.append((root, iter(sorted(self._edges.get(root, ())))))

            while work:
                node, successors = work[-1]
                advanced = False
                for succ in successors:
                    if succ not in index:
                        index[succ] = lowlink[succ] = counter
                        counter += 1
                        stack.append(succ)
                        on_stack.add(succ)
                        work.append((succ, iter(sorted(self._edges.get(succ, ())))))
                        advanced = True
                        break
                    if succ in on_stack:
                        lowlink[node] = min(lowlink[node], index[succ])
                if advanced:
                    continue

                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[node])
                if lowlink[node] == index[node]:
                    component: List[str] = []
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == node:
                            break
                    components.append(sorted(component))
        return components

    @property
    def recursive_members(self) -> FrozenSet[str]:
        return self._members

    def is_recursive(self, identifier: str) -> bool:
        return identifier in self._members

    def callees(self, identifier: str) -> FrozenSet[str]:
        return self._edges.get(identifier, frozenset())

    def cycles(self) -> List[List[str]]:
        """Components that form recursion cycles, each sorted."""
        return [
            component
            for component in self._components
            if len(component) > 1 or component[0] in self._edges.get(component[0], ())
        ]

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._edges

    def __len__(self) -> int:
        return len(self._edges)
