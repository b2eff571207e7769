"""Logical-run detection.

Collapses a boolean expression's operator sequence into runs: one run per
maximal sequence of identical consecutive operators. A parenthesized group
is its own run scope and never merges with the surrounding run, even when
the operator matches on both sides.

    a && b && c      -> 1 run  (2 operators)
    a && b || c      -> 2 runs (2 operators)
    a && (b && c)    -> 2 runs (2 operators)
"""

from dataclasses import replace
from typing import Iterable, List, Optional, Tuple

from cogscore.models.construct import (
    ConstructKind,
    ConstructNode,
    LogicalExpression,
    LogicalOperator,
    SourceLocation,
)


def _runs_in_scope(operators: Tuple[LogicalOperator, ...]) -> List[int]:
    """Return the operator count of each run in one expression scope."""
    runs: List[int] = []
    previous: Optional[LogicalOperator] = None
    for op in operators:
        if op is previous:
            runs[-1] += 1
        else:
            runs.append(1)
        previous = op
    return runs


def detect_runs(
    expression: LogicalExpression,
    location: Optional[SourceLocation] = None,
) -> List[ConstructNode]:
    """Decompose an expression into LogicalRun nodes.

    Runs of the outer scope come first, followed by the runs of each nested
    group in operand order. A single operand with no operator yields no runs.
    """
    nodes = [
        ConstructNode(
            kind=ConstructKind.LOGICAL_RUN,
            location=location,
            operator_count=count,
        )
        for count in _runs_in_scope(expression.operators)
    ]
    for group in expression.groups:
        nodes.extend(detect_runs(group, location))
    return nodes


def count_operators(expression: LogicalExpression) -> int:
    """Total ``&&``/``||`` occurrences, including nested groups."""
    return len(expression.operators) + sum(
        count_operators(group) for group in expression.groups
    )


def resolve_conditions(node: ConstructNode) -> ConstructNode:
    """Replace a node's attached conditions with LogicalRun children, recursively.

    Runs are placed ahead of the node's own children. LogicalRun is
    fundamental, so its position does not affect scoring.
    """
    children = [resolve_conditions(child) for child in node.children]
    if not node.conditions and all(a is b for a, b in zip(children, node.children)):
        return node

    runs: List[ConstructNode] = []
    for condition in node.conditions:
        runs.extend(detect_runs(condition, node.location))
    resolved = node.with_children(runs + children)
    return _without_conditions(resolved)


def resolve_all(nodes: Iterable[ConstructNode]) -> Tuple[ConstructNode, ...]:
    return tuple(resolve_conditions(node) for node in nodes)


def _without_conditions(node: ConstructNode) -> ConstructNode:
    if not node.conditions:
        return node
    return replace(node, conditions=())
