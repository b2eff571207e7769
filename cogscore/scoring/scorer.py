"""Complexity scorer.

Single depth-first traversal per function scope producing cognitive and
cyclomatic complexity together.

Cognitive, after compensation:
- structural   : +1 + current depth, then nests
- hybrid       : +1, then nests
- fundamental  : +1 (recursion: once per function in a detected cycle)
- ignored      : +0, children at the current depth

Cyclomatic: 1 per function, +1 per if / else-if / loop / catch / ternary,
+1 per switch case label, +1 per && / || occurrence.

Batch protocol:
    phase 0  normalize every unit (validate kinds, resolve logical runs)
    phase 1  build the call graph (barrier)
    phase 2  score units independently, optionally in parallel
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from cogscore.errors import CogScoreError, CycleDetectionFailure, UnmappedConstruct
from cogscore.models.construct import (
    CYCLOMATIC_KINDS,
    Classification,
    ConstructKind,
    ConstructNode,
    FunctionScore,
    FunctionUnit,
    NestedFunctionMode,
    Score,
    SkippedUnit,
)
from cogscore.scoring.callgraph import CallGraph, ScopeNamer
from cogscore.scoring.compensation import (
    CompensationAction,
    CompensationContext,
    CompensationDecision,
    CompensationRuleSet,
)
from cogscore.scoring.logical_runs import resolve_all
from cogscore.scoring.nesting import NestingTracker
from cogscore.utils.logging import get_logger, log_operation

if TYPE_CHECKING:
    from cogscore.utils.config import ComplexityConfig

logger = get_logger("scoring.scorer")


# ---------------------------------------------------------------------------
# Phase 0: normalization
# ---------------------------------------------------------------------------


def _check_payload(hints, location, **fields) -> None:
    if not isinstance(hints, Mapping):
        raise ValueError(f"language_hints must be a mapping at {location}, got {hints!r}")
    for key, value in fields.items():
        if value is not None and not isinstance(value, str):
            raise ValueError(f"{key} must be a string at {location}, got {value!r}")


def _normalize_node(node: ConstructNode) -> ConstructNode:
    kind = ConstructKind.parse(node.kind, node.location)
    _check_payload(node.language_hints, node.location, target=node.target, name=node.name)
    if node.operator_count < 0 or node.case_count < 0:
        raise ValueError(f"Negative count on {kind.value} node at {node.location}")
    children = tuple(_normalize_node(child) for child in node.children)
    if kind is node.kind and all(a is b for a, b in zip(children, node.children)):
        return node
    return replace(node, kind=kind, children=children)


def prepare_unit(unit: FunctionUnit) -> FunctionUnit:
    """Validate kinds and resolve LogicalExpressions into LogicalRun nodes.

    Raises:
        UnmappedConstruct: if any node kind is outside the closed model.
        ValueError: if hints are not a mapping or a target, name or
            identifier is not a string.
    """
    _check_payload(unit.language_hints, unit.location, identifier=unit.identifier)
    body = resolve_all(_normalize_node(node) for node in unit.body)
    if all(a is b for a, b in zip(body, unit.body)):
        return unit
    return replace(unit, body=body)


# ---------------------------------------------------------------------------
# Phase 2: traversal
# ---------------------------------------------------------------------------


@dataclass
class _Accumulator:
    """Mutable score for one emitted record."""

    cognitive: int = 0
    cyclomatic: int = 1
    credited: Set[str] = field(default_factory=set)


@dataclass
class _Frame:
    """Traversal state for the function scope currently being walked."""

    scope_id: str
    record_id: str
    acc: _Accumulator
    tracker: NestingTracker
    namer: ScopeNamer


def _cyclomatic_increment(node: ConstructNode) -> int:
    if node.kind in CYCLOMATIC_KINDS:
        return 1
    if node.kind is ConstructKind.SWITCH:
        return node.case_count
    if node.kind is ConstructKind.LOGICAL_RUN:
        return max(node.operator_count, 1)
    return 0


class _UnitTraversal:
    """Scores one prepared unit, emitting its record and any split-off nested records."""

    def __init__(
        self,
        unit: FunctionUnit,
        rules: CompensationRuleSet,
        mode: NestedFunctionMode,
        graph: CallGraph,
    ) -> None:
        self.unit = unit
        self.rules = rules
        self.mode = mode
        self.graph = graph
        self.records: List[Optional[FunctionScore]] = []

    def run(self) -> List[FunctionScore]:
        root = self.unit.as_scope()
        decision = self._evaluate(root, parent=None, is_unit_root=True)
        self._score_scope(self.unit.identifier, root, decision, parent_record=None)
        return [record for record in self.records if record is not None]

    def _evaluate(
        self,
        node: ConstructNode,
        parent: Optional[ConstructNode],
        is_unit_root: bool = False,
    ) -> CompensationDecision:
        context = CompensationContext(
            language=self.unit.language, parent=parent, is_unit_root=is_unit_root
        )
        return self.rules.evaluate(node, context)

    # -- scopes -------------------------------------------------------------

    def _score_scope(
        self,
        identifier: str,
        scope: ConstructNode,
        decision: CompensationDecision,
        parent_record: Optional[str],
        baseline: int = 0,
    ) -> None:
        """Score a function scope as its own record."""
        slot = len(self.records)
        self.records.append(None)  # keeps the enclosing record ahead of nested ones

        suppressed = decision.action is CompensationAction.SUPPRESS
        acc = _Accumulator()
        if suppressed:
            self._split_declarations(identifier, scope)
        else:
            frame = _Frame(
                identifier, identifier, acc, NestingTracker(baseline), ScopeNamer(identifier)
            )
            self._visit_children(scope.children, frame, scope)

        self.records[slot] = FunctionScore(
            identifier=identifier,
            score=Score(cognitive=acc.cognitive, cyclomatic=acc.cyclomatic),
            location=scope.location,
            language=self.unit.language,
            suppressed=suppressed,
            parent=parent_record,
        )

    def _split_declarations(self, identifier: str, scope: ConstructNode) -> None:
        """Score the nested declarations of a suppressed wrapper separately."""
        namer = ScopeNamer(identifier)
        pending: List[Tuple[ConstructNode, ConstructNode]] = [
            (child, scope) for child in reversed(scope.children)
        ]
        while pending:
            node, parent = pending.pop()
            if node.kind.is_function_scope:
                nested_id = namer.name_for(node)
                self._score_scope(nested_id, node, self._evaluate(node, parent), identifier)
            else:
                pending.extend((child, node) for child in reversed(node.children))

    def _visit_function_scope(
        self, node: ConstructNode, frame: _Frame, parent: ConstructNode
    ) -> None:
        identifier = frame.namer.name_for(node)
        decision = self._evaluate(node, parent)
        action = decision.action

        if action is CompensationAction.SUPPRESS or self.mode is NestedFunctionMode.SEPARATE:
            # Outer score is unaffected; reset_nesting keeps the enclosing baseline
            baseline = frame.tracker.baseline if action is CompensationAction.RESET_NESTING else 0
            self._score_scope(identifier, node, decision, frame.record_id, baseline)
            return

        inner = _Frame(
            identifier, frame.record_id, frame.acc, frame.tracker, ScopeNamer(identifier)
        )
        if action is CompensationAction.RESET_NESTING:
            self._visit_children(node.children, inner, node)
        else:
            with frame.tracker.entered(node.kind):
                self._visit_children(node.children, inner, node)

    # -- constructs ---------------------------------------------------------

    def _visit_children(
        self, children: Iterable[ConstructNode], frame: _Frame, parent: ConstructNode
    ) -> None:
        for child in children:
            self._visit(child, frame, parent)

    def _visit(
        self,
        node: ConstructNode,
        frame: _Frame,
        parent: ConstructNode,
        override: Optional[Classification] = None,
    ) -> None:
        if node.kind.is_function_scope:
            self._visit_function_scope(node, frame, parent)
            return

        action = self._evaluate(node, parent).action
        if action is CompensationAction.SUPPRESS:
            self._visit_children(node.children, frame, node)
            return
        if action is CompensationAction.RECLASSIFY and node.kind is ConstructKind.ELSE:
            # else { if ... }: the else is transparent and its if scores as hybrid
            for index, child in enumerate(node.children):
                hybrid = index == 0 and child.kind is ConstructKind.IF
                self._visit(child, frame, node, Classification.HYBRID if hybrid else None)
            return

        classification = override or node.classification
        if action is CompensationAction.RECLASSIFY and classification is Classification.STRUCTURAL:
            classification = Classification.HYBRID

        acc = frame.acc
        acc.cyclomatic += _cyclomatic_increment(node)

        if classification is Classification.STRUCTURAL:
            acc.cognitive += 1 + frame.tracker.depth
        elif classification is Classification.HYBRID:
            acc.cognitive += 1
        elif classification is Classification.FUNDAMENTAL:
            acc.cognitive += self._fundamental_increment(node, frame)

        if classification in (Classification.STRUCTURAL, Classification.HYBRID):
            with frame.tracker.entered(node.kind):
                self._visit_children(node.children, frame, node)
        else:
            self._visit_children(node.children, frame, node)

    def _fundamental_increment(self, node: ConstructNode, frame: _Frame) -> int:
        if node.kind is not ConstructKind.RECURSIVE_CALL:
            return 1
        # One increment per function in a cycle, however many call sites
        if frame.scope_id in frame.acc.credited or not self.graph.is_recursive(frame.scope_id):
            return 0
        frame.acc.credited.add(frame.scope_id)
        return 1


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class ComplexityScorer:
    """Scores function units against a read-only compensation rule set.

    Usage::

        scorer = ComplexityScorer()
        [record] = scorer.score_unit(unit)
        record.score.cognitive, record.score.cyclomatic
    """

    def __init__(
        self,
        rules: Optional[CompensationRuleSet] = None,
        nested_functions: NestedFunctionMode = NestedFunctionMode.SEPARATE,
    ) -> None:
        self.rules = rules if rules is not None else CompensationRuleSet.default()
        self.nested_functions = NestedFunctionMode(nested_functions)

    @classmethod
    def from_config(cls, config: "ComplexityConfig") -> "ComplexityScorer":
        return cls(rules=config.rule_set, nested_functions=config.nested_mode)

    def score_unit(
        self,
        unit: FunctionUnit,
        call_graph: Optional[CallGraph] = None,
    ) -> List[FunctionScore]:
        """Score one unit.

        Args:
            unit: The function unit to score.
            call_graph: Batch call graph. When omitted, a graph of this unit
                alone is built, so only self-recursion is detected.

        Returns:
            The unit's record first, followed by records for nested
            functions scored separately.

        Raises:
            UnmappedConstruct: if the unit contains a kind outside the model.
        """
        prepared = prepare_unit(unit)
        if call_graph is None:
            call_graph = CallGraph.build([prepared])
        return self._score_prepared(prepared, call_graph)

    def _score_prepared(self, unit: FunctionUnit, call_graph: CallGraph) -> List[FunctionScore]:
        return _UnitTraversal(unit, self.rules, self.nested_functions, call_graph).run()


@dataclass
class BatchResult:
    """Outcome of scoring one batch of units."""

    scores: List[FunctionScore] = field(default_factory=list)
    skipped: List[SkippedUnit] = field(default_factory=list)
    diagnostics: List[CycleDetectionFailure] = field(default_factory=list)

    def by_identifier(self) -> Dict[str, FunctionScore]:
        return {record.identifier: record for record in self.scores}


class BatchScorer:
    """Scores a batch of units with the two-phase protocol.

    Units are independent once the call graph is built, so they may be
    scored on a thread pool (``max_workers > 1``). ``cancel()`` stops
    submitting further units; units already running finish normally.
    """

    def __init__(
        self,
        config: Optional["ComplexityConfig"] = None,
        scorer: Optional[ComplexityScorer] = None,
    ) -> None:
        if config is None:
            from cogscore.utils.config import ComplexityConfig

            config = ComplexityConfig()
        config.validate()
        self.config = config
        self.scorer = scorer or ComplexityScorer.from_config(config)
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def score(self, units: Iterable[FunctionUnit]) -> BatchResult:
        units = list(units)
        result = BatchResult()

        with log_operation(logger, f"scoring batch of {len(units)} units"):
            prepared: List[FunctionUnit] = []
            for unit in units:
                try:
                    prepared.append(prepare_unit(unit))
                except (UnmappedConstruct, ValueError) as e:
                    logger.warning(f"Skipping {unit.identifier}: {e}")
                    result.skipped.append(SkippedUnit(unit.identifier, str(e), unit.location))

            graph = CallGraph.build(prepared)
            result.diagnostics.extend(graph.diagnostics)

            if self.config.max_workers > 1 and len(prepared) > 1:
                outcomes = self._score_parallel(prepared, graph)
            else:
                outcomes = self._score_sequential(prepared, graph)

            for unit, outcome in zip(prepared, outcomes):
                if isinstance(outcome, SkippedUnit):
                    result.skipped.append(outcome)
                else:
                    result.scores.extend(outcome)

        return result

    def _score_one(self, unit: FunctionUnit, graph: CallGraph):
        try:
            return self.scorer._score_prepared(unit, graph)
        except CogScoreError as e:
            logger.warning(f"Skipping {unit.identifier}: {e}")
            return SkippedUnit(unit.identifier, str(e), unit.location)

    def _cancelled_unit(self, unit: FunctionUnit) -> SkippedUnit:
        return SkippedUnit(unit.identifier, "cancelled", unit.location)

    def _score_sequential(self, units: List[FunctionUnit], graph: CallGraph) -> list:
        outcomes = []
        for unit in units:
            if self.cancelled:
                outcomes.append(self._cancelled_unit(unit))
                continue
            outcomes.append(self._score_one(unit, graph))
        return outcomes

    def _score_parallel(self, units: List[FunctionUnit], graph: CallGraph) -> list:
        futures: List[Optional[Future]] = []
        with ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="cogscore"
        ) as executor:
            for unit in units:
                if self.cancelled:
                    futures.append(None)
                    continue
                futures.append(executor.submit(self._score_one, unit, graph))
            return [
                future.result() if future is not None else self._cancelled_unit(unit)
                for unit, future in zip(units, futures)
            ]
