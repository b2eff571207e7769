"""Scoring engine: logical runs, compensation, nesting, call graph, scorer."""

from cogscore.scoring.callgraph import CallGraph, ScopeNamer
from cogscore.scoring.compensation import (
    CompensationAction,
    CompensationContext,
    CompensationRule,
    CompensationRuleSet,
    default_rules,
)
from cogscore.scoring.logical_runs import count_operators, detect_runs
from cogscore.scoring.nesting import NestingTracker
from cogscore.scoring.scorer import (
    BatchResult,
    BatchScorer,
    ComplexityScorer,
    prepare_unit,
)

__all__ = [
    "BatchResult",
    "BatchScorer",
    "CallGraph",
    "CompensationAction",
    "CompensationContext",
    "CompensationRule",
    "CompensationRuleSet",
    "ComplexityScorer",
    "NestingTracker",
    "ScopeNamer",
    "count_operators",
    "default_rules",
    "detect_runs",
    "prepare_unit",
]
