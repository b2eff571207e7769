"""Models package exports."""

from cogscore.models.construct import (
    CLASSIFICATION_TABLE,
    CYCLOMATIC_KINDS,
    Classification,
    ConstructKind,
    ConstructNode,
    FunctionScore,
    FunctionUnit,
    LogicalExpression,
    LogicalOperator,
    NestedFunctionMode,
    Score,
    SkippedUnit,
    SourceLocation,
)

__all__ = [
    "CLASSIFICATION_TABLE",
    "CYCLOMATIC_KINDS",
    "Classification",
    "ConstructKind",
    "ConstructNode",
    "FunctionScore",
    "FunctionUnit",
    "LogicalExpression",
    "LogicalOperator",
    "NestedFunctionMode",
    "Score",
    "SkippedUnit",
    "SourceLocation",
]
