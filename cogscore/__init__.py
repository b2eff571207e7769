"""cogscore - cognitive and cyclomatic complexity scoring."""

__version__ = "0.1.0"

from cogscore.errors import (
    CogScoreError,
    ConfigurationError,
    CycleDetectionFailure,
    UnmappedConstruct,
)
from cogscore.models import (
    ConstructKind,
    ConstructNode,
    FunctionScore,
    FunctionUnit,
    LogicalExpression,
    Score,
    SourceLocation,
)
from cogscore.scoring import BatchScorer, ComplexityScorer

__all__ = [
    "__version__",
    "BatchScorer",
    "CogScoreError",
    "ComplexityScorer",
    "ConfigurationError",
    "ConstructKind",
    "ConstructNode",
    "CycleDetectionFailure",
    "FunctionScore",
    "FunctionUnit",
    "LogicalExpression",
    "Score",
    "SourceLocation",
    "UnmappedConstruct",
]
