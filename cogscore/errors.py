"""Error taxonomy for cogscore.

Per-unit errors (UnmappedConstruct) are isolated by the batch scorer,
call-graph problems (CycleDetectionFailure) are reported as diagnostics,
and ConfigurationError is raised before any scoring begins.
"""

from typing import Any, Dict, Optional


class CogScoreError(Exception):
    """Base exception for cogscore errors."""
    pass


class UnmappedConstruct(CogScoreError):
    """A front end supplied a construct kind outside the closed model."""

    def __init__(self, kind: Any, location: Optional[Any] = None) -> None:
        self.kind = kind
        self.location = location
        where = f" at {location}" if location is not None else ""
        super().__init__(f"Unmapped construct kind {kind!r}{where}")


class CycleDetectionFailure(CogScoreError):
    """A call edge could not be resolved while building the call graph.

    The edge is dropped and the call treated as non-recursive; instances
    are collected as diagnostics rather than raised out of a batch.
    """

    def __init__(self, caller: str, target: str, reason: str) -> None:
        self.caller = caller
        self.target = target
        self.reason = reason
        super().__init__(f"{caller} -> {target}: {reason}")

    def to_dict(self) -> Dict[str, str]:
        return {
            "type": "cycle_detection_failure",
            "caller": self.caller,
            "target": self.target,
            "reason": self.reason,
        }


class ConfigurationError(CogScoreError):
    """Invalid configuration, raised at startup before scoring."""
    pass
