"""Nesting depth tracking for a single function scope."""

from contextlib import contextmanager
from typing import Iterator, List

from cogscore.models.construct import ConstructKind


class NestingTracker:
    """Depth counter scoped to one FunctionUnit traversal.

    Depth starts at the scope's baseline (0 for a unit root). The scorer
    reads ``depth`` before entering a node, so a node's nesting penalty is
    the depth of its ancestors only.
    """

    def __init__(self, baseline: int = 0) -> None:
        if baseline < 0:
            raise ValueError("baseline must be non-negative")
        self._baseline = baseline
        self._stack: List[ConstructKind] = []

    @property
    def depth(self) -> int:
        return self._baseline + len(self._stack)

    @property
    def baseline(self) -> int:
        return self._baseline

    def push(self, kind: ConstructKind) -> None:
        self._stack.append(kind)

    def pop(self) -> ConstructKind:
        if not self._stack:
            raise IndexError("pop from empty nesting stack")
        return self._stack.pop()

    @contextmanager
    def entered(self, kind: ConstructKind) -> Iterator[int]:
        """Push ``kind`` for the duration of the block; yields the new depth."""
        self.push(kind)
        try:
            yield self.depth
        finally:
            self.pop()

    @property
    def path(self) -> List[ConstructKind]:
        """Kinds currently on the stack, outermost first."""
        return list(self._stack)
