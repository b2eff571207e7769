"""Tests for the nesting tracker."""

import pytest

from cogscore.models import ConstructKind
from cogscore.scoring.nesting import NestingTracker


class TestNestingTracker:
    """Tests for NestingTracker."""

    def test_starts_at_zero(self):
        assert NestingTracker().depth == 0

    def test_push_and_pop(self):
        tracker = NestingTracker()
        tracker.push(ConstructKind.IF)
        tracker.push(ConstructKind.FOR)

        assert tracker.depth == 2
        assert tracker.path == [ConstructKind.IF, ConstructKind.FOR]
        assert tracker.pop() is ConstructKind.FOR
        assert tracker.depth == 1

    def test_entered_restores_depth(self):
        tracker = NestingTracker()
        with tracker.entered(ConstructKind.WHILE) as depth:
            assert depth == 1
            with tracker.entered(ConstructKind.IF):
                assert tracker.depth == 2
        assert tracker.depth == 0

    def test_entered_restores_depth_on_error(self):
        tracker = NestingTracker()
        with pytest.raises(RuntimeError):
            with tracker.entered(ConstructKind.IF):
                raise RuntimeError("boom")
        assert tracker.depth == 0

    def test_baseline(self):
        tracker = NestingTracker(baseline=2)
        with tracker.entered(ConstructKind.IF):
            assert tracker.depth == 3
        assert tracker.baseline == 2

    def test_negative_baseline(self):
        with pytest.raises(ValueError):
            NestingTracker(baseline=-1)

    def test_pop_empty(self):
        with pytest.raises(IndexError):
            NestingTracker().pop()
