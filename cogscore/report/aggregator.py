"""Report aggregation.

A pure fold over already-computed scores: records are classified against
the configured thresholds and sorted, never re-scored. Multiple scoring
workers may hand results to one aggregator; appends are serialized under
a lock so each result is written exactly once.
"""

import threading
from typing import TYPE_CHECKING, Iterable, List, Optional

from cogscore.errors import CycleDetectionFailure
from cogscore.models.construct import FunctionScore, SkippedUnit
from cogscore.report.models import ComplexityReport, FunctionRecord, Tier
from cogscore.utils.logging import get_logger

if TYPE_CHECKING:
    from cogscore.scoring.scorer import BatchResult
    from cogscore.utils.config import ComplexityConfig, ThresholdConfig

logger = get_logger("report.aggregator")


def classify_tier(score: int, thresholds: "ThresholdConfig") -> Tier:
    """Map one metric value onto its tier."""
    if score <= thresholds.ok_max:
        return Tier.OK
    if score <= thresholds.acceptable_max:
        return Tier.ACCEPTABLE
    if score >= thresholds.severe_min:
        return Tier.SEVERE
    return Tier.VIOLATION


class ReportAggregator:
    """Collects scores and builds a sorted ComplexityReport."""

    def __init__(self, config: Optional["ComplexityConfig"] = None) -> None:
        if config is None:
            from cogscore.utils.config import ComplexityConfig

            config = ComplexityConfig()
        config.validate()
        self.config = config
        self._lock = threading.Lock()
        self._records: List[FunctionRecord] = []
        self._skipped: List[SkippedUnit] = []
        self._diagnostics: List[CycleDetectionFailure] = []

    def record_for(self, score: FunctionScore) -> FunctionRecord:
        if score.suppressed:
            # Namespace wrappers are zero-weighted and never flagged
            cognitive_tier = cyclomatic_tier = Tier.OK
        else:
            cognitive_tier = classify_tier(score.cognitive, self.config.cognitive)
            cyclomatic_tier = classify_tier(score.cyclomatic, self.config.cyclomatic)
        return FunctionRecord(
            identifier=score.identifier,
            location=score.location,
            cognitive=score.cognitive,
            cyclomatic=score.cyclomatic,
            tier=max(cognitive_tier, cyclomatic_tier),
            cognitive_tier=cognitive_tier,
            cyclomatic_tier=cyclomatic_tier,
            language=score.language,
            suppressed=score.suppressed,
            parent=score.parent,
        )

    def add(self, score: FunctionScore) -> FunctionRecord:
        record = self.record_for(score)
        with self._lock:
            self._records.append(record)
        return record

    def add_many(self, scores: Iterable[FunctionScore]) -> None:
        records = [self.record_for(score) for score in scores]
        with self._lock:
            self._records.extend(records)

    def add_skipped(self, skipped: SkippedUnit) -> None:
        with self._lock:
            self._skipped.append(skipped)

    def add_diagnostic(self, diagnostic: CycleDetectionFailure) -> None:
        with self._lock:
            self._diagnostics.append(diagnostic)

    def add_batch(self, result: "BatchResult") -> None:
        self.add_many(result.scores)
        for skipped in result.skipped:
            self.add_skipped(skipped)
        for diagnostic in result.diagnostics:
            self.add_diagnostic(diagnostic)

    def build(self) -> ComplexityReport:
        with self._lock:
            records = sorted(self._records, key=FunctionRecord.sort_key)
            skipped = list(self._skipped)
            diagnostics = list(self._diagnostics)

        report = ComplexityReport(
            records=records,
            skipped=skipped,
            diagnostics=diagnostics,
            fail_on_violation=self.config.fail_on_violation,
        )
        logger.debug(
            f"Report: {len(records)} records, {len(report.violations)} over threshold, "
            f"{len(skipped)} skipped, verdict {report.verdict}"
        )
        return report
