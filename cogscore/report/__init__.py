"""Complexity report aggregation and output."""

from cogscore.report.aggregator import ReportAggregator, classify_tier
from cogscore.report.models import (
    ComplexityReport,
    FileSummary,
    FunctionRecord,
    ProjectSummary,
    Tier,
)
from cogscore.report.output import RichReportOutput

__all__ = [
    "ComplexityReport",
    "FileSummary",
    "FunctionRecord",
    "ProjectSummary",
    "ReportAggregator",
    "RichReportOutput",
    "Tier",
    "classify_tier",
]
