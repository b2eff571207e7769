"""Report data models.

Contains the per-function records, file and project summaries and the
complete complexity report with its verdict.
"""

import json
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from cogscore import __version__
from cogscore.errors import CycleDetectionFailure
from cogscore.models.construct import SkippedUnit, SourceLocation


class Tier(str, Enum):
    """Threshold tiers, ordered from best to worst."""

    OK = "ok"
    ACCEPTABLE = "acceptable"
    VIOLATION = "violation"
    SEVERE = "severe"

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)

    @property
    def is_failing(self) -> bool:
        return self in (Tier.VIOLATION, Tier.SEVERE)

    def __lt__(self, other: "Tier") -> bool:
        return self.rank < other.rank

    def __le__(self, other: "Tier") -> bool:
        return self == other or self < other

    def __gt__(self, other: "Tier") -> bool:
        return not self <= other

    def __ge__(self, other: "Tier") -> bool:
        return not self < other


_TIER_ORDER = [Tier.OK, Tier.ACCEPTABLE, Tier.VIOLATION, Tier.SEVERE]


@dataclass(frozen=True)
class FunctionRecord:
    """One scored function with its tiers."""

    identifier: str
    location: Optional[SourceLocation]
    cognitive: int
    cyclomatic: int
    tier: Tier
    cognitive_tier: Tier = Tier.OK
    cyclomatic_tier: Tier = Tier.OK
    language: str = "generic"
    suppressed: bool = False
    parent: Optional[str] = None

    @property
    def file(self) -> str:
        return self.location.file if self.location is not None else ""

    @property
    def line(self) -> Optional[int]:
        if self.location is None or not self.location.line:
            return None
        return self.location.line

    def sort_key(self):
        """Cognitive desc, cyclomatic desc, location asc, identifier asc."""
        return (
            -self.cognitive,
            -self.cyclomatic,
            self.location or SourceLocation(),
            self.identifier,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "identifier": self.identifier,
            "location": str(self.location) if self.location else None,
            "cognitiveScore": self.cognitive,
            "cyclomaticScore": self.cyclomatic,
            "tier": self.tier.value,
            "cognitiveTier": self.cognitive_tier.value,
            "cyclomaticTier": self.cyclomatic_tier.value,
            "language": self.language,
            "suppressed": self.suppressed,
            "parent": self.parent,
        }

    def to_sarif_result(self) -> Dict[str, Any]:
        """Convert to a SARIF result object."""
        level = "error" if self.tier is Tier.SEVERE else "warning"
        result: Dict[str, Any] = {
            "ruleId": f"complexity-{self.tier.value}",
            "level": level,
            "message": {
                "text": (
                    f"{self.identifier} has cognitive complexity {self.cognitive} "
                    f"and cyclomatic complexity {self.cyclomatic} ({self.tier.value})"
                )
            },
            "locations": [
                {
                    "physicalLocation": {
                        "artifactLocation": {"uri": self.file},
                    },
                    "logicalLocations": [
                        {"fullyQualifiedName": self.identifier, "kind": "function"}
                    ],
                }
            ],
            "properties": {
                "cognitiveScore": self.cognitive,
                "cyclomaticScore": self.cyclomatic,
            },
        }
        if self.line is not None:
            result["locations"][0]["physicalLocation"]["region"] = {
                "startLine": self.line,
            }
        return result


@dataclass
class FileSummary:
    """Aggregate figures for one source file."""

    file: str
    functions: int = 0
    total_cognitive: int = 0
    max_cognitive: int = 0
    total_cyclomatic: int = 0
    max_cyclomatic: int = 0
    tiers: Dict[str, int] = field(default_factory=dict)

    @property
    def worst_tier(self) -> Tier:
        present = [Tier(name) for name, count in self.tiers.items() if count]
        return max(present) if present else Tier.OK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "functions": self.functions,
            "totalCognitive": self.total_cognitive,
            "maxCognitive": self.max_cognitive,
            "totalCyclomatic": self.total_cyclomatic,
            "maxCyclomatic": self.max_cyclomatic,
            "tiers": dict(self.tiers),
        }


@dataclass
class ProjectSummary:
    """Aggregate figures for the whole batch."""

    files: int = 0
    functions: int = 0
    suppressed: int = 0
    skipped: int = 0
    total_cognitive: int = 0
    total_cyclomatic: int = 0
    tiers: Dict[str, int] = field(default_factory=dict)

    @property
    def average_cognitive(self) -> float:
        scored = self.functions - self.suppressed
        return self.total_cognitive / scored if scored > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files": self.files,
            "functions": self.functions,
            "suppressed": self.suppressed,
            "skipped": self.skipped,
            "totalCognitive": self.total_cognitive,
            "totalCyclomatic": self.total_cyclomatic,
            "averageCognitive": round(self.average_cognitive, 2),
            "tiers": dict(self.tiers),
        }


def _tier_counts(records: List[FunctionRecord]) -> Dict[str, int]:
    counts = Counter(record.tier.value for record in records)
    return {tier.value: counts.get(tier.value, 0) for tier in _TIER_ORDER}


@dataclass
class ComplexityReport:
    """Sorted per-function records plus the project verdict."""

    records: List[FunctionRecord] = field(default_factory=list)
    skipped: List[SkippedUnit] = field(default_factory=list)
    diagnostics: List[CycleDetectionFailure] = field(default_factory=list)
    fail_on_violation: bool = True
    generated_at: datetime = field(default_factory=datetime.now)

    @property
    def violations(self) -> List[FunctionRecord]:
        """Records in the violation or severe tier."""
        return [r for r in self.records if r.tier.is_failing]

    @property
    def severe_count(self) -> int:
        return len([r for r in self.records if r.tier is Tier.SEVERE])

    @property
    def violation_count(self) -> int:
        return len([r for r in self.records if r.tier is Tier.VIOLATION])

    @property
    def passed(self) -> bool:
        return not (self.fail_on_violation and self.violations)

    @property
    def verdict(self) -> str:
        return "pass" if self.passed else "fail"

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1

    def file_summaries(self) -> List[FileSummary]:
        by_file: Dict[str, List[FunctionRecord]] = {}
        for record in self.records:
            by_file.setdefault(record.file, []).append(record)

        summaries = []
        for file in sorted(by_file):
            records = by_file[file]
            summaries.append(
                FileSummary(
                    file=file,
                    functions=len(records),
                    total_cognitive=sum(r.cognitive for r in records),
                    max_cognitive=max(r.cognitive for r in records),
                    total_cyclomatic=sum(r.cyclomatic for r in records),
                    max_cyclomatic=max(r.cyclomatic for r in records),
                    tiers=_tier_counts(records),
                )
            )
        return summaries

    def summary(self) -> ProjectSummary:
        scored = [r for r in self.records if not r.suppressed]
        return ProjectSummary(
            files=len({r.file for r in self.records}),
            functions=len(self.records),
            suppressed=len(self.records) - len(scored),
            skipped=len(self.skipped),
            total_cognitive=sum(r.cognitive for r in scored),
            total_cyclomatic=sum(r.cyclomatic for r in scored),
            tiers=_tier_counts(self.records),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "verdict": self.verdict,
            "passed": self.passed,
            "summary": {
                **self.summary().to_dict(),
                "generated_at": self.generated_at.isoformat(),
            },
            "functions": [r.to_dict() for r in self.records],
            "files": [s.to_dict() for s in self.file_summaries()],
            "skipped": [s.to_dict() for s in self.skipped],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def to_sarif(self) -> Dict[str, Any]:
        """Convert to SARIF v2.1.0 format; only violation and severe records are results."""
        rules_seen: Dict[str, Dict[str, Any]] = {}
        results = []

        for record in self.violations:
            sarif_result = record.to_sarif_result()
            results.append(sarif_result)

            rule_id = sarif_result["ruleId"]
            if rule_id not in rules_seen:
                rules_seen[rule_id] = {
                    "id": rule_id,
                    "shortDescription": {
                        "text": f"Function complexity in the {record.tier.value} tier"
                    },
                    "defaultConfiguration": {"level": sarif_result["level"]},
                }

        return {
            "$schema": "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/main/sarif-2.1/schema/sarif-schema-2.1.0.json",
            "version": "2.1.0",
            "runs": [
                {
                    "tool": {
                        "driver": {
                            "name": "cogscore",
                            "version": __version__,
                            "rules": list(rules_seen.values()),
                        }
                    },
                    "results": results,
                }
            ],
        }

    def to_sarif_json(self, indent: int = 2) -> str:
        """Serialize SARIF to JSON string."""
        return json.dumps(self.to_sarif(), indent=indent)
