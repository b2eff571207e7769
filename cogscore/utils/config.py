"""Configuration management for cogscore."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from cogscore.errors import ConfigurationError
from cogscore.models.construct import NestedFunctionMode
from cogscore.scoring.compensation import (
    CompensationRule,
    CompensationRuleSet,
    default_rules,
)

CONFIG_FILENAMES = (".cogscore.yaml", ".cogscore.yml", ".cogscore.json")

# Flat option names accepted alongside the nested form
_FLAT_THRESHOLD_KEYS = {
    "cognitiveOkMax": ("cognitive", "ok_max"),
    "cognitiveAcceptableMax": ("cognitive", "acceptable_max"),
    "cognitiveSevereMin": ("cognitive", "severe_min"),
    "cyclomaticOkMax": ("cyclomatic", "ok_max"),
    "cyclomaticAcceptableMax": ("cyclomatic", "acceptable_max"),
    "cyclomaticSevereMin": ("cyclomatic", "severe_min"),
}
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_FLAT_KEYS = {
    "compensationRules": "compensation_rules",
    "failOnViolation": "fail_on_violation",
    "nestedFunctions": "nested_functions",
    "maxWorkers": "max_workers",
    "logLevel": "log_level",
    "excludeDirs": "exclude_dirs",
}


@dataclass
class ThresholdConfig:
    """Tier boundaries for one metric.

    score <= ok_max -> ok, <= acceptable_max -> acceptable,
    >= severe_min -> severe, anything between -> violation.
    """

    ok_max: int = 5
    acceptable_max: int = 10
    severe_min: int = 15

    def validate(self, metric: str) -> None:
        """Validate threshold ordering."""
        for name in ("ok_max", "acceptable_max", "severe_min"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{metric}.{name} must be an integer, got {value!r}")
            if value < 0:
                raise ConfigurationError(f"{metric}.{name} must be non-negative")

        if self.ok_max > self.acceptable_max:
            raise ConfigurationError(
                f"{metric}: ok_max ({self.ok_max}) must not exceed "
                f"acceptable_max ({self.acceptable_max})"
            )
        if self.acceptable_max >= self.severe_min:
            raise ConfigurationError(
                f"{metric}: severe_min ({self.severe_min}) must be greater than "
                f"acceptable_max ({self.acceptable_max})"
            )

    def to_dict(self) -> Dict[str, int]:
        return {
            "ok_max": self.ok_max,
            "acceptable_max": self.acceptable_max,
            "severe_min": self.severe_min,
        }


def _default_cognitive() -> ThresholdConfig:
    return ThresholdConfig(ok_max=5, acceptable_max=10, severe_min=15)


def _default_cyclomatic() -> ThresholdConfig:
    return ThresholdConfig(ok_max=5, acceptable_max=10, severe_min=20)


_DEFAULT_THRESHOLDS = {"cognitive": _default_cognitive, "cyclomatic": _default_cyclomatic}


@dataclass
class ComplexityConfig:
    """cogscore configuration."""

    cognitive: ThresholdConfig = field(default_factory=_default_cognitive)
    cyclomatic: ThresholdConfig = field(default_factory=_default_cyclomatic)
    compensation_rules: List[CompensationRule] = field(default_factory=default_rules)
    fail_on_violation: bool = True
    nested_functions: str = NestedFunctionMode.SEPARATE.value
    max_workers: int = 1
    log_level: str = "WARNING"
    exclude_dirs: List[str] = field(
        default_factory=lambda: [
            ".git",
            ".hg",
            "venv",
            ".venv",
            "env",
            "__pycache__",
            ".pytest_cache",
            ".mypy_cache",
            ".tox",
            ".nox",
            "build",
            "dist",
            "node_modules",
        ]
    )

    def validate(self) -> None:
        """Validate the configuration; raises ConfigurationError."""
        self.cognitive.validate("cognitive")
        self.cyclomatic.validate("cyclomatic")

        try:
            NestedFunctionMode(self.nested_functions)
        except ValueError:
            raise ConfigurationError(
                f"nested_functions must be one of "
                f"{', '.join(m.value for m in NestedFunctionMode)}, got {self.nested_functions!r}"
            ) from None

        if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int):
            raise ConfigurationError("max_workers must be an integer")
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1")

        if not isinstance(self.log_level, str) or self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigurationError(
                f"log_level must be one of {', '.join(_LOG_LEVELS)}, got {self.log_level!r}"
            )
        if not isinstance(self.exclude_dirs, list) or not all(
            isinstance(name, str) for name in self.exclude_dirs
        ):
            raise ConfigurationError("exclude_dirs must be a list of directory names")

        # Duplicate rule names are rejected by the rule set
        CompensationRuleSet(self.compensation_rules)

    @property
    def rule_set(self) -> CompensationRuleSet:
        return CompensationRuleSet(self.compensation_rules)

    @property
    def nested_mode(self) -> NestedFunctionMode:
        return NestedFunctionMode(self.nested_functions)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ComplexityConfig":
        """Build a config from a parsed YAML/JSON mapping.

        Accepts the nested snake_case form and the flat camelCase option
        names (``cognitiveOkMax``, ``failOnViolation``, ...).
        """
        if data is not None and not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be a mapping")
        data = dict(data or {})

        thresholds: Dict[str, Dict[str, Any]] = {
            "cognitive": dict(data.pop("cognitive", None) or {}),
            "cyclomatic": dict(data.pop("cyclomatic", None) or {}),
        }
        for flat_key, (metric, name) in _FLAT_THRESHOLD_KEYS.items():
            if flat_key in data:
                thresholds[metric][name] = data.pop(flat_key)
        for flat_key, name in _FLAT_KEYS.items():
            if flat_key in data:
                data[name] = data.pop(flat_key)

        known = {
            "compensation_rules",
            "fail_on_violation",
            "nested_functions",
            "max_workers",
            "log_level",
            "exclude_dirs",
        }
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

        kwargs: Dict[str, Any] = {}
        for metric, values in thresholds.items():
            try:
                base = _DEFAULT_THRESHOLDS[metric]()
                kwargs[metric] = ThresholdConfig(**{**base.to_dict(), **values})
            except TypeError as e:
                raise ConfigurationError(f"Invalid {metric} thresholds: {e}") from None

        if "compensation_rules" in data:
            rules = data.pop("compensation_rules") or []
            if not isinstance(rules, list):
                raise ConfigurationError("compensation_rules must be a list")
            kwargs["compensation_rules"] = [CompensationRule.from_dict(r) for r in rules]

        kwargs.update(data)
        return cls(**kwargs)

    @classmethod
    def load(cls, path: Path) -> "ComplexityConfig":
        """Load and validate configuration from a YAML or JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config not found: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                if path.suffix == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f) or {}
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Could not parse {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration root in {path} must be a mapping")

        config = cls.from_dict(data)
        config.validate()
        return config

    @classmethod
    def discover(cls, directory: Path) -> "ComplexityConfig":
        """Load the first config file found in ``directory``, else defaults."""
        directory = Path(directory)
        for name in CONFIG_FILENAMES:
            candidate = directory / name
            if candidate.exists():
                return cls.load(candidate)
        config = cls()
        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cognitive": self.cognitive.to_dict(),
            "cyclomatic": self.cyclomatic.to_dict(),
            "compensation_rules": [rule.to_dict() for rule in self.compensation_rules],
            "fail_on_violation": self.fail_on_violation,
            "nested_functions": self.nested_functions,
            "max_workers": self.max_workers,
            "log_level": self.log_level,
            "exclude_dirs": self.exclude_dirs,
        }

    def save(self, path: Path) -> None:
        """Save configuration as YAML."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
