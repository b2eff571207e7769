"""Tests for configuration system."""

import json

import pytest
import yaml

from cogscore.errors import ConfigurationError
from cogscore.models import NestedFunctionMode
from cogscore.scoring.compensation import CompensationAction
from cogscore.utils.config import ComplexityConfig, ThresholdConfig


class TestThresholdConfig:
    """Tests for threshold validation."""

    def test_default_values(self):
        """Test default threshold values."""
        config = ComplexityConfig()

        assert config.cognitive.to_dict() == {"ok_max": 5, "acceptable_max": 10, "severe_min": 15}
        assert config.cyclomatic.to_dict() == {"ok_max": 5, "acceptable_max": 10, "severe_min": 20}
        assert config.fail_on_violation is True
        assert config.nested_mode is NestedFunctionMode.SEPARATE

    def test_ok_above_acceptable(self):
        with pytest.raises(ConfigurationError, match="must not exceed"):
            ThresholdConfig(ok_max=11, acceptable_max=10, severe_min=15).validate("cognitive")

    def test_severe_not_above_acceptable(self):
        with pytest.raises(ConfigurationError, match="greater than"):
            ThresholdConfig(ok_max=5, acceptable_max=10, severe_min=10).validate("cyclomatic")

    def test_negative(self):
        with pytest.raises(ConfigurationError, match="non-negative"):
            ThresholdConfig(ok_max=-1).validate("cognitive")

    def test_non_integer(self):
        with pytest.raises(ConfigurationError, match="integer"):
            ThresholdConfig(ok_max="5").validate("cognitive")


class TestComplexityConfig:
    """Tests for main configuration."""

    def test_from_nested_dict(self):
        config = ComplexityConfig.from_dict(
            {
                "cognitive": {"ok_max": 3},
                "cyclomatic": {"severe_min": 30},
                "fail_on_violation": False,
                "nested_functions": "inline",
            }
        )

        assert config.cognitive.ok_max == 3
        assert config.cognitive.acceptable_max == 10
        assert config.cyclomatic.severe_min == 30
        assert config.fail_on_violation is False
        assert config.nested_mode is NestedFunctionMode.INLINE

    def test_from_flat_option_names(self):
        config = ComplexityConfig.from_dict(
            {
                "cognitiveOkMax": 4,
                "cognitiveAcceptableMax": 8,
                "cognitiveSevereMin": 12,
                "cyclomaticOkMax": 6,
                "failOnViolation": False,
                "compensationRules": [],
            }
        )

        assert config.cognitive.to_dict() == {"ok_max": 4, "acceptable_max": 8, "severe_min": 12}
        assert config.cyclomatic.ok_max == 6
        assert config.fail_on_violation is False
        assert config.compensation_rules == []

    def test_custom_rules(self):
        config = ComplexityConfig.from_dict(
            {
                "compensation_rules": [
                    {
                        "name": "kotlin-else",
                        "predicate": "else_contains_only_if",
                        "action": "suppress",
                        "kinds": ["Else"],
                        "languages": ["kotlin"],
                    }
                ]
            }
        )

        [rule] = list(config.rule_set)
        assert rule.action is CompensationAction.SUPPRESS

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="Unknown configuration keys: colour"):
            ComplexityConfig.from_dict({"colour": "blue"})

    def test_invalid_rule(self):
        with pytest.raises(ConfigurationError):
            ComplexityConfig.from_dict(
                {"compensation_rules": [{"name": "x", "predicate": "nope", "action": "noop"}]}
            )

    def test_validate_nested_mode(self):
        with pytest.raises(ConfigurationError, match="nested_functions"):
            ComplexityConfig(nested_functions="hoisted").validate()

    def test_validate_workers(self):
        with pytest.raises(ConfigurationError, match="max_workers"):
            ComplexityConfig(max_workers=0).validate()

    def test_validate_log_level(self):
        ComplexityConfig(log_level="debug").validate()
        with pytest.raises(ConfigurationError, match="log_level"):
            ComplexityConfig.from_dict({"logLevel": "chatty"}).validate()

    def test_validate_exclude_dirs(self):
        with pytest.raises(ConfigurationError, match="exclude_dirs"):
            ComplexityConfig(exclude_dirs="build").validate()
        with pytest.raises(ConfigurationError, match="exclude_dirs"):
            ComplexityConfig(exclude_dirs=["build", 3]).validate()

    def test_save_load(self, tmp_path):
        """Test saving and loading config."""
        config = ComplexityConfig(
            cognitive=ThresholdConfig(ok_max=2, acceptable_max=4, severe_min=9),
            max_workers=3,
        )
        path = tmp_path / ".cogscore.yaml"
        config.save(path)

        assert path.exists()
        loaded = ComplexityConfig.load(path)
        assert loaded.to_dict() == config.to_dict()

    def test_load_json(self, tmp_path):
        path = tmp_path / ".cogscore.json"
        path.write_text(json.dumps({"cognitiveOkMax": 1}))

        assert ComplexityConfig.load(path).cognitive.ok_max == 1

    def test_load_validates(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.dump({"cognitive": {"ok_max": 20}}))

        with pytest.raises(ConfigurationError):
            ComplexityConfig.load(path)

    def test_load_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            ComplexityConfig.load(path)

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ComplexityConfig.load(tmp_path / "nope.yaml")

    def test_load_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("cognitive: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Could not parse"):
            ComplexityConfig.load(path)

    def test_discover(self, tmp_path):
        (tmp_path / ".cogscore.yml").write_text("failOnViolation: false\n")
        assert ComplexityConfig.discover(tmp_path).fail_on_violation is False

    def test_discover_defaults(self, tmp_path):
        assert ComplexityConfig.discover(tmp_path).to_dict() == ComplexityConfig().to_dict()
