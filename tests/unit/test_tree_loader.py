"""Tests for construct-tree documents."""

import json

import pytest
import yaml

from cogscore.frontends import TreeDocumentError, load_tree_document
from cogscore.models import ConstructKind, LogicalOperator, Score, SourceLocation
from cogscore.scoring import BatchScorer

K = ConstructKind

DOCUMENT = {
    "language": "java",
    "file": "Service.java",
    "functions": [
        {
            "identifier": "Service.handle",
            "location": {"line": 12},
            "body": [
                {
                    "kind": "If",
                    "conditions": [
                        {
                            "operands": ["a", "b", {"operands": ["c", "d"], "operators": ["||"]}],
                            "operators": ["&&", "&&"],
                        }
                    ],
                    "children": [{"kind": "For"}],
                },
                {"kind": "Switch", "cases": 3},
                {"kind": "RecursiveCall", "target": "Service.handle"},
            ],
        },
        {"identifier": "Service.empty"},
    ],
}


class TestLoadTreeDocument:
    """Tests for load_tree_document."""

    def test_load_mapping(self):
        units, skipped = load_tree_document(DOCUMENT)
        handle = units[0]

        assert skipped == []
        assert [u.identifier for u in units] == ["Service.handle", "Service.empty"]
        assert handle.language == "java"
        assert handle.location == SourceLocation("Service.java", 12, 0)
        assert [n.kind for n in handle.body] == [K.IF, K.SWITCH, K.RECURSIVE_CALL]
        assert handle.body[1].case_count == 3
        assert handle.body[2].target == "Service.handle"

    def test_conditions(self):
        units, _ = load_tree_document(DOCUMENT)
        [condition] = units[0].body[0].conditions

        assert condition.operators == (LogicalOperator.AND, LogicalOperator.AND)
        assert condition.operands[2].operators == (LogicalOperator.OR,)

    def test_scores(self):
        units, _ = load_tree_document(DOCUMENT)
        result = BatchScorer().score(units).by_identifier()

        # if 1, two runs 2, for 2, switch 1, recursion 1
        assert result["Service.handle"].score == Score(7, 9)
        assert result["Service.empty"].score == Score(0, 1)

    def test_load_yaml_file(self, tmp_path):
        path = tmp_path / "tree.yaml"
        path.write_text(yaml.dump(DOCUMENT))

        units, skipped = load_tree_document(path)

        assert len(units) == 2
        assert not skipped

    def test_load_json_file_uses_path_as_default_file(self, tmp_path):
        document = {"functions": [{"identifier": "f", "body": ["While"]}]}
        path = tmp_path / "tree.json"
        path.write_text(json.dumps(document))

        [unit], _ = load_tree_document(path)

        assert unit.location.file == str(path)
        assert unit.language == "generic"
        assert unit.body[0].kind is K.WHILE

    def test_location_strings(self):
        document = {
            "functions": [
                {"identifier": "f", "location": "a.c:10:4"},
                {"identifier": "g", "location": "b.c:7"},
            ]
        }
        units, _ = load_tree_document(document)

        assert units[0].location == SourceLocation("a.c", 10, 4)
        assert units[1].location == SourceLocation("b.c", 7, 0)

    def test_unknown_kind_skips_function(self):
        document = {
            "functions": [
                {"identifier": "bad", "body": [{"kind": "Unless"}]},
                {"identifier": "good", "body": [{"kind": "If"}]},
            ]
        }
        units, skipped = load_tree_document(document)

        assert [u.identifier for u in units] == ["good"]
        assert skipped[0].identifier == "bad"
        assert "Unless" in skipped[0].reason

    def test_unknown_node_key_skips_function(self):
        document = {"functions": [{"identifier": "f", "body": [{"kind": "If", "test": "x"}]}]}
        units, skipped = load_tree_document(document)

        assert units == []
        assert "test" in skipped[0].reason

    @pytest.mark.parametrize(
        "entry",
        [
            {"identifier": "bad", "hints": ["x"]},
            {"identifier": "bad", "body": [{"kind": "RecursiveCall", "target": 5}]},
            {"identifier": "bad", "body": [{"kind": "NestedFunction", "name": ["cb"]}]},
        ],
    )
    def test_malformed_fields_skip_only_that_function(self, entry):
        document = {"functions": [{"identifier": "good", "body": ["If"]}, entry]}

        units, skipped = load_tree_document(document)
        result = BatchScorer().score(units)

        assert [s.identifier for s in skipped] == ["bad"]
        assert [r.identifier for r in result.scores] == ["good"]
        assert result.scores[0].score == Score(1, 2)

    def test_missing_identifier(self):
        units, skipped = load_tree_document({"functions": [{"body": []}]})

        assert units == []
        assert skipped[0].identifier == "<function #1>"

    def test_mismatched_operators(self):
        document = {
            "functions": [
                {
                    "identifier": "f",
                    "body": [{"kind": "If", "conditions": [{"operands": ["a", "b"]}]}],
                }
            ]
        }
        units, skipped = load_tree_document(document)

        assert units == []
        assert skipped[0].identifier == "f"

    def test_not_a_mapping(self):
        with pytest.raises(TreeDocumentError):
            load_tree_document({"functions": "nope"})

    def test_missing_file(self, tmp_path):
        with pytest.raises(TreeDocumentError):
            load_tree_document(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "tree.yaml"
        path.write_text("functions: [unclosed\n")

        with pytest.raises(TreeDocumentError):
            load_tree_document(path)
